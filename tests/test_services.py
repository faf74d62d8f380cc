from datetime import date, timedelta
from decimal import Decimal
from smtplib import SMTPException

import pytest
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.utils import timezone

from administration import services
from administration.credentials import normalize_name, student_identifier, teacher_identifier
from administration.decorators import STUDENT, TEACHER
from administration.models import (
    AssignmentHistory, ClockInSession, CustomOption, InstallmentPlan, SchoolClass, SchoolSettings, Student,
    Subject,
)

pytestmark = pytest.mark.django_db


def test_normalize_name():
    assert normalize_name("Éloïse N'Dri") == 'eloisendri'
    assert normalize_name('') == ''


def test_identifier_formats():
    assert student_identifier('Awa', 'Diallo').startswith('elvawdi')
    assert len(student_identifier('Awa', 'Diallo')) == 10
    identifier = teacher_identifier('Jean', 'Kouassi')
    assert identifier[:6] == 'jeakou'
    assert identifier[6:].isdigit()


def test_identifier_gives_up_when_everything_is_taken():
    with pytest.raises(RuntimeError):
        student_identifier('Awa', 'Diallo', exists=lambda value: True)


def test_enroll_student_creates_login(student):
    assert student.identifier.startswith('elvawdi')
    assert student.status == 'active'
    assert len(student.initial_password) == 8

    user = User.objects.get(username=student.identifier)
    assert user.check_password(student.initial_password)
    assert user.groups.filter(name=STUDENT).exists()
    assert user.student_profile == student


def test_enroll_student_computes_total_due(student):
    # registration 20000 + tuition 150000 + uniform 8000
    assert student.total_due == Decimal('178000')
    assert student.payment_status() == 'unpaid'


def test_re_enrolled_student_owes_half_registration(school_class, school_settings):
    student = services.enroll_student(Student(first_name='Kofi', last_name='Mensah', school_class=school_class,
                                              enrollment_type='reinscription'))
    assert student.total_due == Decimal('160000')


def test_enroll_student_with_custom_option(school_class, school_settings):
    transport = services.add_custom_option('  Transport ', Decimal('3000'))
    student = services.enroll_student(
        Student(first_name='Ines', last_name='Kone', school_class=school_class),
        custom_options=[transport],
    )
    assert transport.name == 'Transport'
    assert list(student.custom_options.all()) == [transport]
    assert student.total_due == Decimal('173000')


def test_add_custom_option_requires_a_name():
    with pytest.raises(ValidationError):
        services.add_custom_option('   ', 1000)


def test_refresh_total_due_after_class_change(student):
    bigger = SchoolClass.objects.create(name='3A', registration_fee=Decimal('30000'),
                                        annual_tuition=Decimal('200000'))
    student.school_class = bigger
    student.save()
    assert services.refresh_total_due(student) == Decimal('238000')


def test_archive_deactivates_login(student):
    services.archive_student(student)
    student.refresh_from_db()
    assert student.status == 'inactive'
    assert not student.user.is_active

    services.set_student_status(student, 'active')
    student.user.refresh_from_db()
    assert student.user.is_active


def test_delete_student_removes_login(student):
    username = student.identifier
    services.delete_student(student)
    assert not Student.objects.filter(identifier=username).exists()
    assert not User.objects.filter(username=username).exists()


def test_search_students(student, school_class):
    other_class = SchoolClass.objects.create(name='5B')
    services.enroll_student(Student(first_name='Moussa', last_name='Keita', school_class=other_class))

    students = Student.objects.all()
    assert list(services.search_students(students, 'dial')) == [student]
    assert list(services.search_students(students, class_id=school_class.id)) == [student]
    assert services.search_students(students, status='inactive').count() == 0
    assert services.students_per_class() == {'5B': 1, '6A': 1}
    assert services.students_per_status() == {'active': 2, 'inactive': 0}
    assert services.active_classes() == ['5B', '6A']


def test_record_payment_rejects_zero(student):
    with pytest.raises(ValidationError):
        services.record_payment(student, 0)
    with pytest.raises(ValidationError):
        services.record_payment(student, Decimal('-10'))


def test_record_payment_updates_balance(student, administrator):
    payment = services.record_payment(student, Decimal('20000'), 'registration', 'mobile',
                                      recorded_by=administrator)
    assert payment.recorded_by == administrator
    assert student.total_paid() == Decimal('20000')
    assert student.balance() == Decimal('158000')
    assert student.payment_status() == 'partial'
    assert services.total_revenue() == Decimal('20000')


def test_balance_never_negative(student):
    services.record_payment(student, Decimal('200000'))
    assert student.balance() == Decimal('0')
    assert student.payment_status() == 'paid'


def test_record_item_payments(student):
    payments = services.record_item_payments(student, ['September', 'October', 'Option: uniform'], 'cash')
    assert [p.amount for p in payments] == [Decimal('15000'), Decimal('15000'), Decimal('8000')]
    assert [p.payment_type for p in payments] == ['tuition', 'tuition', 'other']
    assert payments[0].items == ['September']
    assert payments[0].description == 'Payment for September'
    assert services.payment_history(student).count() == 3


def test_record_item_payments_for_installments(student):
    InstallmentPlan.objects.create(number=1, percentage=Decimal('50'))
    student.payment_mode = 'installments'
    student.save()
    payments = services.record_item_payments(student, ['Installment 1'])
    assert payments[0].amount == Decimal('75000')


def test_enrollment_quote_for_selected_months(student):
    student.payment_months = ['September', 'October', 'November']
    student.save()
    quote = services.enrollment_quote(student)
    assert quote['fees'].per_month == Decimal('15000')
    assert quote['fees'].tuition == Decimal('45000')
    assert quote['options_total'] == Decimal('8000')
    assert quote['fees'].total == Decimal('73000')
    assert quote['items'] == ['September', 'October', 'November']


def test_enrollment_quote_for_installments(student):
    InstallmentPlan.objects.create(number=1, percentage=Decimal('40'), end_date=date(2025, 10, 31))
    InstallmentPlan.objects.create(number=2, percentage=Decimal('60'))
    student.payment_mode = 'installments'
    student.payment_months = ['Installment 1']
    student.save()
    quote = services.enrollment_quote(student)
    assert quote['fees'].tuition == Decimal('60000')
    assert [i['number'] for i in quote['fees'].installments] == [1]
    assert quote['fees'].installments[0]['end_date'] == date(2025, 10, 31)
    assert quote['fees'].total == Decimal('88000')


def test_enrollment_quote_without_selection_is_registration_and_options(student):
    quote = services.enrollment_quote(student)
    assert quote['fees'].tuition == 0
    assert quote['fees'].total == Decimal('28000')


def test_clear_initial_passwords(student, school_class):
    other = services.enroll_student(Student(first_name='Kofi', last_name='Mensah', school_class=school_class))
    assert services.clear_initial_passwords([student]) == 1
    student.refresh_from_db()
    other.refresh_from_db()
    assert student.initial_password == ''
    assert other.initial_password != ''
    assert services.clear_initial_passwords([student]) == 0


def test_record_item_payments_requires_items(student):
    with pytest.raises(ValidationError):
        services.record_item_payments(student, [])


def test_record_item_payments_rejects_unpriced_item(student):
    with pytest.raises(ValidationError):
        services.record_item_payments(student, ['Installment 4'])
    assert student.payments.count() == 0


def test_reset_settings(school_settings):
    CustomOption.objects.create(name='Transport', price=3000)
    InstallmentPlan.objects.create(number=1, percentage=100)
    school = services.reset_settings()
    assert school.school_name == ''
    assert school.uniform_price == 0
    assert not CustomOption.objects.exists()
    assert not InstallmentPlan.objects.exists()
    assert SchoolSettings.objects.count() == 1


def test_ensure_school_hours_is_idempotent():
    services.ensure_school_hours()
    hours = services.ensure_school_hours()
    assert hours.count() == 6


def test_create_hourly_teacher(teacher):
    assert teacher.identifier.startswith('jeakou')
    assert teacher.contract_type == 'vacataire'
    assert teacher.monthly_salary is None
    assert teacher.contract_hours is None
    assert teacher.hourly_rate == Decimal('5000')
    assert teacher.user.groups.filter(name=TEACHER).exists()


def test_create_permanent_teacher(permanent_teacher):
    assert permanent_teacher.contract_hours == 160
    assert permanent_teacher.hourly_rate is None


def test_create_teacher_returns_working_password():
    teacher, password = services.create_teacher('Paul', 'Yao', contract_type='cdd', specialty='Maths')
    assert teacher.user.check_password(password)
    assert teacher.specialty == 'Maths'


def test_teacher_status_follows_login(teacher):
    services.set_teacher_status(teacher, 'inactive')
    teacher.user.refresh_from_db()
    assert not teacher.user.is_active


def test_delete_teacher_removes_login(teacher):
    username = teacher.user.username
    services.delete_teacher(teacher)
    assert not User.objects.filter(username=username).exists()


def test_assign_classes_keeps_history(teacher, school_class, administrator):
    other = SchoolClass.objects.create(name='5B')
    services.assign_classes(teacher, [school_class], administrator, 'Start of year')
    services.assign_classes(teacher, [school_class, other], administrator)

    assert set(teacher.classes.all()) == {school_class, other}
    last = AssignmentHistory.objects.filter(teacher=teacher, kind='class').order_by('-id').first()
    assert last.old_value == '6A'
    assert last.new_value == '5B, 6A'


def test_assign_subjects(teacher):
    maths = Subject.objects.create(name='Maths', code='MATH')
    services.assign_subjects(teacher, [maths])
    assert list(teacher.subjects.all()) == [maths]
    assert AssignmentHistory.objects.filter(teacher=teacher, kind='subject').count() == 1


def test_subject_with_teachers_cannot_be_deleted(teacher):
    maths = Subject.objects.create(name='Maths', code='MATH')
    teacher.subjects.add(maths)
    with pytest.raises(ValidationError):
        maths.delete()


def test_subject_code_is_unique_ignoring_case():
    Subject.objects.create(name='Maths', code='MATH')
    duplicate = Subject(name='Mathematics', code='math')
    with pytest.raises(ValidationError):
        duplicate.full_clean()


def test_class_assign_teacher_twice(teacher, school_class):
    school_class.assign_teacher(teacher)
    school_class.assign_teacher(teacher)
    assert list(school_class.active_teachers()) == [teacher]


def test_contact_teacher_by_email(teacher, mailoutbox):
    contact = services.contact_teacher(teacher, 'email', 'Staff meeting at 16:00', 'Meeting')
    assert contact.status == 'sent'
    assert len(mailoutbox) == 1
    assert mailoutbox[0].to == ['jean@example.com']
    assert mailoutbox[0].subject == 'Meeting'


def test_contact_teacher_without_email():
    teacher, _ = services.create_teacher('Paul', 'Yao', contract_type='cdd')
    with pytest.raises(ValidationError):
        services.contact_teacher(teacher, 'email', 'Hello')


def test_contact_teacher_mail_failure(teacher, monkeypatch):
    def broken_send_mail(*args, **kwargs):
        raise SMTPException('connection refused')

    monkeypatch.setattr(services, 'send_mail', broken_send_mail)
    contact = services.contact_teacher(teacher, 'email', 'Hello', 'Hi')
    assert contact.status == 'failed'


def test_contact_teacher_by_phone_is_only_recorded(teacher, mailoutbox):
    contact = services.contact_teacher(teacher, 'phone', 'Called about the timetable')
    assert contact.status == 'sent'
    assert mailoutbox == []


def test_clock_in_with_valid_code(teacher):
    session = services.start_clock_in(teacher)
    assert len(session.code) == 6
    assert session.is_valid()

    attendance = services.validate_clock_in(teacher, session.code)
    assert attendance.status == 'present'
    assert attendance.method == 'phone'

    with pytest.raises(ValidationError, match='Invalid clock-in code'):
        services.validate_clock_in(teacher, session.code)


def test_clock_in_with_expired_code(teacher):
    session = services.start_clock_in(teacher)
    ClockInSession.objects.filter(pk=session.pk).update(expires_at=timezone.now() - timedelta(minutes=1))
    with pytest.raises(ValidationError, match='expired'):
        services.validate_clock_in(teacher, session.code)


def test_clock_in_with_unknown_code(teacher):
    with pytest.raises(ValidationError, match='Invalid clock-in code'):
        services.validate_clock_in(teacher, '000000')


def test_attendance_history_filters(teacher):
    services.record_attendance(teacher, date=date(2025, 10, 1))
    services.record_attendance(teacher, status='absent', date=date(2025, 10, 2))
    services.record_attendance(teacher, date=date(2025, 11, 3))

    october = services.attendance_history(teacher, date(2025, 10, 1), date(2025, 10, 31))
    assert [r.date for r in october] == [date(2025, 10, 2), date(2025, 10, 1)]
    assert october[0].arrival_time is None


def test_absence_is_unique_per_day(student):
    services.add_absence(student, date(2025, 10, 6))
    with pytest.raises(ValidationError):
        services.add_absence(student, date(2025, 10, 6))


def test_justify_absence(student):
    absence = services.add_absence(student, date(2025, 10, 6))
    services.justify_absence(absence, 'Medical certificate')
    absence.refresh_from_db()
    assert absence.status == 'justified'
    assert absence.reason == 'Medical certificate'
    assert list(services.absences_for_student(student)) == [absence]
    assert services.absences_for_period(date(2025, 10, 1), date(2025, 10, 31)).count() == 1
