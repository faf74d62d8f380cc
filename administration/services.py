"""
Business operations shared by the views, the management commands and the
CSV import.  Rule violations raise ``ValidationError``; the views turn them
into messages.
"""
from datetime import time, timedelta
from decimal import Decimal
from smtplib import SMTPException
import logging

from django.conf import settings
from django.contrib.auth.models import Group, User
from django.core.exceptions import ValidationError
from django.core.mail import send_mail
from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from .credentials import (
    generate_clock_in_code, generate_password, student_identifier, teacher_identifier,
)
from .decorators import STUDENT, TEACHER
from .finances import FeeCalculator, to_decimal
from .models import (
    Absence, AssignmentHistory, ClockInSession, CustomOption, InstallmentPlan, Payment,
    SchoolHours, SchoolSettings, Student, TeacherAttendance, TeacherContact, TeacherProfile,
)

logger = logging.getLogger(__name__)

CLOCK_IN_VALIDITY = timedelta(minutes=5)


def _identifier_taken(value):
    return (Student.objects.filter(identifier=value).exists()
            or TeacherProfile.objects.filter(identifier=value).exists()
            or User.objects.filter(username=value).exists())


def _group(name):
    group, _ = Group.objects.get_or_create(name=name)
    return group


# ----------------------------------------------------------------------
# Settings
# ----------------------------------------------------------------------

DEFAULT_SCHOOL_HOURS = {
    day: {
        'opening': time(7, 0), 'closing': time(18, 0),
        'morning_break_start': time(12, 0), 'morning_break_end': time(13, 0),
        'afternoon_break_start': time(13, 0), 'afternoon_break_end': time(14, 0),
    }
    for day in ['monday', 'tuesday', 'wednesday', 'thursday', 'friday']
}
DEFAULT_SCHOOL_HOURS['saturday'] = {'opening': time(8, 0), 'closing': time(12, 0)}


def ensure_school_hours():
    for day, values in DEFAULT_SCHOOL_HOURS.items():
        SchoolHours.objects.get_or_create(day=day, defaults=values)
    return SchoolHours.objects.all()


def reset_settings():
    SchoolSettings.objects.all().delete()
    CustomOption.objects.all().delete()
    InstallmentPlan.objects.all().delete()
    logger.warning("School settings reset to defaults")
    return SchoolSettings.load()


def add_custom_option(name, price):
    name = (name or '').strip()
    if not name:
        raise ValidationError("Option name is required")
    return CustomOption.objects.create(name=name, price=to_decimal(price))


# ----------------------------------------------------------------------
# Students
# ----------------------------------------------------------------------

def refresh_total_due(student, calculator=None):
    calculator = calculator or FeeCalculator.from_database()
    student.total_due = calculator.student_debt(student.fee_profile()).total
    student.save(update_fields=['total_due'])
    return student.total_due


def enrollment_quote(student, calculator=None):
    """
    What the family pays at enrollment: registration, the months or
    installments chosen on the form, and the selected options.
    """
    calculator = calculator or FeeCalculator.from_database()
    profile = student.fee_profile()
    quote = calculator.detailed_fees(profile, student.payment_mode, student.payment_months)
    return {
        'fees': quote,
        'options_total': calculator.options_debt(profile),
        'items': list(student.payment_months or []),
    }


@transaction.atomic
def enroll_student(student, custom_options=(), calculator=None):
    """
    Save a new student with a generated identifier, password and login
    account, and compute what they owe for the year.
    """
    student.identifier = student_identifier(student.first_name, student.last_name, exists=_identifier_taken)
    password = generate_password()

    user = User.objects.create_user(
        username=student.identifier,
        password=password,
        first_name=student.first_name,
        last_name=student.last_name,
        email=student.email or '',
    )
    user.groups.add(_group(STUDENT))

    student.user = user
    student.initial_password = password
    student.status = 'active'
    student.save()
    student.custom_options.set(custom_options)
    refresh_total_due(student, calculator)

    logger.info("Student %s enrolled in %s", student.identifier, student.school_class)
    return student


def set_student_status(student, status):
    student.status = status
    student.save(update_fields=['status'])
    if student.user_id:
        student.user.is_active = status == 'active'
        student.user.save(update_fields=['is_active'])
    return student


def archive_student(student):
    logger.info("Student %s archived", student.identifier)
    return set_student_status(student, 'inactive')


def clear_initial_passwords(students):
    """Forget generated passwords once they have been handed out."""
    cleared = (
        Student.objects.filter(pk__in=[s.pk for s in students])
        .exclude(initial_password='')
        .update(initial_password='')
    )
    if cleared:
        logger.info("Cleared %s generated passwords after export", cleared)
    return cleared


@transaction.atomic
def delete_student(student):
    user = student.user
    student.delete()
    if user is not None:
        user.delete()


def search_students(students, query='', class_id=None, status=''):
    if query:
        students = students.filter(
            Q(last_name__icontains=query) | Q(first_name__icontains=query) | Q(identifier__icontains=query)
        )
    if class_id:
        students = students.filter(school_class_id=class_id)
    if status:
        students = students.filter(status=status)
    return students


def active_classes():
    return sorted(set(Student.objects.values_list('school_class__name', flat=True)))


def students_per_class():
    rows = Student.objects.values('school_class__name').annotate(count=Count('id')).order_by('school_class__name')
    return {row['school_class__name']: row['count'] for row in rows}


def students_per_status():
    counts = {key: 0 for key, _ in Student.STATUS_CHOICES}
    for row in Student.objects.values('status').annotate(count=Count('id')):
        counts[row['status']] = row['count']
    return counts


# ----------------------------------------------------------------------
# Payments
# ----------------------------------------------------------------------

def record_payment(student, amount, payment_type='tuition', method='cash', description='',
                   items=None, recorded_by=None, payment_date=None):
    amount = to_decimal(amount)
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero")
    payment = Payment.objects.create(
        student=student,
        amount=amount,
        payment_type=payment_type,
        method=method,
        description=description,
        items=list(items or []),
        recorded_by=recorded_by,
        payment_date=payment_date or timezone.now(),
    )
    logger.info("Payment of %s recorded for student %s", amount, student.identifier)
    return payment


@transaction.atomic
def record_item_payments(student, items, method='cash', recorded_by=None, calculator=None):
    """One payment per item (month, installment or option), priced by the fee engine."""
    if not items:
        raise ValidationError("Select at least one item to pay")
    calculator = calculator or FeeCalculator.from_database()
    profile = student.fee_profile()
    payments = []
    for item in items:
        detail = calculator.payment_detail_for_item(profile, item)
        if detail.amount <= 0:
            raise ValidationError(f"No amount configured for {item}")
        payments.append(record_payment(
            student, detail.amount, payment_type=detail.payment_type, method=method,
            description=detail.description, items=[item], recorded_by=recorded_by,
        ))
    return payments


def total_revenue():
    return Payment.objects.aggregate(Sum('amount'))['amount__sum'] or Decimal('0')


def payment_history(student):
    return student.payments.select_related('recorded_by').order_by('-payment_date')


# ----------------------------------------------------------------------
# Teachers
# ----------------------------------------------------------------------

@transaction.atomic
def create_teacher(first_name, last_name, email='', contract_type='vacataire', monthly_salary=None,
                   hourly_rate=None, contract_hours=None, **profile_fields):
    identifier = teacher_identifier(first_name, last_name, exists=_identifier_taken)
    password = generate_password()

    user = User.objects.create_user(
        username=identifier,
        password=password,
        first_name=first_name,
        last_name=last_name,
        email=email or '',
    )
    user.groups.add(_group(TEACHER))

    if contract_type == 'vacataire':
        monthly_salary = None
        contract_hours = None
    elif contract_type == 'cdi':
        hourly_rate = None
        contract_hours = contract_hours or 160

    teacher = TeacherProfile.objects.create(
        user=user,
        identifier=identifier,
        contract_type=contract_type,
        monthly_salary=monthly_salary,
        hourly_rate=hourly_rate,
        contract_hours=contract_hours,
        **profile_fields,
    )
    logger.info("Teacher %s created (%s)", identifier, contract_type)
    return teacher, password


def set_teacher_status(teacher, status):
    teacher.status = status
    teacher.save(update_fields=['status'])
    teacher.user.is_active = status == 'active'
    teacher.user.save(update_fields=['is_active'])
    return teacher


@transaction.atomic
def delete_teacher(teacher):
    # the profile goes with its user
    teacher.user.delete()


def _names(queryset):
    return ', '.join(sorted(str(obj) for obj in queryset))


@transaction.atomic
def assign_classes(teacher, classes, modified_by=None, reason=''):
    old = _names(teacher.classes.all())
    teacher.classes.set(classes)
    new = _names(teacher.classes.all())
    AssignmentHistory.objects.create(
        teacher=teacher, kind='class', old_value=old, new_value=new,
        reason=reason, modified_by=modified_by,
    )
    return teacher


@transaction.atomic
def assign_subjects(teacher, subjects, modified_by=None, reason=''):
    old = _names(teacher.subjects.all())
    teacher.subjects.set(subjects)
    new = _names(teacher.subjects.all())
    AssignmentHistory.objects.create(
        teacher=teacher, kind='subject', old_value=old, new_value=new,
        reason=reason, modified_by=modified_by,
    )
    return teacher


def contact_teacher(teacher, contact_type, message, subject='', sent_by=None):
    status = 'sent'
    if contact_type == 'email':
        if not teacher.user.email:
            raise ValidationError("This teacher has no e-mail address")
        try:
            send_mail(subject or 'Message from the administration', message,
                      settings.DEFAULT_FROM_EMAIL, [teacher.user.email])
        except (SMTPException, OSError):
            logger.exception("Could not e-mail teacher %s", teacher.identifier)
            status = 'failed'
    return TeacherContact.objects.create(
        teacher=teacher,
        contact_type=contact_type,
        subject=subject,
        message=message,
        status=status,
        sent_by=sent_by,
    )


def active_documents(teacher):
    return teacher.documents.filter(status='active')


# ----------------------------------------------------------------------
# Teacher attendance
# ----------------------------------------------------------------------

def record_attendance(teacher, status='present', method='manual', date=None, arrival_time=None,
                      departure_time=None, notes=''):
    now = timezone.localtime()
    return TeacherAttendance.objects.create(
        teacher=teacher,
        date=date or now.date(),
        arrival_time=arrival_time or (now.time().replace(microsecond=0) if status != 'absent' else None),
        departure_time=departure_time,
        status=status,
        method=method,
        notes=notes,
    )


def attendance_history(teacher, start=None, end=None):
    records = teacher.attendances.all()
    if start:
        records = records.filter(date__gte=start)
    if end:
        records = records.filter(date__lte=end)
    return records.order_by('-date', '-arrival_time')


def start_clock_in(teacher):
    return ClockInSession.objects.create(
        teacher=teacher,
        code=generate_clock_in_code(),
        expires_at=timezone.now() + CLOCK_IN_VALIDITY,
    )


@transaction.atomic
def validate_clock_in(teacher, code):
    session = (ClockInSession.objects
               .filter(teacher=teacher, code=code, used=False)
               .order_by('-created_at')
               .first())
    if session is None:
        raise ValidationError("Invalid clock-in code")
    if not session.is_valid():
        raise ValidationError("This clock-in code has expired")
    session.used = True
    session.save(update_fields=['used'])
    return record_attendance(teacher, status='present', method='phone')


# ----------------------------------------------------------------------
# Absences
# ----------------------------------------------------------------------

def add_absence(student, date, status='absent', reason='', document=None):
    if Absence.objects.filter(student=student, date=date).exists():
        raise ValidationError("An absence already exists for this student on this date")
    return Absence.objects.create(student=student, date=date, status=status, reason=reason, document=document)


def justify_absence(absence, reason, document=None):
    absence.status = 'justified'
    absence.reason = reason
    if document is not None:
        absence.document = document
    absence.save()
    return absence


def absences_for_student(student):
    return student.absences.order_by('-date')


def absences_for_period(start, end):
    return Absence.objects.filter(date__gte=start, date__lte=end).select_related('student')
