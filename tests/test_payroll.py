from datetime import time
from decimal import Decimal
from types import SimpleNamespace

import pytest

from administration import payroll
from administration.models import AssignmentHistory, StaffMember, TimetableSlot


def slot(day, start, end):
    return SimpleNamespace(day=day, start_time=start, end_time=end)


def test_weekday_occurrences():
    # October 2025 starts on a Wednesday
    assert payroll.weekday_occurrences(2025, 10, 'monday') == 4
    assert payroll.weekday_occurrences(2025, 10, 'wednesday') == 5
    assert payroll.weekday_occurrences(2025, 10, 'saturday') == 4


def test_weekly_and_monthly_teaching_hours():
    slots = [slot('monday', time(8, 0), time(10, 0)), slot('wednesday', time(14, 0), time(15, 30))]
    assert payroll.teaching_hours(slots) == Decimal('3.50')
    assert payroll.teaching_hours(slots, 2025, 10) == Decimal('15.50')


def test_hourly_salary():
    result = payroll.calculate_salary('vacataire', 12, hourly_rate=Decimal('5000'))
    assert result.amount == Decimal('60000.00')
    assert result.contract_type == 'vacataire'
    assert '5000/h' in result.details


def test_hourly_salary_without_rate():
    assert payroll.calculate_salary('vacataire', 12).amount == Decimal('0.00')


def test_fixed_salary_within_contract_hours():
    result = payroll.calculate_salary('cdi', 150, monthly_salary=Decimal('320000'))
    assert result.amount == Decimal('320000.00')
    assert result.details == 'Fixed salary: 320000'


def test_fixed_salary_with_overtime():
    # 10 hours over 160, paid 320000 / 160 * 1.25 each
    result = payroll.calculate_salary('cdi', 170, monthly_salary=Decimal('320000'))
    assert result.amount == Decimal('345000.00')


def test_overtime_uses_contract_hours():
    result = payroll.calculate_salary('cdi', 110, monthly_salary=Decimal('200000'), contract_hours=100)
    assert result.amount == Decimal('225000.00')


def test_unsupported_contract():
    result = payroll.calculate_salary('consultant', 40, monthly_salary=Decimal('100000'))
    assert result.amount == Decimal('0.00')
    assert result.details == 'Unsupported contract type'


@pytest.mark.django_db
def test_teacher_salary_from_timetable(teacher, school_class):
    TimetableSlot.objects.create(teacher=teacher, school_class=school_class, day='monday',
                                 start_time=time(8, 0), end_time=time(10, 0))
    result = payroll.teacher_salary(teacher, 2025, 10)
    assert result.hours == Decimal('8.00')
    assert result.amount == Decimal('40000.00')


@pytest.mark.django_db
def test_monthly_salary_report(teacher, permanent_teacher):
    report = payroll.monthly_salary_report(2025, 10)
    assert len(report['rows']) == 2
    assert report['total_amount'] == Decimal('320000.00')
    assert report['total_hours'] == Decimal('0.00')


@pytest.mark.django_db
def test_inactive_teachers_are_left_out_of_the_report(teacher, permanent_teacher):
    teacher.status = 'inactive'
    teacher.save()
    report = payroll.monthly_salary_report(2025, 10)
    assert [row['teacher'] for row in report['rows']] == [permanent_teacher]


@pytest.mark.django_db
def test_update_salary_info_records_history(teacher, administrator):
    payroll.update_salary_info(teacher, 'cdi', monthly_salary=Decimal('250000'), modified_by=administrator,
                               reason='Permanent position')
    teacher.refresh_from_db()
    assert teacher.contract_type == 'cdi'
    assert teacher.monthly_salary == Decimal('250000')

    entry = AssignmentHistory.objects.get(teacher=teacher)
    assert entry.kind == 'salary'
    assert entry.old_value == 'vacataire'
    assert entry.new_value == 'cdi'
    assert entry.reason == 'Permanent position'


def test_staff_member_cost():
    fixed = StaffMember(pay_mode='fixed', fixed_salary=Decimal('150000'))
    hourly = StaffMember(pay_mode='hourly', hourly_rate=Decimal('2000'), planned_hours=40)
    incomplete = StaffMember(pay_mode='hourly', hourly_rate=Decimal('2000'))
    assert payroll.staff_member_cost(fixed) == Decimal('150000')
    assert payroll.staff_member_cost(hourly) == Decimal('80000')
    assert payroll.staff_member_cost(incomplete) == Decimal('0')


@pytest.mark.django_db
def test_staff_search_and_statistics():
    StaffMember.objects.create(first_name='Fatou', last_name='Sow', position='Secretary',
                               fixed_salary=Decimal('150000'))
    StaffMember.objects.create(first_name='Ali', last_name='Traore', position='Guard', pay_mode='hourly',
                               contract_type='vacataire', hourly_rate=Decimal('1500'), planned_hours=100,
                               status='leave')
    members = StaffMember.objects.all()

    assert [m.last_name for m in payroll.search_staff(members, 'sow')] == ['Sow']
    assert [m.last_name for m in payroll.search_staff(members, status='leave')] == ['Traore']
    assert [m.last_name for m in payroll.search_staff(members, position='guard')] == ['Traore']

    stats = payroll.staff_statistics(members)
    assert stats['total'] == 2
    assert stats['by_status']['active'] == 1
    assert stats['by_status']['leave'] == 1
    assert stats['by_contract']['vacataire'] == 1
    assert stats['payroll'] == Decimal('300000')
    assert payroll.staff_positions(members) == ['Guard', 'Secretary']
