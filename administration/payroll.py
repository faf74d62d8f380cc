"""
Teacher salaries and administrative staff payroll.
"""
import calendar
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
import logging

from django.db.models import Q

from .finances import to_decimal
from .timetable import DAYS, slot_minutes

logger = logging.getLogger(__name__)

DEFAULT_CONTRACT_HOURS = 160
OVERTIME_RATE = Decimal('1.25')
CENTS = Decimal('0.01')


@dataclass
class SalaryResult:
    amount: Decimal
    hours: Decimal
    contract_type: str
    details: str


def round_cents(value):
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def weekday_occurrences(year, month, day):
    """How many times ``day`` (``'monday'`` ... ``'saturday'``) falls in the month."""
    weekday = DAYS.index(day)
    _, days_in_month = calendar.monthrange(year, month)
    return sum(1 for d in range(1, days_in_month + 1) if calendar.weekday(year, month, d) == weekday)


def teaching_hours(slots, year=None, month=None):
    """
    Weekly hours of the given timetable slots, or the hours worked in a
    month when ``year`` and ``month`` are given.
    """
    minutes = 0
    for slot in slots:
        duration = slot_minutes(slot.start_time, slot.end_time)
        if year is not None and month is not None:
            duration *= weekday_occurrences(year, month, slot.day)
        minutes += duration
    return round_cents(Decimal(minutes) / 60)


def calculate_salary(contract_type, hours, monthly_salary=None, hourly_rate=None, contract_hours=None):
    hours = to_decimal(hours)
    amount = Decimal('0')
    details = ''

    if contract_type == 'vacataire':
        if hourly_rate:
            rate = to_decimal(hourly_rate)
            amount = hours * rate
            details = f"{hours}h x {rate}/h = {round_cents(amount)}"
    elif contract_type == 'cdi':
        if monthly_salary:
            salary = to_decimal(monthly_salary)
            limit = Decimal(contract_hours or DEFAULT_CONTRACT_HOURS)
            if hours > limit:
                overtime = hours - limit
                amount = salary + overtime * (salary / limit) * OVERTIME_RATE
                details = f"{salary} + {overtime}h overtime = {round_cents(amount)}"
            else:
                amount = salary
                details = f"Fixed salary: {salary}"
    else:
        details = "Unsupported contract type"

    return SalaryResult(round_cents(amount), hours, contract_type, details)


def teacher_salary(teacher, year=None, month=None):
    hours = teaching_hours(teacher.slots.all(), year, month)
    return calculate_salary(
        teacher.contract_type,
        hours,
        monthly_salary=teacher.monthly_salary,
        hourly_rate=teacher.hourly_rate,
        contract_hours=teacher.contract_hours,
    )


def monthly_salary_report(year, month):
    from .models import TeacherProfile

    rows = []
    total_amount = Decimal('0')
    total_hours = Decimal('0')
    teachers = TeacherProfile.objects.filter(status='active').select_related('user').prefetch_related('slots')
    for teacher in teachers:
        result = teacher_salary(teacher, year, month)
        rows.append({'teacher': teacher, 'salary': result})
        total_amount += result.amount
        total_hours += result.hours

    return {
        'year': year,
        'month': month,
        'rows': rows,
        'total_amount': round_cents(total_amount),
        'total_hours': round_cents(total_hours),
    }


def update_salary_info(teacher, contract_type=None, monthly_salary=None, hourly_rate=None,
                       contract_hours=None, modified_by=None, reason=''):
    from .models import AssignmentHistory

    old_contract = teacher.contract_type
    if contract_type is not None:
        teacher.contract_type = contract_type
    if monthly_salary is not None:
        teacher.monthly_salary = monthly_salary
    if hourly_rate is not None:
        teacher.hourly_rate = hourly_rate
    if contract_hours is not None:
        teacher.contract_hours = contract_hours
    teacher.save()

    AssignmentHistory.objects.create(
        teacher=teacher,
        kind='salary',
        old_value=old_contract,
        new_value=teacher.contract_type,
        reason=reason or 'Salary information updated',
        modified_by=modified_by,
    )
    logger.info("Salary information updated for teacher %s (%s -> %s)",
                teacher.pk, old_contract, teacher.contract_type)
    return teacher


# ----------------------------------------------------------------------
# Administrative staff
# ----------------------------------------------------------------------

def staff_member_cost(member):
    if member.pay_mode == 'fixed' and member.fixed_salary:
        return to_decimal(member.fixed_salary)
    if member.pay_mode == 'hourly' and member.hourly_rate and member.planned_hours:
        return to_decimal(member.hourly_rate) * member.planned_hours
    return Decimal('0')


def search_staff(members, query='', position='', status=''):
    if query:
        members = members.filter(
            Q(last_name__icontains=query) | Q(first_name__icontains=query) | Q(position__icontains=query)
        )
    if position:
        members = members.filter(position__icontains=position)
    if status:
        members = members.filter(status=status)
    return members


def staff_statistics(members):
    from .models import CONTRACT_CHOICES, StaffMember

    by_status = {key: 0 for key, _ in StaffMember.STATUS_CHOICES}
    by_contract = {key: 0 for key, _ in CONTRACT_CHOICES}
    payroll = Decimal('0')
    total = 0
    for member in members:
        total += 1
        by_status[member.status] = by_status.get(member.status, 0) + 1
        by_contract[member.contract_type] = by_contract.get(member.contract_type, 0) + 1
        payroll += staff_member_cost(member)

    return {
        'total': total,
        'by_status': by_status,
        'by_contract': by_contract,
        'payroll': payroll,
    }


def staff_positions(members):
    return sorted(set(members.values_list('position', flat=True)))
