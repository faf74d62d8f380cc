import csv
import io
import json
import logging

from django.core.exceptions import ValidationError
from django.db import DatabaseError

from .models import SchoolClass, Student
from .services import enroll_student

logger = logging.getLogger(__name__)

STUDENT_HEADERS = ['Last name', 'First name', 'Identifier', 'Class', 'Status', 'Phone', 'Email',
                   'Address', 'Enrollment date']
CREDENTIAL_HEADERS = ['Last name', 'First name', 'Identifier', 'Password']
AUDIT_HEADERS = ['ID', 'Timestamp', 'User ID', 'User Role', 'Action', 'Resource', 'Resource ID',
                 'Details', 'Success', 'Error Message']
REVENUE_HEADERS = ['Month', 'Total', 'Payments', 'Registration', 'Tuition', 'Other', 'Target',
                   'Achievement rate']
UNPAID_HEADERS = ['Class', 'Last name', 'First name', 'Parent', 'Contact', 'Total due', 'Paid', 'Remaining']


def _write(headers, rows):
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue()


def students_csv(students):
    return _write(STUDENT_HEADERS, (
        [s.last_name, s.first_name, s.identifier, s.school_class.name, s.get_status_display(),
         s.phone, s.email, s.address, s.enrollment_date.strftime('%Y-%m-%d')]
        for s in students
    ))


def credentials_csv(students):
    return _write(CREDENTIAL_HEADERS, (
        [s.last_name, s.first_name, s.identifier, s.initial_password]
        for s in students
    ))


def audit_csv(logs):
    return _write(AUDIT_HEADERS, (
        [log.pk, log.timestamp.isoformat(), log.user_id or '', log.role, log.action, log.resource,
         log.resource_id, json.dumps(log.details), 'yes' if log.success else 'no', log.error_message]
        for log in logs
    ))


def revenue_csv(months):
    return _write(REVENUE_HEADERS, (
        [m['month_name'], m['total'], m['count'], m['by_type']['registration'], m['by_type']['tuition'],
         m['by_type']['other'], m['target'], f"{m['achievement_rate']}%"]
        for m in months
    ))


def unpaid_csv(rows):
    """Unpaid list grouped by class, then by name."""
    rows = sorted(rows, key=lambda row: (row['student'].school_class.name, row['student'].last_name,
                                         row['student'].first_name))
    return _write(UNPAID_HEADERS, (
        [row['student'].school_class.name, row['student'].last_name, row['student'].first_name,
         row['student'].parent_name, row['student'].parent_contact, row['total_due'], row['total_paid'],
         row['amount_due']]
        for row in rows
    ))


def import_students(content, calculator=None):
    """
    Create students from CSV text with at least ``Last name``, ``First name``
    and ``Class`` columns.  Returns ``(succeeded, failed)``.
    """
    reader = csv.DictReader(io.StringIO(content))
    classes = {c.name.lower(): c for c in SchoolClass.objects.all()}
    succeeded = 0
    failed = 0

    for line, row in enumerate(reader, start=2):
        last_name = (row.get('Last name') or '').strip()
        first_name = (row.get('First name') or '').strip()
        school_class = classes.get((row.get('Class') or '').strip().lower())
        if not (last_name and first_name and school_class):
            logger.warning("Student import: line %s skipped (missing name or unknown class)", line)
            failed += 1
            continue

        student = Student(
            last_name=last_name,
            first_name=first_name,
            school_class=school_class,
            phone=(row.get('Phone') or '').strip(),
            email=(row.get('Email') or '').strip(),
            address=(row.get('Address') or '').strip(),
        )
        try:
            enroll_student(student, calculator=calculator)
        except (ValidationError, DatabaseError, RuntimeError):
            logger.exception("Student import: line %s failed", line)
            failed += 1
            continue
        succeeded += 1

    return succeeded, failed
