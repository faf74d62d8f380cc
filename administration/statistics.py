import calendar
from decimal import Decimal
import logging

from django.db.models import Count, DecimalField, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from .models import Absence, Payment, SchoolClass, SchoolSettings, Student, TeacherAttendance, TeacherProfile
from .services import active_classes, total_revenue

logger = logging.getLogger(__name__)

ZERO = Decimal('0')


def _students_with_paid():
    return Student.objects.select_related('school_class').annotate(
        paid=Coalesce(Sum('payments__amount'), ZERO, output_field=DecimalField()),
    )


def unpaid_students(class_id=None):
    """Students who still owe money, biggest debt first."""
    students = _students_with_paid()
    if class_id:
        students = students.filter(school_class_id=class_id)
    rows = []
    for student in students:
        if student.paid < student.total_due:
            rows.append({
                'student': student,
                'total_due': student.total_due,
                'total_paid': student.paid,
                'amount_due': student.total_due - student.paid,
            })
    rows.sort(key=lambda row: row['amount_due'], reverse=True)
    return rows


def teachers_present_today():
    today = timezone.localdate()
    present = 0
    for teacher in TeacherProfile.objects.filter(status='active'):
        latest = teacher.attendances.filter(date=today).order_by('-arrival_time').first()
        if latest and latest.status == 'present':
            present += 1
    return present


def dashboard_stats():
    total_teachers = TeacherProfile.objects.filter(status='active').count()
    present = teachers_present_today()
    return {
        'total_students': Student.objects.filter(status='active').count(),
        'total_teachers': total_teachers,
        'total_revenue': total_revenue(),
        'active_classes': len(active_classes()),
        'unpaid_students': len(unpaid_students()),
        'teachers_present': present,
        'teacher_presence_rate': round(present / total_teachers * 100) if total_teachers else 0,
    }


def class_statistics():
    classes = SchoolClass.objects.annotate(
        active_students=Count('students', filter=Q(students__status='active')),
    )
    total_classes = 0
    total_students = 0
    expected_revenue = ZERO
    for school_class in classes:
        total_classes += 1
        total_students += school_class.active_students
        expected_revenue += school_class.annual_tuition * school_class.active_students

    return {
        'total_classes': total_classes,
        'average_students': round(total_students / total_classes, 1) if total_classes else 0,
        'expected_revenue': expected_revenue,
    }


def weekdays_in_month(year, month):
    _, days = calendar.monthrange(year, month)
    return sum(1 for day in range(1, days + 1) if calendar.weekday(year, month, day) < 5)


def absence_statistics(today=None):
    today = today or timezone.localdate()
    month_start = today.replace(day=1)

    month_absences = Absence.objects.filter(date__gte=month_start)
    today_absences = Absence.objects.filter(date=today)

    active_students = Student.objects.filter(status='active').count()
    rate = 0
    if active_students:
        absent = month_absences.filter(status='absent').count()
        rate = round(absent / (active_students * weekdays_in_month(today.year, today.month)) * 100, 2)

    return {
        'total': Absence.objects.count(),
        'current_month': month_absences.count(),
        'today': today_absences.count(),
        'unjustified': Absence.objects.filter(status='unjustified').count(),
        'absenteeism_rate': rate,
        'students_absent_today': today_absences.values('student').distinct().count(),
    }


def revenue_by_class():
    rows = (Payment.objects
            .values('student__school_class__name')
            .annotate(total=Sum('amount'), count=Count('id'))
            .order_by('student__school_class__name'))
    return [
        {'class_name': row['student__school_class__name'], 'total': row['total'], 'count': row['count']}
        for row in rows
    ]


def monthly_revenue(year, month, target=None):
    if target is None:
        target = SchoolSettings.load().monthly_revenue_target
    payments = Payment.objects.filter(payment_date__year=year, payment_date__month=month)

    by_type = {key: ZERO for key, _ in Payment.PAYMENT_TYPES}
    for row in payments.values('payment_type').annotate(total=Sum('amount')):
        by_type[row['payment_type']] = row['total']

    by_method = {key: ZERO for key, _ in Payment.PAYMENT_METHODS}
    for row in payments.values('method').annotate(total=Sum('amount')):
        by_method[row['method']] = row['total']

    total = payments.aggregate(Sum('amount'))['amount__sum'] or ZERO
    rate = (total / target * 100).quantize(Decimal('0.1')) if target else ZERO

    return {
        'year': year,
        'month': month,
        'month_name': calendar.month_name[month],
        'total': total,
        'count': payments.count(),
        'by_type': by_type,
        'by_method': by_method,
        'target': target,
        'achievement_rate': rate,
    }


def yearly_revenue(year):
    target = SchoolSettings.load().monthly_revenue_target
    months = [monthly_revenue(year, month, target) for month in range(1, 13)]
    total = sum((m['total'] for m in months), ZERO)
    yearly_target = target * 12
    return {
        'year': year,
        'months': months,
        'total': total,
        'count': sum(m['count'] for m in months),
        'target': yearly_target,
        'achievement_rate': (total / yearly_target * 100).quantize(Decimal('0.1')) if yearly_target else ZERO,
    }


def teacher_attendance_summary(start, end):
    records = TeacherAttendance.objects.filter(date__gte=start, date__lte=end)
    counts = {key: 0 for key, _ in TeacherAttendance.STATUS_CHOICES}
    for row in records.values('status').annotate(count=Count('id')):
        counts[row['status']] = row['count']
    return counts
