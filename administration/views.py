import io
import logging
from datetime import date, datetime

from django.conf import settings
from django.contrib import messages
from django.contrib.auth import authenticate, login, logout
from django.contrib.auth.decorators import login_required
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.core.files.base import ContentFile
from django.db.models import ProtectedError, Q, Sum
from django.http import FileResponse, HttpResponse
from django.shortcuts import get_object_or_404, redirect, render
from django.template.loader import render_to_string
from django.utils import timezone
from django.views.decorators.http import require_POST
from xhtml2pdf import pisa

from . import audit, notifications, payroll, services, statistics
from .decorators import (
    ADMINISTRATOR, STUDENT, TEACHER, administrator_required, permission_required,
    student_required, teacher_required, user_role,
)
from .exports import audit_csv, credentials_csv, import_students, revenue_csv, students_csv, unpaid_csv
from .finances import FeeCalculator, installment_label, option_label
from .forms import (
    AbsenceForm, AdministrativeDocumentForm, AssignClassesForm, AssignSubjectsForm, AttendanceForm,
    AuditFilterForm, ClockInCodeForm, CustomOptionForm, InstallmentPlanForm, ItemPaymentForm,
    JustifyAbsenceForm, LoginForm, NotificationForm, PaymentForm, RevenueYearForm, SalaryForm,
    SchoolClassForm, SchoolHoursForm, SchoolSettingsForm, StaffMemberForm, StudentForm,
    StudentImportForm, SubjectForm, TeacherContactForm, TeacherCreationForm, TeacherProfileForm,
    TeacherUserForm, TimetableSlotForm,
)
from .models import (
    Absence, AdministrativeDocument, CustomOption, InstallmentPlan, Notification, Payment,
    RevenueReport, SchoolClass, SchoolHours, SchoolSettings, StaffMember, Student, Subject,
    TeacherProfile, TimetableSlot,
)
from .timetable import DAYS, generate_week_slots, weekly_grid

logger = logging.getLogger(__name__)


def _error_text(error):
    return '; '.join(error.messages)


def _render_pdf(template, context):
    """Render a template to PDF bytes, or None when xhtml2pdf reports an error."""
    context.setdefault('currency', settings.SCHOOL_CURRENCY)
    html_string = render_to_string(template, context)
    pdf_file = io.BytesIO()
    pisa_status = pisa.CreatePDF(io.BytesIO(html_string.encode('UTF-8')), dest=pdf_file)
    if pisa_status.err:
        logger.error("PDF generation failed for %s", template)
        return None
    return pdf_file.getvalue()


def _parse_id(value):
    if value and value.isdigit():
        return int(value)
    return None


def _csv_response(content, filename):
    response = HttpResponse(content, content_type='text/csv')
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response


def _parse_date(value):
    if not value:
        return None
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except ValueError:
        return None


# ----------------------------------------------------------------------
# Authentication and dashboards
# ----------------------------------------------------------------------

def user_login(request):
    form = LoginForm(request.POST or None)
    if request.method == 'POST' and form.is_valid():
        identifier = form.cleaned_data['username']  # username OR email
        password = form.cleaned_data['password']
        user = None

        if '@' in identifier:
            user_obj = User.objects.filter(email__iexact=identifier).first()
            if user_obj is not None:
                user = authenticate(request, username=user_obj.username, password=password)
        else:
            user = authenticate(request, username=identifier, password=password)

        if user is not None:
            login(request, user)
            return redirect('dashboard')

        inactive = User.objects.filter(
            Q(username=identifier) | Q(email__iexact=identifier), is_active=False,
        ).exists()
        if inactive:
            messages.error(request, "Your account is inactive. Contact the administration.")
        else:
            messages.error(request, "Invalid username/email or password")

    return render(request, 'administration/login.html', {'form': form})


@login_required
def user_logout(request):
    logout(request)
    return redirect('login')


@login_required
def dashboard(request):
    role = user_role(request.user)
    if role == ADMINISTRATOR:
        return redirect('admin_dashboard')
    elif role == TEACHER:
        return redirect('teacher_dashboard')
    elif role == STUDENT:
        return redirect('student_dashboard')
    return render(request, 'administration/unauthorized.html', status=403)


@login_required
@administrator_required
def admin_dashboard(request):
    stats = statistics.dashboard_stats()
    recent_payments = Payment.objects.select_related('student')[:10]
    return render(request, 'administration/admin_dashboard.html', {
        'stats': stats,
        'recent_payments': recent_payments,
    })


@login_required
@teacher_required
def teacher_dashboard(request):
    profile = get_object_or_404(TeacherProfile, user=request.user)
    today = timezone.localdate()
    return render(request, 'administration/teacher_dashboard.html', {
        'profile': profile,
        'grid': weekly_grid(profile.slots.select_related('school_class', 'subject')),
        'days': DAYS,
        'salary': payroll.teacher_salary(profile, today.year, today.month),
        'notifications': notifications.inbox_for(request.user)[:5],
    })


@login_required
@student_required
def student_dashboard(request):
    student = get_object_or_404(Student, user=request.user)
    calculator = FeeCalculator.from_database()
    return render(request, 'administration/student_dashboard.html', {
        'student': student,
        'follow_up': calculator.account_follow_up(student.fee_profile(), student.payments.all()),
        'payments': services.payment_history(student),
        'notifications': notifications.inbox_for(request.user)[:5],
    })


# ----------------------------------------------------------------------
# School settings
# ----------------------------------------------------------------------

@login_required
@administrator_required
def school_settings(request):
    school = SchoolSettings.load()
    if request.method == 'POST':
        form = SchoolSettingsForm(request.POST, instance=school)
        if form.is_valid():
            form.save()
            audit.log_action(request.user, 'update', 'settings', school.pk, request=request)
            messages.success(request, "Settings saved.")
            return redirect('school_settings')
    else:
        form = SchoolSettingsForm(instance=school)

    return render(request, 'administration/settings.html', {
        'form': form,
        'option_form': CustomOptionForm(),
        'installment_form': InstallmentPlanForm(),
        'custom_options': CustomOption.objects.all(),
        'installments': InstallmentPlan.objects.all(),
        'school_hours': services.ensure_school_hours(),
    })


@login_required
@administrator_required
@require_POST
def add_custom_option(request):
    form = CustomOptionForm(request.POST)
    if form.is_valid():
        option = form.save()
        messages.success(request, f"Option {option.name} added.")
    else:
        messages.error(request, "Invalid option.")
    return redirect('school_settings')


@login_required
@administrator_required
def edit_custom_option(request, option_id):
    option = get_object_or_404(CustomOption, id=option_id)
    form = CustomOptionForm(request.POST or None, instance=option)
    if request.method == 'POST' and form.is_valid():
        form.save()
        messages.success(request, "Option updated.")
        return redirect('school_settings')
    return render(request, 'administration/form.html', {'form': form, 'title': f"Edit option {option.name}"})


@login_required
@administrator_required
@require_POST
def delete_custom_option(request, option_id):
    option = get_object_or_404(CustomOption, id=option_id)
    option.delete()
    messages.success(request, "Option deleted.")
    return redirect('school_settings')


@login_required
@administrator_required
@require_POST
def add_installment(request):
    form = InstallmentPlanForm(request.POST)
    if form.is_valid():
        plan = form.save()
        messages.success(request, f"{plan.label} added.")
    else:
        messages.error(request, "Invalid installment: " + '; '.join(
            e for errors in form.errors.values() for e in errors))
    return redirect('school_settings')


@login_required
@administrator_required
@require_POST
def delete_installment(request, plan_id):
    get_object_or_404(InstallmentPlan, id=plan_id).delete()
    messages.success(request, "Installment deleted.")
    return redirect('school_settings')


@login_required
@administrator_required
def edit_school_hours(request, hours_id):
    hours = get_object_or_404(SchoolHours, id=hours_id)
    form = SchoolHoursForm(request.POST or None, instance=hours)
    if request.method == 'POST' and form.is_valid():
        form.save()
        messages.success(request, f"Hours for {hours.get_day_display()} saved.")
        return redirect('school_settings')
    return render(request, 'administration/form.html', {'form': form, 'title': f"School hours - {hours.get_day_display()}"})


@login_required
@administrator_required
@require_POST
def reset_settings(request):
    services.reset_settings()
    audit.log_action(request.user, 'reset', 'settings', request=request)
    messages.success(request, "Settings restored to their defaults.")
    return redirect('school_settings')


# ----------------------------------------------------------------------
# Classes and subjects
# ----------------------------------------------------------------------

@login_required
@administrator_required
def class_list(request):
    form = SchoolClassForm(request.POST or None)
    if request.method == 'POST' and form.is_valid():
        school_class = form.save()
        messages.success(request, f"Class {school_class.name} created.")
        return redirect('class_list')

    return render(request, 'administration/class_list.html', {
        'classes': SchoolClass.objects.all(),
        'form': form,
        'stats': statistics.class_statistics(),
    })


@login_required
@administrator_required
def class_detail(request, class_id):
    school_class = get_object_or_404(SchoolClass, id=class_id)

    if request.method == 'POST':
        teacher_id = _parse_id(request.POST.get('teacher'))
        if teacher_id is None:
            messages.error(request, "Choose a teacher.")
            return redirect('class_detail', class_id=school_class.id)
        teacher = get_object_or_404(TeacherProfile, id=teacher_id)
        school_class.assign_teacher(teacher)
        messages.success(request, f"{teacher} assigned to {school_class}.")
        return redirect('class_detail', class_id=school_class.id)

    return render(request, 'administration/class_detail.html', {
        'school_class': school_class,
        'students': school_class.students.filter(status='active'),
        'teachers': school_class.active_teachers(),
        'available_teachers': TeacherProfile.objects.filter(status='active').exclude(classes=school_class),
    })


@login_required
@administrator_required
def class_edit(request, class_id):
    school_class = get_object_or_404(SchoolClass, id=class_id)
    form = SchoolClassForm(request.POST or None, instance=school_class)
    if request.method == 'POST' and form.is_valid():
        form.save()
        messages.success(request, "Class updated.")
        return redirect('class_list')
    return render(request, 'administration/form.html', {'form': form, 'title': f"Edit class {school_class.name}"})


@login_required
@administrator_required
@require_POST
def class_delete(request, class_id):
    school_class = get_object_or_404(SchoolClass, id=class_id)
    try:
        school_class.delete()
        messages.success(request, "Class deleted.")
    except ProtectedError:
        messages.error(request, "This class still has students and cannot be deleted.")
    return redirect('class_list')


@login_required
@administrator_required
def subject_list(request):
    form = SubjectForm(request.POST or None)
    if request.method == 'POST' and form.is_valid():
        form.save()
        messages.success(request, "Subject created.")
        return redirect('subject_list')

    subjects = Subject.objects.all()
    level = request.GET.get('level')
    if level:
        subjects = [s for s in subjects if level in s.level_list()]

    return render(request, 'administration/subject_list.html', {
        'subjects': subjects,
        'form': form,
        'level': level or '',
    })


@login_required
@administrator_required
def subject_edit(request, subject_id):
    subject = get_object_or_404(Subject, id=subject_id)
    form = SubjectForm(request.POST or None, instance=subject)
    if request.method == 'POST' and form.is_valid():
        form.save()
        messages.success(request, "Subject updated.")
        return redirect('subject_list')
    return render(request, 'administration/form.html', {'form': form, 'title': f"Edit {subject}"})


@login_required
@administrator_required
@require_POST
def subject_delete(request, subject_id):
    subject = get_object_or_404(Subject, id=subject_id)
    try:
        subject.delete()
        messages.success(request, "Subject deleted.")
    except ValidationError as e:
        messages.error(request, _error_text(e))
    return redirect('subject_list')


# ----------------------------------------------------------------------
# Students
# ----------------------------------------------------------------------

@login_required
@administrator_required
def student_list(request):
    query = request.GET.get('q', '').strip()
    school_class = _parse_id(request.GET.get('school_class'))
    status = request.GET.get('status', '')

    students = services.search_students(
        Student.objects.select_related('school_class'), query, school_class, status,
    )

    return render(request, 'administration/student_list.html', {
        'students': students,
        'classes': SchoolClass.objects.all(),
        'per_class': services.students_per_class(),
        'per_status': services.students_per_status(),
        'filters': {
            'q': query,
            'school_class': school_class or '',
            'status': status,
        },
        'status_choices': Student.STATUS_CHOICES,
    })


@login_required
@administrator_required
def student_create(request):
    if request.method == 'POST':
        form = StudentForm(request.POST, request.FILES)
        if form.is_valid():
            student = form.save(commit=False)
            services.enroll_student(student, form.cleaned_data['custom_options'])
            audit.log_action(request.user, 'create', 'student', student.pk,
                             {'identifier': student.identifier}, request=request)
            quote = services.enrollment_quote(student)
            messages.success(
                request,
                f"Student {student.full_name} enrolled. Login: {student.identifier} / {student.initial_password}. "
                f"Due at enrollment: {quote['fees'].total}",
            )
            return redirect('student_detail', student_id=student.id)
    else:
        form = StudentForm()

    return render(request, 'administration/student_form.html', {'form': form, 'title': "New student"})


@login_required
@administrator_required
def student_detail(request, student_id):
    student = get_object_or_404(Student.objects.select_related('school_class'), id=student_id)
    calculator = FeeCalculator.from_database()
    profile = student.fee_profile()
    return render(request, 'administration/student_detail.html', {
        'student': student,
        'debt': calculator.student_debt(profile),
        'monthly_amount': calculator.monthly_amount(profile),
        'follow_up': calculator.account_follow_up(profile, student.payments.all()),
        'payments': services.payment_history(student),
        'absences': services.absences_for_student(student),
        'status': student.payment_status(),
        'quote': services.enrollment_quote(student, calculator),
    })


@login_required
def registration_receipt(request, student_id):
    student = get_object_or_404(Student.objects.select_related('school_class'), id=student_id)
    if user_role(request.user) != ADMINISTRATOR and student.user_id != request.user.id:
        return render(request, 'administration/unauthorized.html', status=403)

    pdf = _render_pdf('administration/registration_pdf.html', {
        'student': student,
        'quote': services.enrollment_quote(student),
        'school': SchoolSettings.load(),
    })
    if pdf is None:
        messages.error(request, "Error generating PDF.")
        return redirect('dashboard')

    response = HttpResponse(pdf, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="registration_{student.identifier}.pdf"'
    return response


@login_required
@administrator_required
def student_certificate(request, student_id):
    student = get_object_or_404(Student.objects.select_related('school_class'), id=student_id)
    if student.status != 'active':
        messages.error(request, "Certificates are only issued for active students.")
        return redirect('student_detail', student_id=student.id)

    pdf = _render_pdf('administration/certificate_pdf.html', {
        'student': student,
        'school': SchoolSettings.load(),
        'issued_on': timezone.localdate(),
    })
    if pdf is None:
        messages.error(request, "Error generating PDF.")
        return redirect('student_detail', student_id=student.id)

    audit.log_action(request.user, 'export', 'certificate', student.pk, request=request)
    response = HttpResponse(pdf, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="certificate_{student.identifier}.pdf"'
    return response


@login_required
@administrator_required
def student_edit(request, student_id):
    student = get_object_or_404(Student, id=student_id)
    if request.method == 'POST':
        form = StudentForm(request.POST, request.FILES, instance=student)
        if form.is_valid():
            student = form.save()
            services.refresh_total_due(student)
            audit.log_action(request.user, 'update', 'student', student.pk, request=request)
            quote = services.enrollment_quote(student)
            messages.success(request, f"Student updated. Due at enrollment: {quote['fees'].total}")
            return redirect('student_detail', student_id=student.id)
    else:
        form = StudentForm(instance=student)

    return render(request, 'administration/student_form.html', {'form': form, 'title': f"Edit {student.full_name}"})


@login_required
@administrator_required
@require_POST
def student_archive(request, student_id):
    student = get_object_or_404(Student, id=student_id)
    services.archive_student(student)
    audit.log_action(request.user, 'archive', 'student', student.pk, request=request)
    messages.success(request, f"{student.full_name} has been archived.")
    return redirect('student_list')


@login_required
@administrator_required
@require_POST
def student_change_status(request, student_id):
    student = get_object_or_404(Student, id=student_id)
    status = request.POST.get('status')
    if status not in dict(Student.STATUS_CHOICES):
        messages.error(request, "Unknown status.")
    else:
        services.set_student_status(student, status)
        messages.success(request, f"{student.full_name} is now {student.get_status_display().lower()}.")
    return redirect('student_detail', student_id=student.id)


@login_required
@administrator_required
@require_POST
def student_delete(request, student_id):
    student = get_object_or_404(Student, id=student_id)
    name, pk = student.full_name, student.pk
    services.delete_student(student)
    audit.log_action(request.user, 'delete', 'student', pk, {'name': name}, request=request)
    messages.success(request, f"{name} deleted.")
    return redirect('student_list')


@login_required
@administrator_required
def export_students(request):
    students = Student.objects.select_related('school_class')
    return _csv_response(students_csv(students), f"students_{date.today():%Y%m%d}.csv")


@login_required
@administrator_required
def export_credentials(request):
    students = list(Student.objects.select_related('school_class'))
    content = credentials_csv(students)
    services.clear_initial_passwords(students)
    audit.log_action(request.user, 'export', 'credentials', request=request)
    return _csv_response(content, f"credentials_{date.today():%Y%m%d}.csv")


@login_required
@administrator_required
def import_students_view(request):
    form = StudentImportForm(request.POST or None, request.FILES or None)
    if request.method == 'POST' and form.is_valid():
        try:
            content = form.cleaned_data['file'].read().decode('utf-8-sig')
        except UnicodeDecodeError:
            messages.error(request, "The file must be UTF-8 encoded CSV.")
            return redirect('import_students')
        succeeded, failed = import_students(content)
        audit.log_action(request.user, 'import', 'student', details={'succeeded': succeeded, 'failed': failed},
                         request=request)
        messages.success(request, f"{succeeded} students imported, {failed} rows rejected.")
        return redirect('student_list')
    return render(request, 'administration/form.html', {'form': form, 'title': "Import students", 'multipart': True})


# ----------------------------------------------------------------------
# Payments
# ----------------------------------------------------------------------

@login_required
@administrator_required
def payment_list(request):
    payments = Payment.objects.select_related('student', 'student__school_class')
    query = request.GET.get('q', '').strip()
    payment_type = request.GET.get('payment_type', '')
    if query:
        payments = payments.filter(
            Q(student__last_name__icontains=query) | Q(student__identifier__icontains=query)
        )
    if payment_type:
        payments = payments.filter(payment_type=payment_type)

    return render(request, 'administration/payment_list.html', {
        'payments': payments,
        'total': payments.aggregate(Sum('amount'))['amount__sum'] or 0,
        'total_revenue': services.total_revenue(),
        'filters': {'q': query, 'payment_type': payment_type},
        'payment_types': Payment.PAYMENT_TYPES,
    })


@login_required
@administrator_required
def payment_create(request):
    initial = {}
    if request.GET.get('student'):
        initial['student'] = request.GET.get('student')

    if request.method == 'POST':
        form = PaymentForm(request.POST)
        if form.is_valid():
            data = form.cleaned_data
            try:
                payment = services.record_payment(
                    data['student'], data['amount'], data['payment_type'], data['method'],
                    data['description'], recorded_by=request.user,
                )
            except ValidationError as e:
                messages.error(request, _error_text(e))
                return redirect('payment_create')
            audit.log_action(request.user, 'create', 'payment', payment.pk,
                             {'amount': str(payment.amount), 'student': payment.student_id}, request=request)
            messages.success(request, f"Payment of {payment.amount} recorded.")
            return redirect('student_detail', student_id=payment.student_id)
    else:
        form = PaymentForm(initial=initial)

    return render(request, 'administration/form.html', {'form': form, 'title': "Record a payment"})


def _payable_items(student, calculator):
    profile = student.fee_profile()
    follow_up = calculator.account_follow_up(profile, student.payments.all())
    if student.payment_mode == 'installments':
        items = [installment_label(i['number']) for i in follow_up.remaining_installments]
    else:
        items = list(follow_up.remaining_months)
    items.extend(option_label(o['name']) for o in follow_up.remaining_options)
    return items


@login_required
@administrator_required
def payment_items(request, student_id):
    student = get_object_or_404(Student, id=student_id)
    calculator = FeeCalculator.from_database()
    items = _payable_items(student, calculator)

    if request.method == 'POST':
        form = ItemPaymentForm(request.POST, item_choices=items)
        if form.is_valid():
            try:
                payments = services.record_item_payments(
                    student, form.cleaned_data['items'], form.cleaned_data['method'],
                    recorded_by=request.user, calculator=calculator,
                )
            except ValidationError as e:
                messages.error(request, _error_text(e))
                return redirect('payment_items', student_id=student.id)
            total = calculator.amount_for_items(student.fee_profile(), form.cleaned_data['items'])
            audit.log_action(request.user, 'create', 'payment', student.pk,
                             {'items': form.cleaned_data['items'], 'total': str(total)}, request=request)
            messages.success(request, f"{len(payments)} payments recorded ({total}).")
            return redirect('student_detail', student_id=student.id)
    else:
        form = ItemPaymentForm(item_choices=items)

    profile = student.fee_profile()
    return render(request, 'administration/payment_items.html', {
        'student': student,
        'form': form,
        'prices': {item: calculator.payment_detail_for_item(profile, item).amount for item in items},
    })


@login_required
def payment_receipt(request, payment_id):
    payment = get_object_or_404(Payment.objects.select_related('student', 'student__school_class'), id=payment_id)
    role = user_role(request.user)
    if role != ADMINISTRATOR and payment.student.user_id != request.user.id:
        return render(request, 'administration/unauthorized.html', status=403)

    pdf = _render_pdf('administration/receipt_pdf.html', {
        'payment': payment,
        'school': SchoolSettings.load(),
        'balance': payment.student.balance(),
    })
    if pdf is None:
        messages.error(request, "Error generating PDF.")
        return redirect('dashboard')

    response = HttpResponse(pdf, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="receipt_{payment.pk}.pdf"'
    return response


@login_required
@administrator_required
def unpaid_list(request):
    class_id = _parse_id(request.GET.get('school_class'))
    rows = statistics.unpaid_students(class_id)

    if request.GET.get('export') == 'csv':
        school_class = SchoolClass.objects.filter(id=class_id).first() if class_id else None
        suffix = school_class.name.replace(' ', '_') if school_class else 'all_classes'
        return _csv_response(unpaid_csv(rows), f"unpaid_{suffix}.csv")

    return render(request, 'administration/unpaid_list.html', {
        'rows': rows,
        'total_due': sum(row['amount_due'] for row in rows),
        'classes': SchoolClass.objects.all(),
        'filters': {'school_class': class_id or ''},
    })


@login_required
@administrator_required
def monthly_revenue(request):
    year_form = RevenueYearForm(request.GET)
    year = year_form.cleaned_data['year'] if year_form.is_valid() else timezone.localdate().year
    report = statistics.yearly_revenue(year)

    if request.GET.get('export') == 'csv':
        return _csv_response(revenue_csv(report['months']), f"monthly_revenue_{year}.csv")

    if request.method == "POST":
        pdf = _render_pdf('administration/revenue_pdf.html', {
            'report': report,
            'school': SchoolSettings.load(),
            'generated_at': timezone.now(),
        })
        if pdf is None:
            messages.error(request, "Error generating PDF.")
            return redirect(f"{request.path}?year={year}")

        RevenueReport.objects.create(
            generated_by=request.user,
            file=ContentFile(pdf, name=f"monthly_revenue_{year}_{timezone.now():%Y%m%d%H%M}.pdf"),
            description=f"Monthly revenue report for {year}",
        )
        messages.success(request, "Revenue report generated and saved.")
        return redirect(f"{request.path}?year={year}")

    return render(request, 'administration/monthly_revenue.html', {
        'report': report,
        'reports': RevenueReport.objects.all()[:20],
    })


@login_required
@administrator_required
def download_revenue_report(request, report_id):
    report = get_object_or_404(RevenueReport, id=report_id)
    return FileResponse(report.file.open('rb'), as_attachment=True, filename=report.file.name.split('/')[-1])


# ----------------------------------------------------------------------
# Teachers
# ----------------------------------------------------------------------

@login_required
@administrator_required
def teacher_list(request):
    teachers = TeacherProfile.objects.select_related('user').prefetch_related('classes', 'subjects')
    query = request.GET.get('q', '').strip()
    status = request.GET.get('status', '')
    contract = request.GET.get('contract_type', '')
    if query:
        teachers = teachers.filter(
            Q(user__last_name__icontains=query) | Q(user__first_name__icontains=query)
            | Q(identifier__icontains=query)
        )
    if status:
        teachers = teachers.filter(status=status)
    if contract:
        teachers = teachers.filter(contract_type=contract)

    return render(request, 'administration/teacher_list.html', {
        'teachers': teachers.distinct(),
        'filters': {'q': query, 'status': status, 'contract_type': contract},
    })


@login_required
@administrator_required
def teacher_create(request):
    form = TeacherCreationForm(request.POST or None)
    if request.method == 'POST' and form.is_valid():
        data = form.cleaned_data
        teacher, password = services.create_teacher(
            data['first_name'], data['last_name'], data['email'], data['contract_type'],
            monthly_salary=data['monthly_salary'], hourly_rate=data['hourly_rate'],
            contract_hours=data['contract_hours'], phone=data['phone'], address=data['address'],
            specialty=data['specialty'],
        )
        audit.log_teacher_created(request.user, teacher, request=request)
        messages.success(request, f"Teacher created. Login: {teacher.identifier} / {password}")
        return redirect('teacher_detail', teacher_id=teacher.id)

    return render(request, 'administration/form.html', {'form': form, 'title': "New teacher"})


@login_required
@administrator_required
def teacher_detail(request, teacher_id):
    teacher = get_object_or_404(TeacherProfile.objects.select_related('user'), id=teacher_id)
    today = timezone.localdate()
    return render(request, 'administration/teacher_detail.html', {
        'teacher': teacher,
        'salary': payroll.teacher_salary(teacher, today.year, today.month),
        'weekly_hours': payroll.teaching_hours(teacher.slots.all()),
        'grid': weekly_grid(teacher.slots.select_related('school_class', 'subject')),
        'days': DAYS,
        'documents': services.active_documents(teacher),
        'attendances': services.attendance_history(teacher)[:10],
        'contacts': teacher.contacts.all()[:10],
    })


@login_required
@administrator_required
def teacher_edit(request, teacher_id):
    teacher = get_object_or_404(TeacherProfile, id=teacher_id)
    if request.method == 'POST':
        user_form = TeacherUserForm(request.POST, instance=teacher.user)
        profile_form = TeacherProfileForm(request.POST, instance=teacher)
        if user_form.is_valid() and profile_form.is_valid():
            changed = user_form.changed_data + profile_form.changed_data
            user_form.save()
            profile_form.save()
            audit.log_teacher_updated(request.user, teacher, changed, request=request)
            messages.success(request, "Teacher updated.")
            return redirect('teacher_detail', teacher_id=teacher.id)
    else:
        user_form = TeacherUserForm(instance=teacher.user)
        profile_form = TeacherProfileForm(instance=teacher)

    return render(request, 'administration/teacher_form.html', {
        'teacher': teacher,
        'user_form': user_form,
        'profile_form': profile_form,
    })


@login_required
@administrator_required
@require_POST
def teacher_toggle_status(request, teacher_id):
    teacher = get_object_or_404(TeacherProfile, id=teacher_id)
    status = 'inactive' if teacher.status == 'active' else 'active'
    services.set_teacher_status(teacher, status)
    audit.log_teacher_updated(request.user, teacher, {'status': status}, request=request)
    messages.success(request, f"{teacher} is now {status}.")
    return redirect('teacher_detail', teacher_id=teacher.id)


@login_required
@administrator_required
@require_POST
def teacher_delete(request, teacher_id):
    teacher = get_object_or_404(TeacherProfile, id=teacher_id)
    pk, name = teacher.pk, teacher.full_name
    services.delete_teacher(teacher)
    audit.log_teacher_deleted(request.user, pk, name, request=request)
    messages.success(request, f"{name} deleted.")
    return redirect('teacher_list')


@login_required
@administrator_required
def teacher_salary(request, teacher_id):
    teacher = get_object_or_404(TeacherProfile, id=teacher_id)
    old_contract = teacher.contract_type
    form = SalaryForm(request.POST or None, instance=teacher)
    if request.method == 'POST' and form.is_valid():
        data = form.cleaned_data
        # the form already applied its values to the instance
        teacher.contract_type = old_contract
        payroll.update_salary_info(
            teacher, data['contract_type'], data['monthly_salary'], data['hourly_rate'],
            data['contract_hours'], modified_by=request.user, reason=data['reason'],
        )
        messages.success(request, "Salary information updated.")
        return redirect('teacher_detail', teacher_id=teacher.id)

    return render(request, 'administration/form.html', {'form': form, 'title': f"Salary - {teacher}"})


@login_required
@administrator_required
def teacher_assign_classes(request, teacher_id):
    teacher = get_object_or_404(TeacherProfile, id=teacher_id)
    form = AssignClassesForm(request.POST or None, initial={'classes': teacher.classes.all()})
    if request.method == 'POST' and form.is_valid():
        classes = form.cleaned_data['classes']
        services.assign_classes(teacher, classes, request.user, form.cleaned_data['reason'])
        audit.log_classes_assigned(request.user, teacher, [c.name for c in classes], request=request)
        messages.success(request, "Classes assigned.")
        return redirect('teacher_detail', teacher_id=teacher.id)
    return render(request, 'administration/form.html', {'form': form, 'title': f"Classes - {teacher}"})


@login_required
@administrator_required
def teacher_assign_subjects(request, teacher_id):
    teacher = get_object_or_404(TeacherProfile, id=teacher_id)
    form = AssignSubjectsForm(request.POST or None, initial={'subjects': teacher.subjects.all()})
    if request.method == 'POST' and form.is_valid():
        services.assign_subjects(teacher, form.cleaned_data['subjects'], request.user, form.cleaned_data['reason'])
        messages.success(request, "Subjects assigned.")
        return redirect('teacher_detail', teacher_id=teacher.id)
    return render(request, 'administration/form.html', {'form': form, 'title': f"Subjects - {teacher}"})


@login_required
@administrator_required
def teacher_history(request, teacher_id):
    teacher = get_object_or_404(TeacherProfile, id=teacher_id)
    return render(request, 'administration/teacher_history.html', {
        'teacher': teacher,
        'history': teacher.history.select_related('modified_by'),
    })


@login_required
@administrator_required
def teacher_contact(request, teacher_id):
    teacher = get_object_or_404(TeacherProfile, id=teacher_id)
    form = TeacherContactForm(request.POST or None)
    if request.method == 'POST' and form.is_valid():
        data = form.cleaned_data
        try:
            contact = services.contact_teacher(teacher, data['contact_type'], data['message'],
                                               data['subject'], sent_by=request.user)
        except ValidationError as e:
            messages.error(request, _error_text(e))
            return redirect('teacher_contact', teacher_id=teacher.id)
        audit.log_message_sent(request.user, teacher, contact.contact_type, contact.subject, request=request)
        if contact.status == 'failed':
            messages.error(request, "The message could not be delivered.")
        else:
            messages.success(request, "Message sent.")
        return redirect('teacher_detail', teacher_id=teacher.id)
    return render(request, 'administration/form.html', {'form': form, 'title': f"Contact {teacher}"})


@login_required
@administrator_required
def teacher_documents(request, teacher_id):
    teacher = get_object_or_404(TeacherProfile, id=teacher_id)
    if request.method == 'POST':
        form = AdministrativeDocumentForm(request.POST, request.FILES)
        if form.is_valid():
            document = form.save(commit=False)
            document.teacher = teacher
            document.added_by = request.user
            document.save()
            audit.log_document_added(request.user, teacher, document, request=request)
            messages.success(request, "Document added.")
            return redirect('teacher_documents', teacher_id=teacher.id)
    else:
        form = AdministrativeDocumentForm()

    return render(request, 'administration/teacher_documents.html', {
        'teacher': teacher,
        'form': form,
        'documents': teacher.documents.all(),
    })


@login_required
@administrator_required
@require_POST
def document_mark_sent(request, document_id):
    document = get_object_or_404(AdministrativeDocument, id=document_id)
    document.mark_sent()
    messages.success(request, f"{document.title} marked as sent.")
    return redirect('teacher_documents', teacher_id=document.teacher_id)


@login_required
@administrator_required
@require_POST
def document_archive(request, document_id):
    document = get_object_or_404(AdministrativeDocument, id=document_id)
    document.status = 'archived'
    document.save(update_fields=['status'])
    messages.success(request, f"{document.title} archived.")
    return redirect('teacher_documents', teacher_id=document.teacher_id)


@login_required
@administrator_required
def teacher_attendance(request, teacher_id):
    teacher = get_object_or_404(TeacherProfile, id=teacher_id)
    form = AttendanceForm(request.POST or None)
    if request.method == 'POST' and form.is_valid():
        data = form.cleaned_data
        services.record_attendance(
            teacher, status=data['status'], date=data['date'], arrival_time=data['arrival_time'],
            departure_time=data['departure_time'], notes=data['notes'],
        )
        messages.success(request, "Attendance recorded.")
        return redirect('teacher_attendance', teacher_id=teacher.id)

    start = _parse_date(request.GET.get('start'))
    end = _parse_date(request.GET.get('end'))
    return render(request, 'administration/teacher_attendance.html', {
        'teacher': teacher,
        'form': form,
        'records': services.attendance_history(teacher, start, end),
        'filters': {'start': request.GET.get('start', ''), 'end': request.GET.get('end', '')},
    })


@login_required
@permission_required('clock_in')
def clock_in(request):
    teacher = get_object_or_404(TeacherProfile, user=request.user)
    session = None

    if request.method == 'POST' and 'generate' in request.POST:
        session = services.start_clock_in(teacher)
        form = ClockInCodeForm()
    elif request.method == 'POST':
        form = ClockInCodeForm(request.POST)
        if form.is_valid():
            try:
                services.validate_clock_in(teacher, form.cleaned_data['code'])
            except ValidationError as e:
                messages.error(request, _error_text(e))
                return redirect('clock_in')
            messages.success(request, "Clock-in recorded.")
            return redirect('teacher_dashboard')
    else:
        form = ClockInCodeForm()

    return render(request, 'administration/clock_in.html', {'form': form, 'session': session})


@login_required
@administrator_required
def payroll_report(request):
    today = timezone.localdate()
    try:
        year = int(request.GET.get('year') or today.year)
        month = int(request.GET.get('month') or today.month)
    except ValueError:
        year, month = today.year, today.month
    if not 1 <= month <= 12:
        month = today.month

    return render(request, 'administration/payroll_report.html', {
        'report': payroll.monthly_salary_report(year, month),
        'months': range(1, 13),
    })


# ----------------------------------------------------------------------
# Administrative staff
# ----------------------------------------------------------------------

@login_required
@administrator_required
def staff_list(request):
    query = request.GET.get('q', '').strip()
    position = request.GET.get('position', '')
    status = request.GET.get('status', '')
    all_staff = StaffMember.objects.all()
    return render(request, 'administration/staff_list.html', {
        'staff': payroll.search_staff(all_staff, query, position, status),
        'stats': payroll.staff_statistics(all_staff),
        'positions': payroll.staff_positions(all_staff),
        'status_choices': StaffMember.STATUS_CHOICES,
        'filters': {'q': query, 'position': position, 'status': status},
    })


@login_required
@administrator_required
def staff_create(request):
    form = StaffMemberForm(request.POST or None)
    if request.method == 'POST' and form.is_valid():
        member = form.save()
        messages.success(request, f"{member.full_name} added.")
        return redirect('staff_list')
    return render(request, 'administration/form.html', {'form': form, 'title': "New staff member"})


@login_required
@administrator_required
def staff_edit(request, staff_id):
    member = get_object_or_404(StaffMember, id=staff_id)
    form = StaffMemberForm(request.POST or None, instance=member)
    if request.method == 'POST' and form.is_valid():
        form.save()
        messages.success(request, "Staff member updated.")
        return redirect('staff_list')
    return render(request, 'administration/form.html', {'form': form, 'title': f"Edit {member.full_name}"})


@login_required
@administrator_required
@require_POST
def staff_delete(request, staff_id):
    member = get_object_or_404(StaffMember, id=staff_id)
    member.delete()
    messages.success(request, "Staff member deleted.")
    return redirect('staff_list')


# ----------------------------------------------------------------------
# Timetable
# ----------------------------------------------------------------------

@login_required
@administrator_required
def timetable(request):
    slots = TimetableSlot.objects.select_related('teacher__user', 'school_class', 'subject')
    class_id = _parse_id(request.GET.get('school_class'))
    teacher_id = _parse_id(request.GET.get('teacher'))
    if class_id:
        slots = slots.filter(school_class_id=class_id)
    if teacher_id:
        slots = slots.filter(teacher_id=teacher_id)

    form = TimetableSlotForm(request.POST or None)
    if request.method == 'POST' and form.is_valid():
        form.save()
        messages.success(request, "Slot added.")
        return redirect('timetable')

    hours = {h.day: h for h in SchoolHours.objects.filter(active=True)}
    return render(request, 'administration/timetable.html', {
        'grid': weekly_grid(slots),
        'days': DAYS,
        'form': form,
        'classes': SchoolClass.objects.all(),
        'teachers': TeacherProfile.objects.filter(status='active').select_related('user'),
        'time_slots': generate_week_slots(hours),
        'filters': {'school_class': class_id or '', 'teacher': teacher_id or ''},
    })


@login_required
@administrator_required
@require_POST
def timetable_slot_delete(request, slot_id):
    get_object_or_404(TimetableSlot, id=slot_id).delete()
    messages.success(request, "Slot removed.")
    return redirect('timetable')


# ----------------------------------------------------------------------
# Absences
# ----------------------------------------------------------------------

@login_required
@administrator_required
def absence_list(request):
    absences = Absence.objects.select_related('student', 'student__school_class')
    on_date = _parse_date(request.GET.get('date'))
    start = _parse_date(request.GET.get('start'))
    end = _parse_date(request.GET.get('end'))
    if on_date:
        absences = absences.filter(date=on_date)
    elif start and end:
        absences = services.absences_for_period(start, end)

    form = AbsenceForm(request.POST or None, request.FILES or None)
    if request.method == 'POST' and form.is_valid():
        form.save()
        messages.success(request, "Absence recorded.")
        return redirect('absence_list')

    return render(request, 'administration/absence_list.html', {
        'absences': absences,
        'form': form,
        'stats': statistics.absence_statistics(),
        'filters': {
            'date': request.GET.get('date', ''),
            'start': request.GET.get('start', ''),
            'end': request.GET.get('end', ''),
        },
    })


@login_required
@administrator_required
def absence_edit(request, absence_id):
    absence = get_object_or_404(Absence, id=absence_id)
    form = AbsenceForm(request.POST or None, request.FILES or None, instance=absence)
    if request.method == 'POST' and form.is_valid():
        form.save()
        messages.success(request, "Absence updated.")
        return redirect('absence_list')
    return render(request, 'administration/form.html', {'form': form, 'title': "Edit absence", 'multipart': True})


@login_required
@administrator_required
def absence_justify(request, absence_id):
    absence = get_object_or_404(Absence, id=absence_id)
    form = JustifyAbsenceForm(request.POST or None, request.FILES or None)
    if request.method == 'POST' and form.is_valid():
        services.justify_absence(absence, form.cleaned_data['reason'], form.cleaned_data['document'])
        messages.success(request, "Absence justified.")
        return redirect('absence_list')
    return render(request, 'administration/form.html', {'form': form, 'title': f"Justify absence - {absence}", 'multipart': True})


@login_required
@administrator_required
@require_POST
def absence_delete(request, absence_id):
    get_object_or_404(Absence, id=absence_id).delete()
    messages.success(request, "Absence deleted.")
    return redirect('absence_list')


# ----------------------------------------------------------------------
# Notifications
# ----------------------------------------------------------------------

@login_required
@administrator_required
def notification_list(request):
    recipient_type = request.GET.get('recipient_type', '')
    items = Notification.objects.select_related('created_by', 'school_class')
    if recipient_type:
        items = notifications.notifications_by_recipient_type(recipient_type)

    form = NotificationForm(request.POST or None)
    if request.method == 'POST' and form.is_valid():
        notification = form.save(commit=False)
        notification.created_by = request.user
        notification.save()
        form.save_m2m()
        if form.cleaned_data['send_now']:
            notifications.send_notification(notification)
            messages.success(request, "Notification sent.")
        else:
            messages.success(request, "Notification saved as draft.")
        return redirect('notification_list')

    return render(request, 'administration/notification_list.html', {
        'notifications': items,
        'form': form,
        'stats': notifications.notification_statistics(),
        'recipient_types': Notification.RECIPIENT_TYPES,
        'recipient_type': recipient_type,
    })


@login_required
@administrator_required
@require_POST
def notification_send(request, notification_id):
    notification = get_object_or_404(Notification, id=notification_id)
    notifications.send_notification(notification)
    messages.success(request, "Notification sent.")
    return redirect('notification_list')


@login_required
@administrator_required
@require_POST
def notification_delete(request, notification_id):
    get_object_or_404(Notification, id=notification_id).delete()
    messages.success(request, "Notification deleted.")
    return redirect('notification_list')


@login_required
def my_notifications(request):
    inbox = notifications.inbox_for(request.user)
    read_ids = set(request.user.notification_receipts.values_list('notification_id', flat=True))
    return render(request, 'administration/my_notifications.html', {
        'notifications': inbox,
        'read_ids': read_ids,
    })


@login_required
@require_POST
def notification_read(request, notification_id):
    notification = get_object_or_404(notifications.inbox_for(request.user), id=notification_id)
    notifications.mark_as_read(notification, request.user)
    return redirect('my_notifications')


# ----------------------------------------------------------------------
# Audit log and reports
# ----------------------------------------------------------------------

@login_required
@administrator_required
def audit_log(request):
    form = AuditFilterForm(request.GET or None)
    logs = audit.filter_logs()
    if form.is_valid():
        data = form.cleaned_data
        logs = audit.filter_logs(
            action=data['action'], resource=data['resource'], start=data['start'],
            end=data['end'], success=data['success'],
        )

    if request.GET.get('export') == 'csv':
        return _csv_response(audit_csv(logs), f"audit_log_{date.today():%Y%m%d}.csv")

    return render(request, 'administration/audit_log.html', {'form': form, 'logs': logs[:200]})


@login_required
@administrator_required
def reports(request):
    today = timezone.localdate()
    return render(request, 'administration/reports.html', {
        'class_stats': statistics.class_statistics(),
        'absence_stats': statistics.absence_statistics(),
        'staff_stats': payroll.staff_statistics(StaffMember.objects.all()),
        'revenue_by_class': statistics.revenue_by_class(),
        'notification_stats': notifications.notification_statistics(),
        'attendance': statistics.teacher_attendance_summary(today.replace(day=1), today),
    })
