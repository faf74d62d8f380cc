from django import forms
from django.contrib.auth.models import User

from .finances import SCHOOL_YEAR_MONTHS
from .models import (
    Absence, AdministrativeDocument, CustomOption, InstallmentPlan, Notification, Payment,
    SchoolClass, SchoolHours, SchoolSettings, StaffMember, Student, Subject, TeacherContact,
    TeacherProfile, TimetableSlot, CONTRACT_CHOICES,
)

DATE_INPUT = forms.DateInput(attrs={'type': 'date'})
TIME_INPUT = forms.TimeInput(attrs={'type': 'time'}, format='%H:%M')


class LoginForm(forms.Form):
    username = forms.CharField(label='Username or e-mail')
    password = forms.CharField(widget=forms.PasswordInput)


class SchoolSettingsForm(forms.ModelForm):
    class Meta:
        model = SchoolSettings
        fields = [
            'school_name', 'address', 'phone', 'email', 'director_name', 'academic_year',
            'start_date', 'end_date', 'payment_modes', 'monthly_due_day', 'monthly_revenue_target',
            'uniform_price', 'school_card_price', 'cooperative_price', 'sports_uniform_price',
            'insurance_price',
        ]
        widgets = {
            'address': forms.Textarea(attrs={'rows': 2}),
            'start_date': DATE_INPUT,
            'end_date': DATE_INPUT,
        }

    def clean_monthly_due_day(self):
        day = self.cleaned_data['monthly_due_day']
        if not 1 <= day <= 28:
            raise forms.ValidationError("Choose a day between 1 and 28")
        return day


class SchoolClassForm(forms.ModelForm):
    class Meta:
        model = SchoolClass
        fields = ['name', 'level', 'capacity', 'registration_fee', 'annual_tuition']


class CustomOptionForm(forms.ModelForm):
    class Meta:
        model = CustomOption
        fields = ['name', 'price']

    def clean_name(self):
        name = self.cleaned_data['name'].strip()
        if not name:
            raise forms.ValidationError("Option name is required")
        return name


class InstallmentPlanForm(forms.ModelForm):
    class Meta:
        model = InstallmentPlan
        fields = ['number', 'percentage', 'start_date', 'end_date']
        widgets = {'start_date': DATE_INPUT, 'end_date': DATE_INPUT}

    def clean_percentage(self):
        percentage = self.cleaned_data['percentage']
        if percentage <= 0 or percentage > 100:
            raise forms.ValidationError("Percentage must be between 0 and 100")
        return percentage


class SchoolHoursForm(forms.ModelForm):
    class Meta:
        model = SchoolHours
        fields = [
            'day', 'opening', 'closing', 'morning_break_start', 'morning_break_end',
            'afternoon_break_start', 'afternoon_break_end', 'active',
        ]
        widgets = {
            'opening': TIME_INPUT,
            'closing': TIME_INPUT,
            'morning_break_start': TIME_INPUT,
            'morning_break_end': TIME_INPUT,
            'afternoon_break_start': TIME_INPUT,
            'afternoon_break_end': TIME_INPUT,
        }


class StudentForm(forms.ModelForm):
    payment_months = forms.MultipleChoiceField(
        label='Paid at enrollment',
        choices=[],
        required=False,
        widget=forms.CheckboxSelectMultiple,
        help_text='Months for monthly payment, installments otherwise',
    )

    class Meta:
        model = Student
        fields = [
            'first_name', 'last_name', 'birth_date', 'birth_place', 'school_class', 'previous_class',
            'parent_name', 'parent_contact', 'address', 'phone', 'email', 'photo',
            'enrollment_type', 'payment_mode', 'payment_months',
            'uniform', 'school_card', 'cooperative', 'sports_uniform', 'insurance', 'custom_options',
        ]
        widgets = {
            'birth_date': DATE_INPUT,
            'address': forms.Textarea(attrs={'rows': 2}),
            'custom_options': forms.CheckboxSelectMultiple,
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['payment_months'].choices = (
            [(m, m) for m in SCHOOL_YEAR_MONTHS]
            + [(plan.label, str(plan)) for plan in InstallmentPlan.objects.all()]
        )

    def clean(self):
        cleaned = super().clean()
        items = cleaned.get('payment_months') or []
        if cleaned.get('payment_mode') == 'monthly':
            cleaned['payment_months'] = [item for item in items if item in SCHOOL_YEAR_MONTHS]
        elif cleaned.get('payment_mode') == 'installments':
            cleaned['payment_months'] = [item for item in items if item not in SCHOOL_YEAR_MONTHS]
        return cleaned


class StudentImportForm(forms.Form):
    file = forms.FileField(label='CSV file')


class PaymentForm(forms.ModelForm):
    class Meta:
        model = Payment
        fields = ['student', 'amount', 'payment_type', 'method', 'description']

    def clean_amount(self):
        amount = self.cleaned_data['amount']
        if amount <= 0:
            raise forms.ValidationError("Amount must be greater than zero")
        return amount


class ItemPaymentForm(forms.Form):
    method = forms.ChoiceField(choices=Payment.PAYMENT_METHODS)
    items = forms.MultipleChoiceField(choices=[], widget=forms.CheckboxSelectMultiple)

    def __init__(self, *args, **kwargs):
        item_choices = kwargs.pop('item_choices', [])
        super().__init__(*args, **kwargs)
        self.fields['items'].choices = [(item, item) for item in item_choices]


class TeacherCreationForm(forms.Form):
    first_name = forms.CharField(max_length=150)
    last_name = forms.CharField(max_length=150)
    email = forms.EmailField(required=False)
    phone = forms.CharField(max_length=20, required=False)
    address = forms.CharField(widget=forms.Textarea(attrs={'rows': 2}), required=False)
    specialty = forms.CharField(max_length=100, required=False)
    contract_type = forms.ChoiceField(choices=CONTRACT_CHOICES)
    monthly_salary = forms.DecimalField(max_digits=12, decimal_places=2, required=False)
    hourly_rate = forms.DecimalField(max_digits=10, decimal_places=2, required=False)
    contract_hours = forms.IntegerField(min_value=1, required=False)

    def clean_email(self):
        email = self.cleaned_data['email']
        if email and User.objects.filter(email__iexact=email).exists():
            raise forms.ValidationError("This e-mail is already used by another account")
        return email

    def clean(self):
        cleaned = super().clean()
        contract = cleaned.get('contract_type')
        if contract == 'vacataire' and not cleaned.get('hourly_rate'):
            self.add_error('hourly_rate', "An hourly rate is required for hourly teachers")
        if contract == 'cdi' and not cleaned.get('monthly_salary'):
            self.add_error('monthly_salary', "A monthly salary is required for permanent teachers")
        return cleaned


class TeacherUserForm(forms.ModelForm):
    class Meta:
        model = User
        fields = ['first_name', 'last_name', 'email']


class TeacherProfileForm(forms.ModelForm):
    class Meta:
        model = TeacherProfile
        fields = ['phone', 'address', 'specialty', 'hire_date']
        widgets = {
            'address': forms.Textarea(attrs={'rows': 2}),
            'hire_date': DATE_INPUT,
        }


class SalaryForm(forms.ModelForm):
    reason = forms.CharField(max_length=255, required=False)

    class Meta:
        model = TeacherProfile
        fields = ['contract_type', 'monthly_salary', 'hourly_rate', 'contract_hours']


class AssignClassesForm(forms.Form):
    classes = forms.ModelMultipleChoiceField(
        queryset=SchoolClass.objects.all(),
        required=False,
        widget=forms.CheckboxSelectMultiple,
    )
    reason = forms.CharField(max_length=255, required=False)


class AssignSubjectsForm(forms.Form):
    subjects = forms.ModelMultipleChoiceField(
        queryset=Subject.objects.all(),
        required=False,
        widget=forms.CheckboxSelectMultiple,
    )
    reason = forms.CharField(max_length=255, required=False)


class TeacherContactForm(forms.ModelForm):
    class Meta:
        model = TeacherContact
        fields = ['contact_type', 'subject', 'message']
        widgets = {'message': forms.Textarea(attrs={'rows': 4})}


class AdministrativeDocumentForm(forms.ModelForm):
    class Meta:
        model = AdministrativeDocument
        fields = ['document_type', 'title', 'file', 'notes']
        widgets = {'notes': forms.Textarea(attrs={'rows': 2})}


class AttendanceForm(forms.Form):
    STATUS_CHOICES = [
        ('present', 'Present'),
        ('absent', 'Absent'),
        ('late', 'Late'),
    ]

    status = forms.ChoiceField(choices=STATUS_CHOICES)
    date = forms.DateField(required=False, widget=DATE_INPUT)
    arrival_time = forms.TimeField(required=False, widget=TIME_INPUT)
    departure_time = forms.TimeField(required=False, widget=TIME_INPUT)
    notes = forms.CharField(required=False, widget=forms.Textarea(attrs={'rows': 2}))


class ClockInCodeForm(forms.Form):
    code = forms.RegexField(regex=r'^\d{6}$', max_length=6,
                            error_messages={'invalid': "Enter the 6-digit code"})


class StaffMemberForm(forms.ModelForm):
    class Meta:
        model = StaffMember
        fields = [
            'first_name', 'last_name', 'position', 'contract_type', 'pay_mode', 'fixed_salary',
            'hourly_rate', 'planned_hours', 'phone', 'email', 'status', 'hire_date',
        ]
        widgets = {'hire_date': DATE_INPUT}


class SubjectForm(forms.ModelForm):
    class Meta:
        model = Subject
        fields = ['name', 'code', 'levels', 'description']
        widgets = {'description': forms.Textarea(attrs={'rows': 2})}


class TimetableSlotForm(forms.ModelForm):
    class Meta:
        model = TimetableSlot
        fields = ['teacher', 'school_class', 'subject', 'day', 'start_time', 'end_time', 'room']
        widgets = {'start_time': TIME_INPUT, 'end_time': TIME_INPUT}


class AbsenceForm(forms.ModelForm):
    class Meta:
        model = Absence
        fields = ['student', 'date', 'status', 'reason', 'document']
        widgets = {'date': DATE_INPUT}


class JustifyAbsenceForm(forms.Form):
    reason = forms.CharField(max_length=255)
    document = forms.FileField(required=False)


class NotificationForm(forms.ModelForm):
    send_now = forms.BooleanField(required=False, initial=True)

    class Meta:
        model = Notification
        fields = ['title', 'message', 'recipient_type', 'students', 'teachers', 'school_class', 'priority', 'kind']
        widgets = {
            'message': forms.Textarea(attrs={'rows': 4}),
            'students': forms.SelectMultiple(attrs={'size': 6}),
            'teachers': forms.SelectMultiple(attrs={'size': 6}),
        }

    def clean(self):
        cleaned = super().clean()
        recipient = cleaned.get('recipient_type')
        if recipient == 'student' and not cleaned.get('students'):
            self.add_error('students', "Choose at least one student")
        if recipient == 'teacher' and not cleaned.get('teachers'):
            self.add_error('teachers', "Choose at least one teacher")
        if recipient == 'class' and not cleaned.get('school_class'):
            self.add_error('school_class', "Choose a class")
        return cleaned


class AuditFilterForm(forms.Form):
    action = forms.CharField(required=False)
    resource = forms.CharField(required=False)
    start = forms.DateField(required=False, widget=DATE_INPUT)
    end = forms.DateField(required=False, widget=DATE_INPUT)
    success = forms.NullBooleanField(required=False)


class RevenueYearForm(forms.Form):
    year = forms.IntegerField(min_value=2000, max_value=2100)
