from decimal import Decimal
from datetime import time

from django.db import models
from django.db.models import Sum, Q
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.utils import timezone
from django.utils.timezone import now

from .finances import FeeProfile, STANDARD_OPTION_KEYS, payment_status, installment_label
from .timetable import find_conflicts, slot_minutes


CONTRACT_CHOICES = [
    ('cdi', 'Permanent (CDI)'),
    ('cdd', 'Fixed term (CDD)'),
    ('vacataire', 'Hourly (vacataire)'),
    ('consultant', 'Consultant'),
]

DAY_CHOICES = [
    ('monday', 'Monday'),
    ('tuesday', 'Tuesday'),
    ('wednesday', 'Wednesday'),
    ('thursday', 'Thursday'),
    ('friday', 'Friday'),
    ('saturday', 'Saturday'),
]


class SchoolSettings(models.Model):
    PAYMENT_MODES = [
        ('monthly', 'Monthly'),
        ('installments', 'Installments'),
        ('both', 'Monthly and installments'),
    ]

    school_name = models.CharField(max_length=200, blank=True)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    director_name = models.CharField(max_length=100, blank=True)
    academic_year = models.CharField(max_length=20, blank=True)
    start_date = models.DateField(blank=True, null=True)
    end_date = models.DateField(blank=True, null=True)
    payment_modes = models.CharField(max_length=20, choices=PAYMENT_MODES, default='both')
    monthly_due_day = models.PositiveSmallIntegerField(default=5)
    monthly_revenue_target = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('50000000'))

    uniform_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    school_card_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    cooperative_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    sports_uniform_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    insurance_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    class Meta:
        verbose_name_plural = 'school settings'

    def save(self, *args, **kwargs):
        # single row
        self.pk = 1
        super().save(*args, **kwargs)

    @classmethod
    def load(cls):
        obj, _ = cls.objects.get_or_create(pk=1)
        return obj

    def option_prices(self):
        return {key: getattr(self, f"{key}_price") for key in STANDARD_OPTION_KEYS}

    def __str__(self):
        return self.school_name or 'School settings'


class SchoolClass(models.Model):
    name = models.CharField(max_length=50, unique=True)
    level = models.CharField(max_length=50, blank=True)
    capacity = models.PositiveIntegerField(blank=True, null=True)
    registration_fee = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    annual_tuition = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    def active_students_count(self):
        return self.students.filter(status='active').count()

    def active_teachers(self):
        return self.teachers.filter(status='active')

    def assign_teacher(self, teacher):
        # adding an existing relation is a no-op
        self.teachers.add(teacher)


class Subject(models.Model):
    name = models.CharField(max_length=100)
    code = models.CharField(max_length=20, unique=True)
    levels = models.CharField(max_length=200, blank=True, help_text='Comma separated list of levels')
    description = models.TextField(blank=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.code})"

    def level_list(self):
        return [level.strip() for level in self.levels.split(',') if level.strip()]

    def clean(self):
        if self.code and Subject.objects.filter(code__iexact=self.code).exclude(pk=self.pk).exists():
            raise ValidationError({'code': f"Code {self.code} already exists"})

    def delete(self, *args, **kwargs):
        if self.teachers.exists():
            raise ValidationError("This subject is assigned to teachers and cannot be deleted")
        return super().delete(*args, **kwargs)


class CustomOption(models.Model):
    name = models.CharField(max_length=100)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    class Meta:
        ordering = ['name']

    def save(self, *args, **kwargs):
        self.name = self.name.strip()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.name} ({self.price})"


class InstallmentPlan(models.Model):
    number = models.PositiveSmallIntegerField(unique=True)
    percentage = models.DecimalField(max_digits=5, decimal_places=2)
    start_date = models.DateField(blank=True, null=True)
    end_date = models.DateField(blank=True, null=True)

    class Meta:
        ordering = ['number']

    @property
    def label(self):
        return installment_label(self.number)

    def __str__(self):
        return f"{self.label} ({self.percentage}%)"


class SchoolHours(models.Model):
    day = models.CharField(max_length=10, choices=DAY_CHOICES, unique=True)
    opening = models.TimeField(default=time(7, 0))
    closing = models.TimeField(default=time(18, 0))
    morning_break_start = models.TimeField(blank=True, null=True)
    morning_break_end = models.TimeField(blank=True, null=True)
    afternoon_break_start = models.TimeField(blank=True, null=True)
    afternoon_break_end = models.TimeField(blank=True, null=True)
    active = models.BooleanField(default=True)

    class Meta:
        verbose_name_plural = 'school hours'

    def clean(self):
        if self.opening and self.closing and self.closing <= self.opening:
            raise ValidationError("Closing time must be after opening time")

    def __str__(self):
        return f"{self.get_day_display()} {self.opening:%H:%M}-{self.closing:%H:%M}"


class TeacherProfile(models.Model):
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]

    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='teacher_profile')
    identifier = models.CharField(max_length=20, unique=True)
    phone = models.CharField(max_length=20, blank=True)
    address = models.TextField(blank=True)
    specialty = models.CharField(max_length=100, blank=True)
    contract_type = models.CharField(max_length=20, choices=CONTRACT_CHOICES, default='vacataire')
    monthly_salary = models.DecimalField(max_digits=12, decimal_places=2, blank=True, null=True)
    hourly_rate = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    contract_hours = models.PositiveIntegerField(blank=True, null=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active')
    hire_date = models.DateField(default=now)
    classes = models.ManyToManyField(SchoolClass, related_name='teachers', blank=True)
    subjects = models.ManyToManyField(Subject, related_name='teachers', blank=True)

    class Meta:
        ordering = ['user__last_name', 'user__first_name']

    @property
    def full_name(self):
        return f"{self.user.first_name} {self.user.last_name}".strip()

    def __str__(self):
        return self.full_name or self.user.username


class Student(models.Model):
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
    ]
    ENROLLMENT_CHOICES = [
        ('inscription', 'New enrollment'),
        ('reinscription', 'Re-enrollment'),
    ]
    PAYMENT_MODE_CHOICES = [
        ('monthly', 'Monthly'),
        ('installments', 'Installments'),
    ]

    user = models.OneToOneField(User, on_delete=models.SET_NULL, blank=True, null=True, related_name='student_profile')
    identifier = models.CharField(max_length=20, unique=True)
    initial_password = models.CharField(max_length=20, blank=True)

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    birth_date = models.DateField(blank=True, null=True)
    birth_place = models.CharField(max_length=100, blank=True)
    school_class = models.ForeignKey(SchoolClass, on_delete=models.PROTECT, related_name='students')
    previous_class = models.CharField(max_length=50, blank=True)
    parent_name = models.CharField(max_length=100, blank=True)
    parent_contact = models.CharField(max_length=50, blank=True)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    photo = models.ImageField(upload_to='student_photos/', blank=True, null=True)
    enrollment_date = models.DateTimeField(default=now)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active')

    enrollment_type = models.CharField(max_length=20, choices=ENROLLMENT_CHOICES, default='inscription')
    payment_mode = models.CharField(max_length=20, choices=PAYMENT_MODE_CHOICES, default='monthly')
    payment_months = models.JSONField(default=list, blank=True)

    uniform = models.BooleanField(default=False)
    school_card = models.BooleanField(default=False)
    cooperative = models.BooleanField(default=False)
    sports_uniform = models.BooleanField(default=False)
    insurance = models.BooleanField(default=False)
    custom_options = models.ManyToManyField(CustomOption, related_name='students', blank=True)

    total_due = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    class Meta:
        ordering = ['last_name', 'first_name']

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def __str__(self):
        return f"{self.full_name} ({self.identifier})"

    def selected_options(self):
        return {key: getattr(self, key) for key in STANDARD_OPTION_KEYS}

    def fee_profile(self):
        custom = list(self.custom_options.values_list('id', flat=True)) if self.pk else []
        return FeeProfile(
            class_name=self.school_class.name,
            enrollment_type=self.enrollment_type,
            options=self.selected_options(),
            custom_options=custom,
        )

    def total_paid(self):
        return self.payments.aggregate(Sum('amount'))['amount__sum'] or Decimal('0')

    def balance(self):
        return max(self.total_due - self.total_paid(), Decimal('0'))

    def payment_status(self):
        return payment_status(self.total_paid(), self.total_due)


class Payment(models.Model):
    PAYMENT_TYPES = [
        ('tuition', 'Tuition'),
        ('registration', 'Registration'),
        ('other', 'Other'),
    ]
    PAYMENT_METHODS = [
        ('cash', 'Cash'),
        ('cheque', 'Cheque'),
        ('transfer', 'Bank transfer'),
        ('mobile', 'Mobile money'),
    ]

    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='payments')
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    payment_date = models.DateTimeField(default=now)
    payment_type = models.CharField(max_length=20, choices=PAYMENT_TYPES, default='tuition')
    method = models.CharField(max_length=20, choices=PAYMENT_METHODS, default='cash')
    description = models.CharField(max_length=255, blank=True)
    items = models.JSONField(default=list, blank=True)
    recorded_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-payment_date']

    def clean(self):
        if self.amount is not None and self.amount <= 0:
            raise ValidationError({'amount': "Amount must be greater than zero"})

    def __str__(self):
        return f"{self.student.full_name} - {self.amount} ({self.payment_date:%Y-%m-%d})"


class RevenueReport(models.Model):
    generated_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True)
    generated_at = models.DateTimeField(auto_now_add=True)
    file = models.FileField(upload_to='revenue_reports/')
    description = models.TextField(blank=True)

    class Meta:
        ordering = ['-generated_at']

    def __str__(self):
        return f"Revenue report - {self.generated_at.strftime('%Y-%m-%d %H:%M')}"


class Absence(models.Model):
    STATUS_CHOICES = [
        ('absent', 'Absent'),
        ('justified', 'Justified'),
        ('unjustified', 'Unjustified'),
    ]

    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name='absences')
    date = models.DateField(default=now)
    status = models.CharField(max_length=15, choices=STATUS_CHOICES, default='absent')
    reason = models.CharField(max_length=255, blank=True)
    document = models.FileField(upload_to='absence_documents/', blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-date']
        unique_together = ('student', 'date')

    def validate_unique(self, exclude=None):
        if Absence.objects.filter(student_id=self.student_id, date=self.date).exclude(pk=self.pk).exists():
            raise ValidationError("An absence already exists for this student on this date")
        super().validate_unique(exclude=exclude)

    def __str__(self):
        return f"{self.student.full_name} - {self.date} ({self.get_status_display()})"


class TimetableSlot(models.Model):
    teacher = models.ForeignKey(TeacherProfile, on_delete=models.CASCADE, related_name='slots')
    school_class = models.ForeignKey(SchoolClass, on_delete=models.CASCADE, related_name='slots')
    subject = models.ForeignKey(Subject, on_delete=models.SET_NULL, blank=True, null=True, related_name='slots')
    day = models.CharField(max_length=10, choices=DAY_CHOICES)
    start_time = models.TimeField()
    end_time = models.TimeField()
    room = models.CharField(max_length=50, blank=True)

    class Meta:
        ordering = ['day', 'start_time']

    @property
    def duration_hours(self):
        return Decimal(slot_minutes(self.start_time, self.end_time)) / 60

    def clean(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError("End time must be after start time")
        if not (self.teacher_id and self.school_class_id and self.day and self.start_time and self.end_time):
            return
        candidates = TimetableSlot.objects.filter(day=self.day).filter(
            Q(teacher_id=self.teacher_id) | Q(school_class_id=self.school_class_id)
        )
        conflicts = find_conflicts(self, candidates)
        if conflicts:
            other = conflicts[0]
            raise ValidationError(
                f"Overlaps with {other.school_class} / {other.teacher} "
                f"on {other.get_day_display()} {other.start_time:%H:%M}-{other.end_time:%H:%M}"
            )

    def __str__(self):
        return f"{self.get_day_display()} {self.start_time:%H:%M}-{self.end_time:%H:%M} {self.school_class}"


class TeacherAttendance(models.Model):
    STATUS_CHOICES = [
        ('present', 'Present'),
        ('absent', 'Absent'),
        ('late', 'Late'),
    ]
    METHOD_CHOICES = [
        ('manual', 'Manual'),
        ('phone', 'Phone'),
    ]

    teacher = models.ForeignKey(TeacherProfile, on_delete=models.CASCADE, related_name='attendances')
    date = models.DateField(default=now)
    arrival_time = models.TimeField(blank=True, null=True)
    departure_time = models.TimeField(blank=True, null=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='present')
    method = models.CharField(max_length=10, choices=METHOD_CHOICES, default='manual')
    notes = models.TextField(blank=True)

    class Meta:
        ordering = ['-date', '-arrival_time']

    def __str__(self):
        return f"{self.teacher} - {self.date} ({self.get_status_display()})"


class ClockInSession(models.Model):
    teacher = models.ForeignKey(TeacherProfile, on_delete=models.CASCADE, related_name='clock_in_sessions')
    code = models.CharField(max_length=6)
    expires_at = models.DateTimeField()
    used = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def is_valid(self):
        return not self.used and self.expires_at > timezone.now()

    def __str__(self):
        return f"{self.teacher} - {self.code}"


class AssignmentHistory(models.Model):
    KIND_CHOICES = [
        ('class', 'Class'),
        ('subject', 'Subject'),
        ('salary', 'Salary'),
    ]

    teacher = models.ForeignKey(TeacherProfile, on_delete=models.CASCADE, related_name='history')
    kind = models.CharField(max_length=10, choices=KIND_CHOICES)
    old_value = models.TextField(blank=True)
    new_value = models.TextField(blank=True)
    reason = models.CharField(max_length=255, blank=True)
    modified_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    modified_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-modified_at']
        verbose_name_plural = 'assignment history'

    def __str__(self):
        return f"{self.teacher} - {self.get_kind_display()} ({self.modified_at:%Y-%m-%d})"


class AdministrativeDocument(models.Model):
    DOCUMENT_TYPES = [
        ('contract', 'Contract'),
        ('certificate', 'Certificate'),
        ('payslip', 'Payslip'),
        ('evaluation', 'Evaluation'),
        ('other', 'Other'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('archived', 'Archived'),
    ]

    teacher = models.ForeignKey(TeacherProfile, on_delete=models.CASCADE, related_name='documents')
    document_type = models.CharField(max_length=20, choices=DOCUMENT_TYPES, default='other')
    title = models.CharField(max_length=200)
    file = models.FileField(upload_to='teacher_documents/', blank=True, null=True)
    notes = models.TextField(blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active')
    sent = models.BooleanField(default=False)
    sent_at = models.DateTimeField(blank=True, null=True)
    added_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-added_at']

    def mark_sent(self):
        self.sent = True
        self.sent_at = timezone.now()
        self.save(update_fields=['sent', 'sent_at'])

    def __str__(self):
        return self.title


class TeacherContact(models.Model):
    CONTACT_TYPES = [
        ('email', 'E-mail'),
        ('phone', 'Phone'),
        ('sms', 'SMS'),
        ('meeting', 'Meeting'),
    ]
    STATUS_CHOICES = [
        ('sent', 'Sent'),
        ('failed', 'Failed'),
    ]

    teacher = models.ForeignKey(TeacherProfile, on_delete=models.CASCADE, related_name='contacts')
    contact_type = models.CharField(max_length=10, choices=CONTACT_TYPES, default='email')
    subject = models.CharField(max_length=200, blank=True)
    message = models.TextField()
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='sent')
    sent_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    sent_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-sent_at']

    def __str__(self):
        return f"{self.teacher} - {self.get_contact_type_display()}"


class StaffMember(models.Model):
    PAY_MODES = [
        ('fixed', 'Fixed salary'),
        ('hourly', 'Hourly'),
    ]
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('suspended', 'Suspended'),
        ('leave', 'On leave'),
    ]

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    position = models.CharField(max_length=100)
    contract_type = models.CharField(max_length=20, choices=CONTRACT_CHOICES, default='cdi')
    pay_mode = models.CharField(max_length=10, choices=PAY_MODES, default='fixed')
    fixed_salary = models.DecimalField(max_digits=12, decimal_places=2, blank=True, null=True)
    hourly_rate = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    planned_hours = models.PositiveIntegerField(blank=True, null=True)
    phone = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active')
    hire_date = models.DateField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['last_name', 'first_name']

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"

    def __str__(self):
        return f"{self.full_name} ({self.position})"


class NotificationQuerySet(models.QuerySet):

    def for_student(self, student):
        return self.filter(status='sent').filter(
            Q(recipient_type='all_students')
            | Q(recipient_type='student', students=student)
            | Q(recipient_type='class', school_class_id=student.school_class_id)
        ).distinct()

    def for_teacher(self, teacher):
        return self.filter(status='sent').filter(
            Q(recipient_type='all_teachers')
            | Q(recipient_type='teacher', teachers=teacher)
        ).distinct()


class Notification(models.Model):
    RECIPIENT_TYPES = [
        ('student', 'Student'),
        ('all_students', 'All students'),
        ('class', 'Class'),
        ('teacher', 'Teacher'),
        ('all_teachers', 'All teachers'),
    ]
    PRIORITY_CHOICES = [
        ('normal', 'Normal'),
        ('important', 'Important'),
        ('urgent', 'Urgent'),
    ]
    KIND_CHOICES = [
        ('information', 'Information'),
        ('reminder', 'Reminder'),
        ('alert', 'Alert'),
    ]
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('sent', 'Sent'),
    ]

    title = models.CharField(max_length=200)
    message = models.TextField()
    recipient_type = models.CharField(max_length=20, choices=RECIPIENT_TYPES)
    students = models.ManyToManyField(Student, related_name='notifications', blank=True)
    teachers = models.ManyToManyField(TeacherProfile, related_name='notifications', blank=True)
    school_class = models.ForeignKey(SchoolClass, on_delete=models.CASCADE, blank=True, null=True, related_name='notifications')
    priority = models.CharField(max_length=10, choices=PRIORITY_CHOICES, default='normal')
    kind = models.CharField(max_length=20, choices=KIND_CHOICES, default='information')
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='draft')
    created_by = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    sent_at = models.DateTimeField(blank=True, null=True)

    objects = NotificationQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']

    def is_read_by(self, user):
        return self.receipts.filter(user=user).exists()

    def __str__(self):
        return self.title


class NotificationReceipt(models.Model):
    notification = models.ForeignKey(Notification, on_delete=models.CASCADE, related_name='receipts')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='notification_receipts')
    read_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ('notification', 'user')

    def __str__(self):
        return f"{self.notification} read by {self.user}"


class AuditLog(models.Model):
    timestamp = models.DateTimeField(default=now, db_index=True)
    user = models.ForeignKey(User, on_delete=models.SET_NULL, blank=True, null=True)
    username = models.CharField(max_length=150, blank=True)
    role = models.CharField(max_length=30, blank=True)
    action = models.CharField(max_length=50)
    resource = models.CharField(max_length=50)
    resource_id = models.CharField(max_length=50, blank=True)
    details = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(blank=True, null=True)
    user_agent = models.CharField(max_length=255, blank=True)
    success = models.BooleanField(default=True)
    error_message = models.TextField(blank=True)

    class Meta:
        ordering = ['-timestamp', '-id']

    def __str__(self):
        return f"{self.timestamp:%Y-%m-%d %H:%M} {self.username} {self.action} {self.resource}"
