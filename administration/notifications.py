import logging

from django.db import IntegrityError
from django.utils import timezone

from .models import Notification, NotificationReceipt

logger = logging.getLogger(__name__)


def create_notification(title, message, recipient_type, created_by=None, priority='normal',
                        kind='information', students=(), teachers=(), school_class=None):
    notification = Notification.objects.create(
        title=title,
        message=message,
        recipient_type=recipient_type,
        school_class=school_class,
        priority=priority,
        kind=kind,
        created_by=created_by,
    )
    if students:
        notification.students.set(students)
    if teachers:
        notification.teachers.set(teachers)
    return notification


def send_notification(notification):
    notification.status = 'sent'
    notification.sent_at = timezone.now()
    notification.save(update_fields=['status', 'sent_at'])
    logger.info("Notification %s sent to %s", notification.pk, notification.recipient_type)
    return notification


def _create_and_send(**kwargs):
    return send_notification(create_notification(**kwargs))


def send_to_student(student, title, message, priority='normal', created_by=None):
    return _create_and_send(title=title, message=message, recipient_type='student',
                            students=[student], priority=priority, created_by=created_by)


def send_to_all_students(title, message, priority='normal', created_by=None):
    return _create_and_send(title=title, message=message, recipient_type='all_students',
                            priority=priority, created_by=created_by)


def send_to_class(school_class, title, message, priority='normal', created_by=None):
    return _create_and_send(title=title, message=message, recipient_type='class',
                            school_class=school_class, priority=priority, created_by=created_by)


def send_to_teacher(teacher, title, message, priority='normal', created_by=None):
    return _create_and_send(title=title, message=message, recipient_type='teacher',
                            teachers=[teacher], priority=priority, created_by=created_by)


def send_to_teachers(teachers, title, message, priority='normal', created_by=None):
    return _create_and_send(title=title, message=message, recipient_type='teacher',
                            teachers=list(teachers), priority=priority, created_by=created_by)


def send_to_all_teachers(title, message, priority='normal', created_by=None):
    return _create_and_send(title=title, message=message, recipient_type='all_teachers',
                            priority=priority, created_by=created_by)


def mark_as_read(notification, user):
    try:
        receipt, _ = NotificationReceipt.objects.get_or_create(notification=notification, user=user)
    except IntegrityError:
        receipt = NotificationReceipt.objects.get(notification=notification, user=user)
    return receipt


def notifications_by_recipient_type(recipient_type):
    return Notification.objects.filter(recipient_type=recipient_type)


def inbox_for(user):
    """Sent notifications addressed to the student or teacher behind ``user``."""
    student = getattr(user, 'student_profile', None)
    if student is not None:
        return Notification.objects.for_student(student)
    teacher = getattr(user, 'teacher_profile', None)
    if teacher is not None:
        return Notification.objects.for_teacher(teacher)
    return Notification.objects.none()


def notification_statistics():
    total = Notification.objects.count()
    sent = Notification.objects.filter(status='sent').count()
    drafts = Notification.objects.filter(status='draft').count()
    return {
        'total': total,
        'sent': sent,
        'drafts': drafts,
        'send_rate': round(sent / total * 100) if total else 0,
    }
