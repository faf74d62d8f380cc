"""
Audit trail of administrative actions.

Writing an audit entry must never break the action being audited, so
``log_action`` logs its own failures and returns None instead of raising.
"""
from datetime import timedelta
import logging

from django.conf import settings
from django.db import DatabaseError
from django.utils import timezone

from .decorators import user_role
from .models import AuditLog

logger = logging.getLogger(__name__)


def _client_info(request):
    if request is None:
        return None, ''
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    ip = forwarded.split(',')[0].strip() if forwarded else request.META.get('REMOTE_ADDR')
    return ip or None, request.META.get('HTTP_USER_AGENT', '')[:255]


def log_action(user, action, resource, resource_id='', details=None, success=True,
               error_message='', request=None):
    if user is not None and not user.is_authenticated:
        user = None
    ip, agent = _client_info(request)
    try:
        entry = AuditLog.objects.create(
            user=user,
            username=user.get_username() if user else '',
            role=(user_role(user) or '') if user else '',
            action=action,
            resource=resource,
            resource_id=str(resource_id or ''),
            details=details or {},
            ip_address=ip,
            user_agent=agent,
            success=success,
            error_message=error_message or '',
        )
        trim_logs()
        return entry
    except DatabaseError:
        logger.exception("Could not write audit entry %s/%s", action, resource)
        return None


def trim_logs(max_entries=None):
    """Keep only the newest ``AUDIT_LOG_MAX_ENTRIES`` rows."""
    limit = max_entries if max_entries is not None else settings.AUDIT_LOG_MAX_ENTRIES
    keep = list(AuditLog.objects.order_by('-timestamp', '-id').values_list('id', flat=True)[:limit])
    deleted, _ = AuditLog.objects.exclude(id__in=keep).delete()
    return deleted


def log_teacher_created(user, teacher, request=None):
    return log_action(user, 'create', 'teacher', teacher.pk, {
        'name': teacher.full_name,
        'identifier': teacher.identifier,
    }, request=request)


def log_teacher_updated(user, teacher, changes, request=None):
    return log_action(user, 'update', 'teacher', teacher.pk, {'changes': changes}, request=request)


def log_teacher_deleted(user, teacher_id, name, request=None):
    return log_action(user, 'delete', 'teacher', teacher_id, {'name': name}, request=request)


def log_classes_assigned(user, teacher, class_names, request=None):
    return log_action(user, 'assign_classes', 'teacher', teacher.pk, {'classes': class_names}, request=request)


def log_message_sent(user, teacher, contact_type, subject, request=None):
    return log_action(user, 'send_message', 'teacher', teacher.pk, {
        'type': contact_type,
        'subject': subject,
    }, request=request)


def log_document_added(user, teacher, document, request=None):
    return log_action(user, 'add_document', 'document', document.pk, {
        'teacher': teacher.pk,
        'title': document.title,
        'type': document.document_type,
    }, request=request)


def log_error(user, action, resource, error, request=None):
    return log_action(user, action, resource, success=False, error_message=str(error), request=request)


def log_login(user, success, username='', request=None):
    details = {'username': username or (user.get_username() if user else '')}
    return log_action(user if success else None, 'login', 'auth', details=details, success=success,
                      error_message='' if success else 'Invalid credentials', request=request)


def log_logout(user, request=None):
    return log_action(user, 'logout', 'auth', request=request)


def filter_logs(user=None, action=None, resource=None, start=None, end=None, success=None):
    logs = AuditLog.objects.select_related('user')
    if user:
        logs = logs.filter(user=user)
    if action:
        logs = logs.filter(action=action)
    if resource:
        logs = logs.filter(resource=resource)
    if start:
        logs = logs.filter(timestamp__date__gte=start)
    if end:
        logs = logs.filter(timestamp__date__lte=end)
    if success is not None:
        logs = logs.filter(success=success)
    return logs


def cleanup_old_logs(days=None):
    days = days if days is not None else settings.AUDIT_LOG_RETENTION_DAYS
    cutoff = timezone.now() - timedelta(days=days)
    deleted, _ = AuditLog.objects.filter(timestamp__lt=cutoff).delete()
    logger.info("Removed %s audit entries older than %s days", deleted, days)
    return deleted
