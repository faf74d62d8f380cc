from datetime import timedelta
from io import StringIO

import pytest
from django.contrib.auth.models import AnonymousUser, User
from django.core.management import CommandError, call_command
from django.db import DatabaseError
from django.test import RequestFactory
from django.urls import reverse
from django.utils import timezone

from administration import audit
from administration.decorators import ADMINISTRATOR
from administration.models import AuditLog

pytestmark = pytest.mark.django_db


def test_log_action_records_user_and_role(administrator):
    entry = audit.log_action(administrator, 'create', 'student', 12, {'identifier': 'elvawdi123'})
    assert entry.username == 'director'
    assert entry.role == ADMINISTRATOR
    assert entry.resource_id == '12'
    assert entry.details == {'identifier': 'elvawdi123'}
    assert entry.success


def test_log_action_for_anonymous_user():
    entry = audit.log_action(AnonymousUser(), 'login', 'auth', success=False, error_message='Invalid credentials')
    assert entry.user is None
    assert entry.username == ''
    assert not entry.success


def test_log_action_reads_client_address(administrator):
    request = RequestFactory().get('/', HTTP_X_FORWARDED_FOR='10.0.0.5, 10.0.0.1', HTTP_USER_AGENT='pytest')
    entry = audit.log_action(administrator, 'export', 'credentials', request=request)
    assert entry.ip_address == '10.0.0.5'
    assert entry.user_agent == 'pytest'


def test_log_action_survives_database_errors(administrator, monkeypatch):
    def broken_create(**kwargs):
        raise DatabaseError('disk full')

    monkeypatch.setattr(AuditLog.objects, 'create', broken_create)
    assert audit.log_action(administrator, 'create', 'student') is None


def test_log_keeps_only_the_newest_entries(administrator, settings):
    settings.AUDIT_LOG_MAX_ENTRIES = 3
    AuditLog.objects.all().delete()
    for number in range(5):
        audit.log_action(administrator, 'update', 'student', number)
    assert AuditLog.objects.count() == 3
    assert sorted(AuditLog.objects.values_list('resource_id', flat=True)) == ['2', '3', '4']


def test_named_helpers(administrator, teacher):
    audit.log_teacher_created(administrator, teacher)
    audit.log_classes_assigned(administrator, teacher, ['6A'])
    audit.log_error(administrator, 'delete', 'teacher', ValueError('still assigned'))

    created = AuditLog.objects.get(action='create', resource='teacher')
    assert created.details['identifier'] == teacher.identifier
    failed = AuditLog.objects.get(action='delete')
    assert not failed.success
    assert failed.error_message == 'still assigned'


def test_filter_logs(administrator):
    AuditLog.objects.all().delete()
    audit.log_action(administrator, 'create', 'student')
    audit.log_action(administrator, 'delete', 'student', success=False)
    audit.log_action(administrator, 'create', 'payment')

    assert audit.filter_logs(action='create').count() == 2
    assert audit.filter_logs(resource='student').count() == 2
    assert audit.filter_logs(success=False).count() == 1
    assert audit.filter_logs(user=administrator, start=timezone.localdate()).count() == 3


def test_cleanup_old_logs(administrator):
    AuditLog.objects.all().delete()
    old = audit.log_action(administrator, 'create', 'student')
    AuditLog.objects.filter(pk=old.pk).update(timestamp=timezone.now() - timedelta(days=120))
    audit.log_action(administrator, 'create', 'payment')

    assert audit.cleanup_old_logs(90) == 1
    assert list(AuditLog.objects.values_list('resource', flat=True)) == ['payment']


def test_cleanup_command(administrator):
    old = audit.log_action(administrator, 'create', 'student')
    AuditLog.objects.filter(pk=old.pk).update(timestamp=timezone.now() - timedelta(days=40))
    out = StringIO()
    call_command('cleanup_audit_logs', '--days', '30', stdout=out)
    assert '1 audit entries removed' in out.getvalue()


def test_successful_and_failed_logins_are_audited(client, administrator):
    AuditLog.objects.all().delete()
    client.post(reverse('login'), {'username': 'director', 'password': 'wrong'})
    client.post(reverse('login'), {'username': 'director', 'password': 'secret-pass'})

    failed = AuditLog.objects.get(action='login', success=False)
    assert failed.details['username'] == 'director'
    assert failed.user is None
    assert AuditLog.objects.filter(action='login', success=True, user=administrator).exists()


def test_logout_is_audited(administrator_client, administrator):
    administrator_client.post(reverse('logout'))
    assert AuditLog.objects.filter(action='logout', user=administrator).exists()


def test_create_default_admin(settings):
    settings.DEFAULT_ADMIN_USERNAME = 'principal'
    settings.DEFAULT_ADMIN_PASSWORD = 'a-long-password'
    call_command('create_default_admin', stdout=StringIO())
    call_command('create_default_admin', stdout=StringIO())

    user = User.objects.get(username='principal')
    assert user.check_password('a-long-password')
    assert user.groups.filter(name=ADMINISTRATOR).exists()


def test_create_default_admin_needs_password(settings):
    settings.DEFAULT_ADMIN_PASSWORD = ''
    with pytest.raises(CommandError):
        call_command('create_default_admin', stdout=StringIO())
