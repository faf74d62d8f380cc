from django.contrib.auth.models import Group
from django.contrib.auth.signals import user_logged_in, user_logged_out, user_login_failed
from django.db.models.signals import post_migrate
from django.dispatch import receiver

from .decorators import ROLES


@receiver(post_migrate)
def create_groups(sender, **kwargs):
    for role in ROLES:
        Group.objects.get_or_create(name=role)


@receiver(user_logged_in)
def audit_login(sender, request, user, **kwargs):
    from .audit import log_login
    log_login(user, True, request=request)


@receiver(user_login_failed)
def audit_login_failed(sender, credentials, request=None, **kwargs):
    from .audit import log_login
    log_login(None, False, username=credentials.get('username', ''), request=request)


@receiver(user_logged_out)
def audit_logout(sender, request, user, **kwargs):
    from .audit import log_logout
    if user is not None:
        log_logout(user, request=request)
