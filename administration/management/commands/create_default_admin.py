from django.conf import settings
from django.contrib.auth.models import Group, User
from django.core.management.base import BaseCommand, CommandError

from administration.decorators import ADMINISTRATOR


class Command(BaseCommand):
    help = "Create the administrator account from DEFAULT_ADMIN_USERNAME / DEFAULT_ADMIN_PASSWORD"

    def handle(self, *args, **options):
        username = settings.DEFAULT_ADMIN_USERNAME
        password = settings.DEFAULT_ADMIN_PASSWORD
        if not password:
            raise CommandError("DEFAULT_ADMIN_PASSWORD is not set")

        group, _ = Group.objects.get_or_create(name=ADMINISTRATOR)
        user, created = User.objects.get_or_create(username=username, defaults={'is_staff': True})
        if created:
            user.set_password(password)
            user.save()
        user.groups.add(group)

        if created:
            self.stdout.write(self.style.SUCCESS(f"Administrator '{username}' created"))
        else:
            self.stdout.write(f"Administrator '{username}' already exists")
