from django.conf import settings
from django.core.management.base import BaseCommand

from administration.audit import cleanup_old_logs


class Command(BaseCommand):
    help = "Delete audit log entries older than the retention period"

    def add_arguments(self, parser):
        parser.add_argument('--days', type=int, default=settings.AUDIT_LOG_RETENTION_DAYS)

    def handle(self, *args, **options):
        deleted = cleanup_old_logs(options['days'])
        self.stdout.write(self.style.SUCCESS(f"{deleted} audit entries removed"))
