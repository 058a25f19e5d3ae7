"""
Management command to settle group buys past their deadline.

Groups that reached their minimum are completed (and their leader rewarded),
the rest are marked expired. Safe to run repeatedly, e.g. from cron.

Usage:
    python manage.py process_expired_groups
    python manage.py process_expired_groups --dry-run
"""

from django.core.management.base import BaseCommand
from django.utils import timezone
from apps.groupbuys.services import get_group_service


class Command(BaseCommand):
    help = 'Complete or expire active group buys whose deadline has passed'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List overdue groups without changing them',
        )

    def handle(self, *args, **options):
        service = get_group_service()
        now = timezone.now()

        overdue = service.store.find_expired_active(now)

        if not overdue:
            self.stdout.write(
                self.style.SUCCESS('No overdue groups. All good!')
            )
            return

        self.stdout.write(f'\nFound {len(overdue)} overdue group(s):\n')

        for group in overdue:
            outcome = 'complete' if group.is_minimum_reached() else 'expire'
            self.stdout.write(
                f'  - {group.code} | {group.product_name} | '
                f'{group.current_participants}/{group.min_participants} min | would {outcome}'
            )

        if options['dry_run']:
            self.stdout.write(
                self.style.WARNING('\n--dry-run mode: No changes made.')
            )
            return

        result = service.process_expired_groups(now=now)

        self.stdout.write(
            self.style.SUCCESS(
                f"\nProcessed {result['processed']} group(s): "
                f"{result['completed']} completed, {result['expired']} expired"
            )
        )
        if result['failed']:
            self.stdout.write(
                self.style.ERROR(f"{result['failed']} group(s) failed, see logs")
            )
