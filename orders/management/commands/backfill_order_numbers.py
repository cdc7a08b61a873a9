"""
Management command to assign order numbers to orders that have none.

Usage:
    python manage.py backfill_order_numbers [--dry-run]

Orders imported from older data may lack the customer-facing reference.
Existing numbers are never touched.
"""

from django.core.management.base import BaseCommand
from django.db.models import Q

from orders.models import Order


class Command(BaseCommand):
    help = 'Assign order numbers to orders missing one'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report the orders that would be updated without saving',
        )

    def handle(self, *args, **options):
        missing = Order.objects.filter(Q(order_number__isnull=True) | Q(order_number='')).order_by('created_at')
        total = missing.count()

        if not total:
            self.stdout.write(self.style.SUCCESS('All orders already have an order number.'))
            return

        if options['dry_run']:
            self.stdout.write(f'{total} order(s) would be assigned an order number.')
            return

        for order in missing.iterator():
            order.save(update_fields=['order_number'])
            self.stdout.write(f'  {order.pk} -> {order.order_number}')

        self.stdout.write(self.style.SUCCESS(f'Assigned order numbers to {total} order(s).'))
