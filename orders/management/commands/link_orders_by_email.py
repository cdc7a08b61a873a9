"""
Management command to link guest orders to registered users by e-mail.

Usage:
    python manage.py link_orders_by_email [--email someone@example.com]
"""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from orders.services import link_orders_by_email


class Command(BaseCommand):
    help = 'Link orders without a user to the account registered with the same e-mail'

    def add_arguments(self, parser):
        parser.add_argument(
            '--email',
            help='Only link orders for the user with this e-mail',
        )

    def handle(self, *args, **options):
        users = get_user_model().objects.exclude(email='')
        if options['email']:
            users = users.filter(email__iexact=options['email'].strip())
            if not users.exists():
                raise CommandError(f"No user with e-mail {options['email']}")

        linked_total = 0
        for user in users.iterator():
            linked = link_orders_by_email(user)
            if linked:
                linked_total += linked
                self.stdout.write(f'  {user.email}: {linked} order(s)')

        self.stdout.write(self.style.SUCCESS(f'Linked {linked_total} order(s).'))
