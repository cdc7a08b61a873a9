from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from orders.models import Order

from .factories import make_order, make_user

pytestmark = pytest.mark.django_db


def test_backfill_order_numbers(customer):
    order = make_order(user=customer)
    Order.objects.filter(pk=order.pk).update(order_number=None)
    out = StringIO()

    call_command('backfill_order_numbers', stdout=out)

    order.refresh_from_db()
    assert order.order_number
    assert '1' in out.getvalue()


def test_backfill_dry_run_writes_nothing(customer):
    order = make_order(user=customer)
    Order.objects.filter(pk=order.pk).update(order_number=None)

    call_command('backfill_order_numbers', '--dry-run', stdout=StringIO())

    order.refresh_from_db()
    assert order.order_number is None


def test_link_orders_by_email_for_all_users():
    order = make_order(user=None, email='late@example.com')
    user = make_user('late@example.com')
    out = StringIO()

    call_command('link_orders_by_email', stdout=out)

    order.refresh_from_db()
    assert order.user == user
    assert 'Linked 1 order(s).' in out.getvalue()


def test_link_orders_skips_placeholder_emails():
    make_order(user=None, email='user_abc@temp.local')
    make_user('user_abc@temp.local')

    call_command('link_orders_by_email', stdout=StringIO())

    assert Order.objects.filter(user__isnull=True).count() == 1


def test_link_orders_unknown_email():
    with pytest.raises(CommandError):
        call_command('link_orders_by_email', '--email', 'nobody@example.com')
