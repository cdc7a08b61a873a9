from unittest import mock

import pytest

from notifications import dispatch
from notifications.models import Notification
from orders.services import notify_order_status

from .factories import make_order

pytestmark = pytest.mark.django_db

# Captured at import time, before the autouse fixture swaps in a mock client
real_get_pusher_client = dispatch.get_pusher_client


def test_status_update_is_pushed_to_user_channel(customer, pusher_client):
    order = make_order(user=customer)

    assert dispatch.trigger_order_status_update(customer.pk, order.pk, 'SHIPPED', 'On its way')

    pusher_client.trigger.assert_called_once_with(
        f'user-{customer.pk}',
        'order.status.updated',
        {'orderId': str(order.pk), 'status': 'SHIPPED', 'message': 'On its way'},
    )


def test_push_failure_is_swallowed(customer, pusher_client):
    pusher_client.trigger.side_effect = RuntimeError('pusher down')
    order = make_order(user=customer)

    notification = notify_order_status(order, 'Order has been cancelled', Notification.Type.ORDER_CANCELLED)

    assert notification is not None
    assert notification.message == f'Order {order.order_number}: Order has been cancelled'


def test_guest_orders_are_not_notified(pusher_client):
    order = make_order(user=None, email='guest@example.com')

    assert notify_order_status(order, 'Order is being processed') is None
    assert not pusher_client.trigger.called
    assert not Notification.objects.exists()


def test_unconfigured_pusher_returns_no_client(settings, monkeypatch):
    settings.PUSHER = {'APP_ID': '', 'KEY': '', 'SECRET': '', 'CLUSTER': ''}
    monkeypatch.setattr(dispatch, '_client', None)

    assert real_get_pusher_client() is None


def test_trigger_without_client_reports_not_sent(customer):
    with mock.patch.object(dispatch, 'get_pusher_client', return_value=None):
        assert dispatch.trigger_order_status_update(customer.pk, 'abc', 'PENDING', 'Created') is False
