import pytest

from authentication.models import AuditLog
from notifications.models import Notification
from orders.inventory import decrement_order_inventory
from orders.models import Order

from .factories import identity_token, make_order

pytestmark = pytest.mark.django_db


def cancel_url(order_id):
    return f'/api/orders/{order_id}/cancel/'


def test_owner_cancels_pending_order(customer_client, pending_order, pusher_client):
    response = customer_client.post(cancel_url(pending_order.pk))

    assert response.status_code == 200
    body = response.json()
    assert body['success'] is True
    assert body['order']['status'] == 'CANCELLED'

    pending_order.refresh_from_db()
    assert pending_order.status == Order.OrderStatus.CANCELLED
    assert Notification.objects.filter(order=pending_order, type=Notification.Type.ORDER_CANCELLED).exists()
    events = [call.args[1] for call in pusher_client.trigger.call_args_list]
    assert events == ['order.status.updated', 'notification.created']
    assert AuditLog.objects.filter(action='CANCEL', status=AuditLog.Status.SUCCESS).exists()


def test_cancelling_paid_online_order_flags_refund_and_restocks(customer_client, customer, product, variant):
    order = make_order(
        user=customer,
        status=Order.OrderStatus.PROCESSING,
        is_paid=True,
        payment_method=Order.PaymentMethod.VNPAY,
        items=[(product, variant, 3)],
    )
    decrement_order_inventory(order.pk)

    response = customer_client.post(cancel_url(order.pk))

    assert response.status_code == 200
    order.refresh_from_db()
    assert order.status == Order.OrderStatus.CANCELLED
    assert order.requires_refund
    variant.refresh_from_db()
    assert variant.inventory == 10


def test_owner_by_email_may_cancel_guest_order(customer_client, product, variant):
    order = make_order(user=None, email='CUSTOMER@example.com', items=[(product, variant, 1)])

    response = customer_client.post(cancel_url(order.pk))

    assert response.status_code == 200


@pytest.mark.parametrize('status', ['SHIPPED', 'DELIVERED', 'CANCELLED', 'RETURNED'])
def test_cannot_cancel_after_processing(customer_client, customer, status):
    order = make_order(user=customer, status=status)

    response = customer_client.post(cancel_url(order.pk))

    assert response.status_code == 400
    body = response.json()
    assert body['success'] is False
    assert f'"{status}"' in body['message']
    order.refresh_from_db()
    assert order.status == status


def test_non_owner_gets_403_even_for_shipped_order(api_client, other_customer, customer):
    order = make_order(user=customer, status=Order.OrderStatus.SHIPPED)
    api_client.force_authenticate(user=other_customer)

    response = api_client.post(cancel_url(order.pk))

    assert response.status_code == 403
    assert response.json()['success'] is False
    order.refresh_from_db()
    assert order.status == Order.OrderStatus.SHIPPED


def test_admin_can_cancel_any_order(admin_client, pending_order):
    response = admin_client.post(cancel_url(pending_order.pk))

    assert response.status_code == 200


def test_anonymous_gets_401(api_client, pending_order):
    response = api_client.post(cancel_url(pending_order.pk))

    assert response.status_code == 401
    assert response.json()['success'] is False


def test_unknown_order_gets_404(customer_client):
    response = customer_client.post(cancel_url('6f1d9a0e-0d55-4f0f-a5a3-6c8f44a8c0de'))

    assert response.status_code == 404
    assert response.json() == {'success': False, 'message': 'Order not found.'}


def test_second_cancellation_is_rejected(customer_client, pending_order):
    assert customer_client.post(cancel_url(pending_order.pk)).status_code == 200

    response = customer_client.post(cancel_url(pending_order.pk))

    assert response.status_code == 400
    assert Notification.objects.filter(order=pending_order).count() == 1


def test_bearer_token_authenticates_and_provisions_user(api_client, product, variant):
    order = make_order(user=None, email='new.shopper@example.com', items=[(product, variant, 1)])
    token = identity_token('user_2abcDEF', email='new.shopper@example.com')
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

    response = api_client.post(cancel_url(order.pk))

    assert response.status_code == 200
    order.refresh_from_db()
    assert order.status == Order.OrderStatus.CANCELLED


class TestCancelPayment:
    def url(self, order_id):
        return f'/api/orders/{order_id}/cancel-payment/'

    def test_deletes_unpaid_pending_order(self, customer_client, pending_order):
        response = customer_client.delete(self.url(pending_order.pk))

        assert response.status_code == 200
        assert not Order.objects.filter(pk=pending_order.pk).exists()

    def test_refuses_paid_order(self, customer_client, pending_order):
        Order.objects.filter(pk=pending_order.pk).update(is_paid=True, status=Order.OrderStatus.PROCESSING)

        response = customer_client.delete(self.url(pending_order.pk))

        assert response.status_code == 400
        assert Order.objects.filter(pk=pending_order.pk).exists()

    def test_requires_ownership(self, api_client, other_customer, pending_order):
        api_client.force_authenticate(user=other_customer)

        response = api_client.delete(self.url(pending_order.pk))

        assert response.status_code == 403
