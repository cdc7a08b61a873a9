import pytest

from authentication.models import AuditLog
from notifications.models import Notification
from orders.inventory import decrement_order_inventory
from orders.models import Order

from .factories import make_order, make_user

pytestmark = pytest.mark.django_db


def status_url(order_id):
    return f'/api/orders/{order_id}/status/'


class TestStatusUpdate:
    def test_admin_moves_order_forward(self, admin_client, pending_order, pusher_client):
        response = admin_client.patch(status_url(pending_order.pk), {'status': 'PROCESSING'}, format='json')

        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert body['order']['status'] == 'PROCESSING'
        assert body['order']['next_statuses'] == ['SHIPPED', 'CANCELLED']
        assert Notification.objects.filter(
            order=pending_order, type=Notification.Type.ORDER_CONFIRMED
        ).exists()
        assert pusher_client.trigger.called

    def test_delivering_cod_order_marks_paid(self, admin_client, customer):
        order = make_order(user=customer, status=Order.OrderStatus.SHIPPED)

        response = admin_client.patch(status_url(order.pk), {'status': 'DELIVERED'}, format='json')

        assert response.status_code == 200
        order.refresh_from_db()
        assert order.is_paid
        assert order.delivered_at is not None

    def test_illegal_transition_is_rejected_before_writing(self, admin_client, pending_order):
        response = admin_client.patch(status_url(pending_order.pk), {'status': 'DELIVERED'}, format='json')

        assert response.status_code == 400
        assert 'Valid next statuses: PROCESSING, CANCELLED' in response.json()['message']
        pending_order.refresh_from_db()
        assert pending_order.status == Order.OrderStatus.PENDING
        assert AuditLog.objects.filter(action='UPDATE_STATUS', status=AuditLog.Status.FAILURE).exists()

    def test_unknown_status_value(self, admin_client, pending_order):
        response = admin_client.patch(status_url(pending_order.pk), {'status': 'LOST'}, format='json')

        assert response.status_code == 400
        assert 'Invalid status "LOST"' in response.json()['message']

    def test_missing_status(self, admin_client, pending_order):
        response = admin_client.patch(status_url(pending_order.pk), {}, format='json')

        assert response.status_code == 400
        assert response.json()['success'] is False

    def test_customer_gets_403(self, customer_client, pending_order):
        response = customer_client.patch(status_url(pending_order.pk), {'status': 'PROCESSING'}, format='json')

        assert response.status_code == 403

    def test_anonymous_gets_401(self, api_client, pending_order):
        response = api_client.patch(status_url(pending_order.pk), {'status': 'PROCESSING'}, format='json')

        assert response.status_code == 401

    def test_unknown_order(self, admin_client):
        response = admin_client.patch(
            status_url('6f1d9a0e-0d55-4f0f-a5a3-6c8f44a8c0de'), {'status': 'PROCESSING'}, format='json'
        )

        assert response.status_code == 404

    def test_cancel_through_status_restocks(self, admin_client, customer, product, variant):
        order = make_order(
            user=customer,
            status=Order.OrderStatus.PROCESSING,
            is_paid=True,
            items=[(product, variant, 4)],
        )
        decrement_order_inventory(order.pk)

        response = admin_client.patch(status_url(order.pk), {'status': 'CANCELLED'}, format='json')

        assert response.status_code == 200
        variant.refresh_from_db()
        assert variant.inventory == 10


class TestListing:
    def test_customer_sees_own_orders_only(self, customer_client, customer, other_customer):
        own = make_order(user=customer)
        guest = make_order(user=None, email='customer@example.com')
        make_order(user=other_customer, email='other@example.com')

        response = customer_client.get('/api/orders/')

        assert response.status_code == 200
        ids = {row['id'] for row in response.json()}
        assert ids == {str(own.pk), str(guest.pk)}

    def test_vendor_sees_everything(self, api_client, vendor, customer, other_customer):
        make_order(user=customer)
        make_order(user=other_customer, email='other@example.com')
        api_client.force_authenticate(user=vendor)

        response = api_client.get('/api/orders/')

        assert len(response.json()) == 2

    def test_filter_by_status(self, admin_client, customer):
        make_order(user=customer)
        shipped = make_order(user=customer, status=Order.OrderStatus.SHIPPED)

        response = admin_client.get('/api/orders/', {'status': 'SHIPPED'})

        assert [row['id'] for row in response.json()] == [str(shipped.pk)]

    def test_retrieve_other_customers_order_is_404(self, customer_client, other_customer):
        order = make_order(user=other_customer, email='other@example.com')

        response = customer_client.get(f'/api/orders/{order.pk}/')

        assert response.status_code == 404


class TestLinkUser:
    def test_links_guest_orders_by_email(self, api_client):
        first = make_order(user=None, email='late.signup@example.com')
        second = make_order(user=None, email='LATE.SIGNUP@example.com')
        user = make_user('late.signup@example.com')
        api_client.force_authenticate(user=user)

        response = api_client.post('/api/orders/link-user/')

        assert response.status_code == 200
        assert response.json()['linked'] == 2
        first.refresh_from_db()
        second.refresh_from_db()
        assert first.user == user
        assert second.user == user


class TestBulkDelete:
    url = '/api/orders/bulk-delete/'

    def test_only_finished_orders_are_deleted(self, admin_client, customer):
        delivered = make_order(user=customer, status=Order.OrderStatus.DELIVERED)
        cancelled = make_order(user=customer, status=Order.OrderStatus.CANCELLED)
        pending = make_order(user=customer)

        response = admin_client.post(
            self.url, {'ids': [str(delivered.pk), str(cancelled.pk), str(pending.pk)]}, format='json'
        )

        assert response.status_code == 200
        body = response.json()
        assert body['deleted'] == 2
        assert body['skipped_ids'] == [str(pending.pk)]
        assert list(Order.objects.values_list('pk', flat=True)) == [pending.pk]

    def test_requires_admin(self, customer_client, customer):
        order = make_order(user=customer, status=Order.OrderStatus.DELIVERED)

        response = customer_client.post(self.url, {'ids': [str(order.pk)]}, format='json')

        assert response.status_code == 403
        assert Order.objects.filter(pk=order.pk).exists()
