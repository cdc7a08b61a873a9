from decimal import Decimal
from unittest import mock

import pytest
import requests

from authentication.models import AuditLog
from notifications.models import Notification
from orders.models import Order
from payments import momo, vnpay
from payments.reconciliation import PaymentNotification, ReconciliationOutcome, reconcile_payment

from .factories import make_order, make_user

pytestmark = pytest.mark.django_db

MOMO_IPN_URL = '/api/momo/ipn/'
VNPAY_IPN_URL = '/api/vnpay/ipn/'


def momo_payload(order_id, result_code=0, amount=500000, **overrides):
    payload = {
        'partnerCode': 'MOMOTEST',
        'orderId': str(order_id),
        'requestId': str(order_id),
        'amount': amount,
        'orderInfo': 'Payment for order',
        'orderType': 'momo_wallet',
        'transId': 4088878653,
        'resultCode': result_code,
        'message': 'Successful.' if result_code == 0 else 'Transaction denied by user.',
        'payType': 'qr',
        'responseTime': 1721720663942,
        'extraData': '',
    }
    payload.update(overrides)
    raw = momo.build_raw_signature(
        momo.IPN_SIGNATURE_FIELDS, dict(payload, accessKey='test-access-key')
    )
    payload['signature'] = momo.generate_signature(raw, 'test-momo-secret')
    return payload


def post_ipn(api_client, payload):
    return api_client.post(MOMO_IPN_URL, payload, format='json')


def test_health_check(api_client):
    response = api_client.get(MOMO_IPN_URL)

    assert response.status_code == 200
    assert response.json()['success'] is True


def test_success_marks_order_paid_and_processing(api_client, pending_order, variant, pusher_client):
    response = post_ipn(api_client, momo_payload(pending_order.pk))

    assert response.status_code == 200
    assert response.json() == {'success': True, 'message': 'IPN received successfully'}

    pending_order.refresh_from_db()
    assert pending_order.is_paid
    assert pending_order.status == Order.OrderStatus.PROCESSING
    assert pending_order.transaction_id == '4088878653'
    assert pending_order.inventory_decremented

    variant.refresh_from_db()
    assert variant.inventory == 8

    assert Notification.objects.filter(order=pending_order, type=Notification.Type.ORDER_PAID).exists()
    channels = {call.args[0] for call in pusher_client.trigger.call_args_list}
    assert channels == {f'user-{pending_order.user_id}'}


def test_duplicate_success_is_idempotent(api_client, pending_order, variant):
    payload = momo_payload(pending_order.pk)

    first = post_ipn(api_client, payload)
    second = post_ipn(api_client, payload)

    assert first.status_code == second.status_code == 200
    assert second.json()['success'] is True

    pending_order.refresh_from_db()
    assert pending_order.status == Order.OrderStatus.PROCESSING
    variant.refresh_from_db()
    assert variant.inventory == 8
    assert Notification.objects.filter(order=pending_order, type=Notification.Type.ORDER_PAID).count() == 1


def test_audit_entry_records_inventory_result(api_client, pending_order):
    post_ipn(api_client, momo_payload(pending_order.pk))

    entry = AuditLog.objects.get(action='PAYMENT_IPN', status=AuditLog.Status.SUCCESS)
    assert entry.metadata['provider'] == 'MOMO'
    assert entry.metadata['inventory']['success'] is True
    assert entry.metadata['inventory']['decremented'] == 1
    assert entry.metadata['inventory']['failed_items'] == []


def test_success_after_processing_leaves_status(customer, product, variant):
    order = make_order(
        user=customer,
        status=Order.OrderStatus.SHIPPED,
        is_paid=True,
        inventory_decremented=True,
        items=[(product, variant, 1)],
    )

    outcome = reconcile_payment(PaymentNotification(order_id=order.pk, succeeded=True, provider='MOMO'))

    assert outcome.action == ReconciliationOutcome.ALREADY_PAID
    order.refresh_from_db()
    assert order.status == Order.OrderStatus.SHIPPED
    variant.refresh_from_db()
    assert variant.inventory == 10


def test_success_on_cancelled_order_flags_refund(customer, product, variant):
    order = make_order(
        user=customer,
        status=Order.OrderStatus.CANCELLED,
        payment_method=Order.PaymentMethod.MOMO,
        items=[(product, variant, 1)],
    )

    outcome = reconcile_payment(PaymentNotification(order_id=order.pk, succeeded=True, provider='MOMO'))

    assert outcome.action == ReconciliationOutcome.PAID_AFTER_CLOSE
    order.refresh_from_db()
    assert order.status == Order.OrderStatus.CANCELLED
    assert order.is_paid
    assert order.requires_refund
    assert not order.inventory_decremented
    variant.refresh_from_db()
    assert variant.inventory == 10


def test_success_links_guest_order_to_registered_user(api_client, product, variant):
    order = make_order(user=None, email='Shopper@Example.com', items=[(product, variant, 1)])
    shopper = make_user('shopper@example.com')

    post_ipn(api_client, momo_payload(order.pk, amount=250000))

    order.refresh_from_db()
    assert order.user == shopper


def test_partial_inventory_failure_still_confirms_payment(api_client, customer, product, variant, second_variant):
    order = make_order(user=customer, items=[(product, variant, 1), (product, second_variant, 3)])

    response = post_ipn(api_client, momo_payload(order.pk))

    assert response.json()['success'] is True
    order.refresh_from_db()
    assert order.is_paid
    assert order.status == Order.OrderStatus.PROCESSING
    assert order.inventory_decremented
    variant.refresh_from_db()
    second_variant.refresh_from_db()
    assert variant.inventory == 9
    assert second_variant.inventory == 1


def test_failure_deletes_unpaid_pending_order(api_client, pending_order):
    response = post_ipn(api_client, momo_payload(pending_order.pk, result_code=1006))

    assert response.status_code == 200
    assert response.json()['success'] is True
    assert not Order.objects.filter(pk=pending_order.pk).exists()


def test_failure_cancels_processing_order(customer, product, variant):
    order = make_order(
        user=customer,
        status=Order.OrderStatus.PROCESSING,
        is_paid=True,
        payment_method=Order.PaymentMethod.MOMO,
        items=[(product, variant, 1)],
    )

    outcome = reconcile_payment(PaymentNotification(order_id=order.pk, succeeded=False, provider='MOMO'))

    assert outcome.action == ReconciliationOutcome.CANCELLED
    order.refresh_from_db()
    assert order.status == Order.OrderStatus.CANCELLED
    assert order.requires_refund


def test_failure_on_shipped_order_is_left_unchanged(customer, product, variant):
    order = make_order(
        user=customer,
        status=Order.OrderStatus.SHIPPED,
        is_paid=True,
        items=[(product, variant, 1)],
    )

    outcome = reconcile_payment(PaymentNotification(order_id=order.pk, succeeded=False, provider='MOMO'))

    assert outcome.action == ReconciliationOutcome.UNCHANGED
    order.refresh_from_db()
    assert order.status == Order.OrderStatus.SHIPPED


def test_failure_falls_back_to_cancel_when_delete_fails(pending_order):
    with mock.patch(
        'payments.reconciliation.delete_abandoned_order',
        side_effect=RuntimeError("foreign key violation"),
    ):
        outcome = reconcile_payment(
            PaymentNotification(order_id=pending_order.pk, succeeded=False, provider='MOMO')
        )

    assert outcome.action == ReconciliationOutcome.CANCELLED
    pending_order.refresh_from_db()
    assert pending_order.status == Order.OrderStatus.CANCELLED


def test_bad_signature_changes_nothing(api_client, pending_order):
    payload = momo_payload(pending_order.pk)
    payload['amount'] = 1

    response = post_ipn(api_client, payload)

    assert response.status_code == 200
    assert response.json() == {'success': True, 'message': 'Invalid signature: notification ignored'}
    pending_order.refresh_from_db()
    assert not pending_order.is_paid
    assert pending_order.status == Order.OrderStatus.PENDING
    assert AuditLog.objects.filter(action='PAYMENT_IPN', status=AuditLog.Status.BLOCKED).exists()


def test_unknown_order_is_acknowledged(api_client):
    response = post_ipn(api_client, momo_payload('6f1d9a0e-0d55-4f0f-a5a3-6c8f44a8c0de'))

    assert response.status_code == 200
    assert response.json()['success'] is True


def test_internal_error_still_answers_200(api_client, pending_order):
    with mock.patch('payments.views.reconcile_payment', side_effect=RuntimeError("boom")):
        response = post_ipn(api_client, momo_payload(pending_order.pk))

    assert response.status_code == 200
    assert response.json() == {'success': False, 'message': 'Internal server error'}


class TestMoMoCreatePayment:
    url = '/api/momo/payment/'

    def test_returns_gateway_urls(self, api_client, pending_order):
        gateway_response = mock.Mock()
        gateway_response.json.return_value = {
            'resultCode': 0,
            'message': 'Successful.',
            'payUrl': 'https://momo.test/pay/abc',
            'deeplink': 'momo://pay/abc',
            'qrCodeUrl': 'https://momo.test/qr/abc',
        }
        gateway_response.raise_for_status.return_value = None

        with mock.patch('payments.momo.requests.post', return_value=gateway_response) as post:
            response = api_client.post(self.url, {'orderId': str(pending_order.pk)}, format='json')

        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert body['payUrl'] == 'https://momo.test/pay/abc'

        sent = post.call_args.kwargs['json']
        assert sent['orderId'] == str(pending_order.pk)
        assert sent['amount'] == '500000'
        expected = momo.generate_signature(
            momo.build_raw_signature(
                momo.REQUEST_SIGNATURE_FIELDS, dict(sent, accessKey='test-access-key')
            ),
            'test-momo-secret',
        )
        assert sent['signature'] == expected

    def test_missing_order_id(self, api_client):
        response = api_client.post(self.url, {}, format='json')

        assert response.status_code == 400
        assert response.json()['success'] is False

    def test_unknown_order(self, api_client, db):
        response = api_client.post(
            self.url, {'orderId': '6f1d9a0e-0d55-4f0f-a5a3-6c8f44a8c0de'}, format='json'
        )

        assert response.status_code == 404

    def test_already_paid(self, api_client, pending_order):
        Order.objects.filter(pk=pending_order.pk).update(is_paid=True, status=Order.OrderStatus.PROCESSING)

        response = api_client.post(self.url, {'orderId': str(pending_order.pk)}, format='json')

        assert response.status_code == 400
        assert response.json()['message'] == 'Order is already paid'

    def test_gateway_failure(self, api_client, pending_order):
        with mock.patch('payments.momo.requests.post', side_effect=requests.ConnectionError("down")):
            response = api_client.post(self.url, {'orderId': str(pending_order.pk)}, format='json')

        assert response.status_code == 502
        assert response.json()['success'] is False

    def test_not_configured(self, api_client, pending_order, settings):
        settings.MOMO = {'ENDPOINT': 'https://momo.test'}

        response = api_client.post(self.url, {'orderId': str(pending_order.pk)}, format='json')

        assert response.status_code == 503


def vnpay_params(order, response_code='00', amount=None):
    amount = order.total_amount if amount is None else amount
    params = {
        'vnp_Amount': str(int(Decimal(amount) * 100)),
        'vnp_BankCode': 'NCB',
        'vnp_OrderInfo': f'Thanh toan don hang {order.order_number}',
        'vnp_ResponseCode': response_code,
        'vnp_TmnCode': 'VNPTEST',
        'vnp_TransactionNo': '14422574',
        'vnp_TxnRef': str(order.pk),
    }
    params['vnp_SecureHash'] = vnpay.sign_params(params, 'test-vnpay-secret')
    return params


class TestVNPayIPN:
    def test_success(self, api_client, pending_order, variant):
        response = api_client.get(VNPAY_IPN_URL, vnpay_params(pending_order))

        assert response.status_code == 200
        assert response.json()['RspCode'] == '00'
        pending_order.refresh_from_db()
        assert pending_order.is_paid
        assert pending_order.status == Order.OrderStatus.PROCESSING
        assert pending_order.transaction_id == '14422574'
        variant.refresh_from_db()
        assert variant.inventory == 8

    def test_invalid_signature(self, api_client, pending_order):
        params = vnpay_params(pending_order)
        params['vnp_ResponseCode'] = '24'

        response = api_client.get(VNPAY_IPN_URL, params)

        assert response.status_code == 200
        assert response.json()['RspCode'] == '97'
        pending_order.refresh_from_db()
        assert pending_order.status == Order.OrderStatus.PENDING

    def test_amount_mismatch(self, api_client, pending_order):
        response = api_client.get(VNPAY_IPN_URL, vnpay_params(pending_order, amount='1000'))

        assert response.json()['RspCode'] == '04'
        pending_order.refresh_from_db()
        assert not pending_order.is_paid

    def test_unknown_order(self, api_client, pending_order):
        params = vnpay_params(pending_order)
        params['vnp_TxnRef'] = '6f1d9a0e-0d55-4f0f-a5a3-6c8f44a8c0de'
        params['vnp_SecureHash'] = vnpay.sign_params(params, 'test-vnpay-secret')

        response = api_client.get(VNPAY_IPN_URL, params)

        assert response.json()['RspCode'] == '01'

    def test_failed_payment_removes_pending_order(self, api_client, pending_order):
        response = api_client.post(VNPAY_IPN_URL, vnpay_params(pending_order, response_code='24'))

        assert response.json()['RspCode'] == '00'
        assert not Order.objects.filter(pk=pending_order.pk).exists()

    def test_not_configured(self, api_client, pending_order, settings):
        settings.VNPAY = {'TMN_CODE': '', 'SECURE_SECRET': '', 'HOST': 'https://sandbox.vnpayment.vn'}

        response = api_client.get(VNPAY_IPN_URL, vnpay_params(pending_order))

        assert response.status_code == 200
        assert response.json()['RspCode'] == '99'
        pending_order.refresh_from_db()
        assert not pending_order.is_paid
