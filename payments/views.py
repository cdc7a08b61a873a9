"""
Payment gateway endpoints.

Gateway callbacks are called by the gateways, not by users: they carry no
credentials and are authenticated by their signature. The MoMo and VNPay IPN
endpoints always answer HTTP 200 so the gateway stops retrying; the body says
whether the notification was applied. The Stripe webhook follows Stripe's
retry convention instead.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.utils import timezone
from django_ratelimit.decorators import ratelimit
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.exceptions import ParseError
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from authentication.audit import log_audit_event
from authentication.models import AuditLog
from orders.exceptions import OrderNotFound
from orders.models import Order
from orders.services import get_order

from . import momo, stripe_checkout, vnpay
from .reconciliation import PaymentNotification, ReconciliationOutcome, reconcile_payment
from .serializers import MoMoIPNSerializer, MoMoPaymentRequestSerializer

logger = logging.getLogger(__name__)


def _ack(success, message):
    return Response({'success': success, 'message': message}, status=status.HTTP_200_OK)


def _outcome_metadata(provider, outcome, **extra):
    metadata = {'provider': provider, 'action': outcome.action, **extra}
    if outcome.inventory is not None:
        metadata['inventory'] = outcome.inventory.as_dict()
    return metadata


@api_view(['GET', 'POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def momo_ipn(request):
    """
    MoMo instant payment notification.

    GET is a health check. POST verifies the signature, then reconciles the
    order. Forged notifications are recorded as blocked, change nothing, and
    are still acknowledged with ``success: true``.
    """
    if request.method == 'GET':
        return _ack(True, "MoMo IPN endpoint is ready")

    try:
        try:
            payload = request.data
        except ParseError:
            logger.warning("MoMo IPN with malformed body")
            return _ack(False, "Invalid payload")
        if hasattr(payload, 'dict'):
            payload = payload.dict()
        if not isinstance(payload, dict):
            return _ack(False, "Invalid payload")

        if not momo.verify_ipn_signature(payload):
            logger.warning("MoMo IPN signature mismatch for order %s", payload.get('orderId'))
            log_audit_event(
                request, 'PAYMENT_IPN', 'ORDER', payload.get('orderId'),
                AuditLog.Status.BLOCKED,
                {'provider': 'MOMO', 'reason': 'Invalid signature'}
            )
            # Acknowledged so the sender stops retrying; nothing was applied
            return _ack(True, "Invalid signature: notification ignored")

        serializer = MoMoIPNSerializer(data=payload)
        if not serializer.is_valid():
            logger.warning("MoMo IPN with invalid payload: %s", serializer.errors)
            return _ack(False, "Invalid payload")
        data = serializer.validated_data

        outcome = reconcile_payment(PaymentNotification(
            order_id=data['orderId'],
            succeeded=data['resultCode'] == momo.RESULT_SUCCESS,
            provider=Order.PaymentMethod.MOMO,
            transaction_id=data.get('transId', ''),
            message=data.get('message', ''),
            amount=data.get('amount'),
        ))
    except Exception:
        logger.exception("Error processing MoMo IPN")
        return _ack(False, "Internal server error")

    log_audit_event(
        request, 'PAYMENT_IPN', 'ORDER', outcome.order_id,
        AuditLog.Status.SUCCESS,
        _outcome_metadata('MOMO', outcome, result_code=data['resultCode'])
    )
    if not outcome.found:
        return _ack(True, "IPN received: order not found")
    return _ack(True, "IPN received successfully")


@api_view(['POST'])
@permission_classes([AllowAny])
@ratelimit(key='ip', rate='10/m', method='POST')
def momo_create_payment(request):
    """
    Start a MoMo payment for an unpaid order and return the gateway URLs
    the storefront redirects the shopper to.
    """
    serializer = MoMoPaymentRequestSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = get_order(serializer.validated_data['orderId'])
    if order.is_paid:
        return Response(
            {'success': False, 'message': 'Order is already paid'},
            status=status.HTTP_400_BAD_REQUEST,
        )

    if not momo.is_configured():
        return Response(
            {'success': False, 'message': 'MoMo payment is not available'},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    try:
        result = momo.create_payment(
            order.pk,
            int(order.total_amount.quantize(Decimal('1'), rounding=ROUND_HALF_UP)),
            f"Payment for Order #{order.order_number}",
        )
    except momo.MoMoError as exc:
        log_audit_event(
            request, 'CREATE_PAYMENT', 'ORDER', order.pk,
            AuditLog.Status.FAILURE, {'provider': 'MOMO', 'error': str(exc)}
        )
        return Response(
            {'success': False, 'message': str(exc)},
            status=status.HTTP_502_BAD_GATEWAY,
        )

    Order.objects.filter(pk=order.pk).update(payment_method=Order.PaymentMethod.MOMO)
    log_audit_event(
        request, 'CREATE_PAYMENT', 'ORDER', order.pk,
        AuditLog.Status.SUCCESS, {'provider': 'MOMO'}
    )
    return Response({
        'success': True,
        'message': 'Payment created',
        'orderId': str(order.pk),
        'payUrl': result.get('payUrl'),
        'deeplink': result.get('deeplink'),
        'qrCodeUrl': result.get('qrCodeUrl'),
        'returnUrl': momo.get_return_url(order.pk),
    })


def _vnpay_response(code, message):
    return Response({'RspCode': code, 'Message': message}, status=status.HTTP_200_OK)


@api_view(['GET', 'POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def vnpay_ipn(request):
    """
    VNPay instant payment notification.

    Parameters arrive in the query string, or in a form body. The response
    uses VNPay's ``RspCode`` convention.
    """
    if not vnpay.is_configured():
        logger.error("VNPay IPN received but VNPAY is not configured")
        return _vnpay_response(vnpay.RSP_UNKNOWN_ERROR, "Payment gateway not configured")

    try:
        params = request.query_params.dict()
        if not params and request.method == 'POST':
            params = {key: request.data.get(key) for key in request.data}

        if not vnpay.verify_ipn_params(params):
            logger.warning("VNPay IPN signature mismatch for order %s", params.get('vnp_TxnRef'))
            log_audit_event(
                request, 'PAYMENT_IPN', 'ORDER', params.get('vnp_TxnRef'),
                AuditLog.Status.BLOCKED,
                {'provider': 'VNPAY', 'reason': 'Invalid signature'}
            )
            return _vnpay_response(vnpay.RSP_INVALID_SIGNATURE, "Invalid signature")

        order_id = params.get('vnp_TxnRef')
        if not order_id:
            return _vnpay_response(vnpay.RSP_UNKNOWN_ERROR, "Missing order ID")

        try:
            order = get_order(order_id)
        except OrderNotFound:
            logger.warning("VNPay IPN for unknown order %s", order_id)
            return _vnpay_response(vnpay.RSP_ORDER_NOT_FOUND, "Order not found")

        amount = vnpay.parse_amount(params)
        if not vnpay.amount_matches(amount, order.total_amount):
            logger.error(
                "VNPay amount mismatch for order %s: received %s, expected %s",
                order.order_number, amount, order.total_amount,
            )
            return _vnpay_response(vnpay.RSP_AMOUNT_MISMATCH, "Amount mismatch")

        succeeded = params.get('vnp_ResponseCode') == vnpay.RESPONSE_SUCCESS
        outcome = reconcile_payment(PaymentNotification(
            order_id=order.pk,
            succeeded=succeeded,
            provider=Order.PaymentMethod.VNPAY,
            transaction_id=params.get('vnp_TransactionNo') or '',
            message=params.get('vnp_ResponseCode') or '',
            amount=amount,
        ))
    except Exception:
        logger.exception("Error processing VNPay IPN")
        return _vnpay_response(vnpay.RSP_UNKNOWN_ERROR, "Unknown error")

    log_audit_event(
        request, 'PAYMENT_IPN', 'ORDER', outcome.order_id,
        AuditLog.Status.SUCCESS,
        _outcome_metadata('VNPAY', outcome, response_code=params.get('vnp_ResponseCode'))
    )
    if outcome.action == ReconciliationOutcome.NOT_FOUND:
        return _vnpay_response(vnpay.RSP_ORDER_NOT_FOUND, "Order not found")
    return _vnpay_response(vnpay.RSP_SUCCESS, "Confirm Success")


def _stripe_response(success, message, code=status.HTTP_200_OK):
    return Response({'success': success, 'message': message}, status=code)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def stripe_webhook(request):
    """
    Stripe Checkout webhook.

    Unlike the IPN endpoints, failures answer non-2xx so Stripe retries the
    delivery: 400 for a bad signature or a session without ``orderId``
    metadata, 404 for an unknown order, 500 when reconciliation errors.
    Reconciliation is idempotent, so retried events are safe.
    """
    if not stripe_checkout.is_configured():
        logger.error("Stripe webhook received but STRIPE_WEBHOOK_SECRET is not set")
        return _stripe_response(False, "Stripe webhook is not configured", status.HTTP_503_SERVICE_UNAVAILABLE)

    try:
        event = stripe_checkout.construct_event(request.body, request.headers.get('Stripe-Signature', ''))
    except (ValueError, stripe_checkout.SignatureVerificationError) as exc:
        logger.warning("Stripe webhook verification failed: %s", exc)
        log_audit_event(
            request, 'PAYMENT_WEBHOOK', 'ORDER', None,
            AuditLog.Status.BLOCKED,
            {'provider': 'STRIPE', 'reason': 'Invalid signature'}
        )
        return _stripe_response(False, "Invalid signature", status.HTTP_400_BAD_REQUEST)

    if event.get('type') not in stripe_checkout.HANDLED_EVENTS:
        logger.debug("Ignoring Stripe event %s", event.get('type'))
        return _stripe_response(True, "Event ignored")

    session = (event.get('data') or {}).get('object') or {}
    order_id = stripe_checkout.session_order_id(session)
    if not order_id:
        logger.error("Stripe %s without orderId metadata", event['type'])
        return _stripe_response(False, "No orderId in metadata", status.HTTP_400_BAD_REQUEST)

    notification = stripe_checkout.to_notification(event)
    if notification is None:
        return _stripe_response(True, "Awaiting payment")

    try:
        order = get_order(order_id)
    except OrderNotFound:
        logger.error("Stripe event for unknown order %s", order_id)
        return _stripe_response(False, "Order not found", status.HTTP_404_NOT_FOUND)

    try:
        if notification.succeeded:
            updates = stripe_checkout.contact_updates(order, session)
            Order.objects.filter(pk=order.pk).update(updated_at=timezone.now(), **updates)
        outcome = reconcile_payment(notification)
    except Exception:
        logger.exception("Error processing Stripe event for order %s", order_id)
        return _stripe_response(False, "Error updating order", status.HTTP_500_INTERNAL_SERVER_ERROR)

    log_audit_event(
        request, 'PAYMENT_WEBHOOK', 'ORDER', outcome.order_id,
        AuditLog.Status.SUCCESS,
        _outcome_metadata('STRIPE', outcome, event_type=event['type'])
    )
    return _stripe_response(True, outcome.message)
