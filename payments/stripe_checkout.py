"""
Stripe Checkout webhook helpers.

Stripe signs each event with the endpoint secret in the ``Stripe-Signature``
header. Only Checkout Session events are mapped to payment notifications:

- ``checkout.session.completed`` with ``payment_status`` paid: success
- ``checkout.session.async_payment_succeeded``: success
- ``checkout.session.async_payment_failed``: failure

A completed session that is still unpaid (delayed payment methods) waits for
one of the async events.
"""

import json
import logging

import stripe
from django.conf import settings

from orders.models import Order

from .reconciliation import PaymentNotification

logger = logging.getLogger(__name__)

SESSION_COMPLETED = 'checkout.session.completed'
ASYNC_SUCCEEDED = 'checkout.session.async_payment_succeeded'
ASYNC_FAILED = 'checkout.session.async_payment_failed'

HANDLED_EVENTS = (SESSION_COMPLETED, ASYNC_SUCCEEDED, ASYNC_FAILED)

PAID_STATUSES = ('paid', 'no_payment_required')

SignatureVerificationError = stripe.SignatureVerificationError


def get_webhook_secret() -> str:
    return settings.STRIPE.get('WEBHOOK_SECRET', '')


def is_configured() -> bool:
    return bool(get_webhook_secret())


def construct_event(payload: bytes, signature: str) -> dict:
    """
    Verify the signature and return the event as plain dicts.

    Raises ``ValueError`` for a body that is not JSON and
    ``SignatureVerificationError`` for a bad or stale signature.
    """
    stripe.Webhook.construct_event(payload, signature, get_webhook_secret())
    return json.loads(payload)


def session_order_id(session):
    return (session.get('metadata') or {}).get('orderId')


def _payment_intent_id(session) -> str:
    intent = session.get('payment_intent')
    if isinstance(intent, dict):
        return intent.get('id') or ''
    return intent or ''


def to_notification(event):
    """
    Map a Checkout Session event to a ``PaymentNotification``, or None when
    the event carries no payment outcome yet.
    """
    event_type = event.get('type')
    session = (event.get('data') or {}).get('object') or {}

    if event_type == SESSION_COMPLETED:
        if session.get('payment_status') not in PAID_STATUSES:
            return None
        succeeded = True
    elif event_type == ASYNC_SUCCEEDED:
        succeeded = True
    elif event_type == ASYNC_FAILED:
        succeeded = False
    else:
        return None

    return PaymentNotification(
        order_id=session_order_id(session),
        succeeded=succeeded,
        provider=Order.PaymentMethod.STRIPE,
        transaction_id=_payment_intent_id(session),
        message=event_type,
    )


def _join_address(address) -> str:
    return ' '.join(part for part in (address.get('line1'), address.get('line2')) if part).strip()


def contact_updates(order, session) -> dict:
    """
    Contact and shipping fields to copy from a paid session onto the order.

    Details collected by Stripe win; checkout-form metadata only fills fields
    the order left empty.
    """
    customer = session.get('customer_details') or {}
    shipping = session.get('shipping_details') or session.get('shipping') or {}
    metadata = session.get('metadata') or {}
    updates = {'payment_method': Order.PaymentMethod.STRIPE}

    email = customer.get('email')
    if not email and not order.email:
        email = metadata.get('shippingEmail') or metadata.get('email')
    if email:
        updates['email'] = email.strip().lower()

    phone = customer.get('phone') or shipping.get('phone')
    if not phone and not order.phone:
        phone = metadata.get('shippingPhone') or metadata.get('phone')
    if phone:
        updates['phone'] = phone

    if shipping.get('name') and not order.receiver_name:
        updates['receiver_name'] = shipping['name']

    address = shipping.get('address') or customer.get('address')
    if address:
        updates['shipping_address'] = _join_address(address)
        if address.get('city'):
            updates['shipping_city'] = address['city']
        if address.get('postal_code'):
            updates['shipping_postal_code'] = address['postal_code']
        if address.get('country'):
            updates['shipping_country'] = address['country']
    elif not order.shipping_address and metadata.get('shippingAddress'):
        parts = [metadata.get(key) for key in ('shippingAddress', 'shippingWard', 'shippingDistrict', 'shippingProvince')]
        updates['shipping_address'] = ', '.join(part for part in parts if part)
        if metadata.get('shippingProvince'):
            updates['shipping_city'] = metadata['shippingProvince']

    return updates
