"""
Real-time push events over Pusher.

Every user listens on their own channel ``user-<id>``. Publishing is
fire-and-forget: a missing configuration or a Pusher error is logged and the
caller carries on.
"""

import logging

import pusher
from django.conf import settings

logger = logging.getLogger(__name__)

ORDER_STATUS_EVENT = 'order.status.updated'
NOTIFICATION_EVENT = 'notification.created'

_client = None


def get_pusher_client():
    """Return a shared Pusher client, or None when Pusher is not configured."""
    global _client
    if _client is not None:
        return _client

    config = getattr(settings, 'PUSHER', {})
    if not all(config.get(key) for key in ('APP_ID', 'KEY', 'SECRET', 'CLUSTER')):
        return None

    _client = pusher.Pusher(
        app_id=config['APP_ID'],
        key=config['KEY'],
        secret=config['SECRET'],
        cluster=config['CLUSTER'],
        ssl=True,
    )
    return _client


def user_channel(user_id) -> str:
    return f"user-{user_id}"


def _trigger(user_id, event, data):
    client = get_pusher_client()
    if client is None:
        logger.debug("Pusher not configured, skipping %s for user %s", event, user_id)
        return False
    try:
        client.trigger(user_channel(user_id), event, data)
    except Exception:
        logger.exception("Failed to publish %s for user %s", event, user_id)
        return False
    return True


def trigger_order_status_update(user_id, order_id, status, message):
    return _trigger(user_id, ORDER_STATUS_EVENT, {
        'orderId': str(order_id),
        'status': status,
        'message': message,
    })


def trigger_notification_created(user_id, notification):
    return _trigger(user_id, NOTIFICATION_EVENT, {
        'id': notification.pk,
        'orderId': str(notification.order_id) if notification.order_id else None,
        'message': notification.message,
        'type': notification.type,
        'isRead': notification.is_read,
        'createdAt': notification.created_at.isoformat() if notification.created_at else None,
    })
