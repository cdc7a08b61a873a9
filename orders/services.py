"""
Order operations shared by the API views, the payment handlers and the
management commands.

Every status change goes through ``orders.state_machine``. Writes that race
with other requests (cancellation, abandoned-order cleanup) are conditional
on the status the caller validated, so concurrent requests apply once.
"""

import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from notifications.dispatch import trigger_notification_created, trigger_order_status_update
from notifications.models import Notification

from .exceptions import InvalidOrderStatus, InvalidTransition, OrderAccessDenied, OrderError, OrderNotFound
from .inventory import release_order_inventory
from .models import Order
from .state_machine import (
    CANCELLABLE_STATES,
    ORDER_STATE_TRANSITIONS,
    apply_transition,
    can_cancel,
    is_valid_status,
)

logger = logging.getLogger(__name__)

OrderStatus = Order.OrderStatus

STATUS_NOTIFICATION_TYPES = {
    OrderStatus.PROCESSING: Notification.Type.ORDER_CONFIRMED,
    OrderStatus.SHIPPED: Notification.Type.ORDER_SHIPPING,
    OrderStatus.DELIVERED: Notification.Type.ORDER_DELIVERED,
    OrderStatus.CANCELLED: Notification.Type.ORDER_CANCELLED,
    OrderStatus.RETURNED: Notification.Type.ORDER_RETURNED,
}

BULK_DELETABLE_STATES = (OrderStatus.DELIVERED, OrderStatus.CANCELLED)

PLACEHOLDER_EMAIL_SUFFIX = '@temp.local'


def get_order(order_id) -> Order:
    """Fetch an order by id; malformed ids are treated as unknown orders."""
    try:
        return Order.objects.get(pk=order_id)
    except (Order.DoesNotExist, ValidationError, ValueError):
        raise OrderNotFound()


def user_owns_order(user, order) -> bool:
    """The order is linked to the user, or was placed with the user's e-mail."""
    if not user or not user.is_authenticated:
        return False
    if order.user_id is not None and order.user_id == user.pk:
        return True
    return bool(user.email and order.email and order.email.lower() == user.email.lower())


def notify_order_status(order, message, notification_type=None):
    """
    Record an in-app notification for the order's user and push it.

    Orders without a linked user are skipped. Failures are logged only.
    """
    if not order.user_id:
        return None

    notification_type = notification_type or STATUS_NOTIFICATION_TYPES.get(order.status)
    notification = None
    try:
        if notification_type:
            notification = Notification.objects.create(
                user_id=order.user_id,
                order=order,
                message=f"Order {order.order_number}: {message}",
                type=notification_type,
            )
    except Exception:
        logger.exception("Failed to create notification for order %s", order.pk)

    trigger_order_status_update(order.user_id, order.pk, order.status, message)
    if notification is not None:
        trigger_notification_created(order.user_id, notification)
    return notification


def cancel_order(order_id, user) -> Order:
    """
    Cancel an order on behalf of ``user``.

    Raises:
        OrderNotFound: unknown order
        OrderAccessDenied: the user neither owns the order nor is an admin
        InvalidTransition: the order is no longer PENDING or PROCESSING
    """
    order = get_order(order_id)

    if not (user.is_admin or user_owns_order(user, order)):
        raise OrderAccessDenied()

    if not can_cancel(order.status):
        raise InvalidTransition(
            f'Cannot cancel order with status "{order.status}". '
            f'Only PENDING or PROCESSING orders can be cancelled.'
        )

    result = apply_transition(order, OrderStatus.CANCELLED)
    updated = Order.objects.filter(
        pk=order.pk,
        status__in=CANCELLABLE_STATES,
    ).update(updated_at=timezone.now(), **result.updates)

    order.refresh_from_db()
    if not updated:
        raise InvalidTransition(
            f'Cannot cancel order with status "{order.status}". '
            f'Only PENDING or PROCESSING orders can be cancelled.'
        )

    logger.info("Order %s cancelled by user %s", order.order_number, user.pk)
    release_order_inventory(order)
    notify_order_status(order, result.message, Notification.Type.ORDER_CANCELLED)
    return order


def update_order_status(order_id, new_status, actor=None) -> Order:
    """
    Move an order to ``new_status`` and apply the derived field updates.

    The status value and the transition are both validated before anything
    is written. Setting the current status again is a no-op.
    """
    if not is_valid_status(new_status):
        raise InvalidOrderStatus(
            f'Invalid status "{new_status}". '
            f'Valid statuses: {", ".join(ORDER_STATE_TRANSITIONS)}'
        )

    order = get_order(order_id)
    apply_transition(order, new_status)
    if order.status == new_status:
        return order

    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=order.pk)
        result = apply_transition(order, new_status)
        for field, value in result.updates.items():
            setattr(order, field, value)
        order.save(update_fields=list(result.updates) + ['updated_at'])

    logger.info(
        "Order %s moved to %s by %s",
        order.order_number, new_status, getattr(actor, 'pk', 'system'),
    )
    if new_status == OrderStatus.CANCELLED:
        release_order_inventory(order)
    notify_order_status(order, result.message)
    return order


def delete_abandoned_order(order_id, user=None) -> bool:
    """
    Physically delete an unpaid PENDING order, e.g. after the customer backed
    out of the payment page. Any stock held for it is released first.

    ``user`` is checked for ownership when given; payment handlers pass None.
    """
    order = get_order(order_id)
    if user is not None and not (user.is_admin or user_owns_order(user, order)):
        raise OrderAccessDenied()

    with transaction.atomic():
        order = Order.objects.select_for_update().filter(
            pk=order.pk,
            is_paid=False,
            status=OrderStatus.PENDING,
        ).first()
        if order is None:
            raise OrderError("Only unpaid pending orders can be deleted.")
        release_order_inventory(order)
        order_number = order.order_number
        order.delete()

    logger.info("Deleted abandoned order %s", order_number)
    return True


def link_orders_by_email(user) -> int:
    """Attach guest orders placed with the user's e-mail to the account."""
    email = (user.email or '').strip().lower()
    if not email or email.endswith(PLACEHOLDER_EMAIL_SUFFIX):
        return 0
    return Order.objects.filter(user__isnull=True, email__iexact=email).update(
        user=user,
        updated_at=timezone.now(),
    )


def link_order_to_email_owner(order) -> bool:
    """
    Link a single unlinked order to the registered user with the same e-mail.

    Lookup errors are logged and ignored.
    """
    if order.user_id or not order.email:
        return False

    try:
        user = get_user_model().objects.filter(email__iexact=order.email).first()
        if user is None:
            return False
        linked = Order.objects.filter(pk=order.pk, user__isnull=True).update(user=user)
    except Exception:
        logger.exception("Failed to link order %s to a user by e-mail", order.pk)
        return False

    if linked:
        order.user = user
        logger.info("Linked order %s to user %s", order.order_number, user.pk)
    return bool(linked)


def bulk_delete_orders(order_ids) -> dict:
    """
    Delete the given orders that are DELIVERED or CANCELLED; any other order
    is reported as skipped.
    """
    candidates = Order.objects.filter(pk__in=order_ids)
    deletable = candidates.filter(status__in=BULK_DELETABLE_STATES)
    deletable_ids = [str(pk) for pk in deletable.values_list('pk', flat=True)]
    skipped_ids = [
        str(pk) for pk in candidates.exclude(status__in=BULK_DELETABLE_STATES).values_list('pk', flat=True)
    ]
    Order.objects.filter(pk__in=deletable_ids, status__in=BULK_DELETABLE_STATES).delete()
    found = {str(pk) for pk in candidates.values_list('pk', flat=True)} | set(deletable_ids)
    missing = [str(pk) for pk in order_ids if str(pk) not in found]

    logger.info("Bulk deleted %s order(s), skipped %s", len(deletable_ids), len(skipped_ids))
    return {
        'deleted': len(deletable_ids),
        'deleted_ids': deletable_ids,
        'skipped_ids': skipped_ids,
        'not_found_ids': missing,
    }
