"""
Apply a verified payment-provider notification to its order.

Gateways deliver notifications at least once and in any order, so every
branch here is idempotent: a repeated success leaves a paid order as it is and
never touches inventory twice, and a repeated failure finds the order already
deleted or cancelled.

Signature checks happen in the views before anything reaches this module.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from notifications.models import Notification
from orders.exceptions import OrderError, OrderNotFound
from orders.inventory import InventoryResult, decrement_order_inventory, release_order_inventory
from orders.models import Order
from orders.services import delete_abandoned_order, link_order_to_email_owner, notify_order_status
from orders.state_machine import FINAL_STATES, apply_transition, can_transition

logger = logging.getLogger(__name__)

OrderStatus = Order.OrderStatus


@dataclass
class PaymentNotification:
    order_id: str
    succeeded: bool
    provider: str
    transaction_id: str = ''
    message: str = ''
    amount: Optional[Decimal] = None


@dataclass
class ReconciliationOutcome:
    """What reconciling one notification did to its order."""

    NOT_FOUND = 'not_found'
    PAID = 'paid'
    ALREADY_PAID = 'already_paid'
    PAID_AFTER_CLOSE = 'paid_after_close'
    DELETED = 'deleted'
    CANCELLED = 'cancelled'
    UNCHANGED = 'unchanged'

    action: str
    message: str
    order_id: Optional[str] = None
    status: Optional[str] = None
    inventory: Optional[InventoryResult] = None

    @property
    def found(self) -> bool:
        return self.action != self.NOT_FOUND


def _find_order(order_id):
    try:
        return Order.objects.filter(pk=order_id).first()
    except (ValidationError, ValueError) as exc:
        logger.warning("Cannot look up order %r: %s", order_id, exc)
        return None


def reconcile_payment(notification: PaymentNotification) -> ReconciliationOutcome:
    order = _find_order(notification.order_id)
    if order is None:
        logger.warning(
            "%s notification for unknown order %s", notification.provider, notification.order_id
        )
        return ReconciliationOutcome(
            action=ReconciliationOutcome.NOT_FOUND,
            message="Order not found",
            order_id=str(notification.order_id),
        )

    if notification.succeeded:
        return _apply_success(order, notification)
    return _apply_failure(order, notification)


def _apply_success(order, notification) -> ReconciliationOutcome:
    with transaction.atomic():
        order = Order.objects.select_for_update().get(pk=order.pk)
        was_paid = order.is_paid

        updates = {}
        if not was_paid:
            updates['is_paid'] = True
        if notification.transaction_id and order.transaction_id != str(notification.transaction_id):
            updates['transaction_id'] = str(notification.transaction_id)

        if order.status in FINAL_STATES:
            # Money arrived for an order that was already closed
            if not was_paid:
                updates['requires_refund'] = True
            action = ReconciliationOutcome.ALREADY_PAID if was_paid else ReconciliationOutcome.PAID_AFTER_CLOSE
        elif order.status == OrderStatus.PENDING:
            updates.update(apply_transition(order, OrderStatus.PROCESSING).updates)
            action = ReconciliationOutcome.PAID
        else:
            action = ReconciliationOutcome.ALREADY_PAID if was_paid else ReconciliationOutcome.PAID

        for field, value in updates.items():
            setattr(order, field, value)
        if updates:
            order.save(update_fields=list(updates) + ['updated_at'])

    if action == ReconciliationOutcome.PAID_AFTER_CLOSE:
        logger.error(
            "Payment received for %s order %s; flagged for refund",
            order.status, order.order_number,
        )
        return ReconciliationOutcome(
            action=action,
            message="Payment recorded for a closed order; refund required",
            order_id=str(order.pk),
            status=order.status,
        )

    if not was_paid and not order.user_id:
        link_order_to_email_owner(order)

    inventory = decrement_order_inventory(order.pk, already_paid=was_paid)
    if not inventory.success:
        logger.error(
            "Inventory reconciliation incomplete for order %s: %s",
            order.order_number, inventory.message,
        )

    if was_paid:
        logger.info("Duplicate %s success for order %s ignored", notification.provider, order.order_number)
        message = "Order already paid"
    else:
        logger.info("Order %s paid via %s", order.order_number, notification.provider)
        message = "Payment confirmed"
        notify_order_status(order, "Payment received", Notification.Type.ORDER_PAID)

    return ReconciliationOutcome(
        action=action,
        message=message,
        order_id=str(order.pk),
        status=order.status,
        inventory=inventory,
    )


def _apply_failure(order, notification) -> ReconciliationOutcome:
    logger.info(
        "%s payment failed for order %s: %s",
        notification.provider, order.order_number, notification.message,
    )

    if not order.is_paid and order.status == OrderStatus.PENDING:
        try:
            delete_abandoned_order(order.pk)
        except OrderNotFound:
            return ReconciliationOutcome(
                action=ReconciliationOutcome.NOT_FOUND,
                message="Order not found",
                order_id=str(order.pk),
            )
        except OrderError as exc:
            # Order changed underneath us; fall through to the cancel path
            logger.warning("Could not delete order %s: %s", order.order_number, exc)
            order.refresh_from_db()
        except Exception:
            logger.exception("Failed to delete abandoned order %s", order.order_number)
        else:
            return ReconciliationOutcome(
                action=ReconciliationOutcome.DELETED,
                message="Order deleted after payment failure",
                order_id=str(order.pk),
            )

    if order.status != OrderStatus.CANCELLED and can_transition(order.status, OrderStatus.CANCELLED):
        result = apply_transition(order, OrderStatus.CANCELLED)
        cancelled = Order.objects.filter(pk=order.pk, status=order.status).update(
            updated_at=timezone.now(), **result.updates
        )
        if cancelled:
            order.refresh_from_db()
            release_order_inventory(order)
            logger.info("Order %s cancelled after payment failure", order.order_number)
            notify_order_status(order, result.message, Notification.Type.ORDER_CANCELLED)
            return ReconciliationOutcome(
                action=ReconciliationOutcome.CANCELLED,
                message="Order cancelled after payment failure",
                order_id=str(order.pk),
                status=order.status,
            )

    logger.warning(
        "Payment failure for order %s in status %s left unchanged",
        order.order_number, order.status,
    )
    return ReconciliationOutcome(
        action=ReconciliationOutcome.UNCHANGED,
        message="Payment failure recorded",
        order_id=str(order.pk),
        status=order.status,
    )
