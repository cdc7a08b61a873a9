"""
Order status state machine.

Single source of truth for which status transitions are legal and for the
field updates each transition implies. Nothing here touches the database:
callers validate first, then persist the returned updates.

    PENDING ----> PROCESSING ----> SHIPPED ----> DELIVERED
       |              |               |              |
       +--> CANCELLED <+              +--> RETURNED <+

CANCELLED and RETURNED are terminal.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from django.utils import timezone

from .exceptions import InvalidTransition
from .models import Order

OrderStatus = Order.OrderStatus
PaymentMethod = Order.PaymentMethod

ORDER_STATE_TRANSITIONS: Dict[str, Tuple[str, ...]] = {
    OrderStatus.PENDING: (OrderStatus.PROCESSING, OrderStatus.CANCELLED),
    OrderStatus.PROCESSING: (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
    # RETURNED from SHIPPED: customer refused the parcel
    OrderStatus.SHIPPED: (OrderStatus.DELIVERED, OrderStatus.RETURNED),
    OrderStatus.DELIVERED: (OrderStatus.RETURNED,),
    OrderStatus.CANCELLED: (),
    OrderStatus.RETURNED: (),
}

FINAL_STATES = (OrderStatus.CANCELLED, OrderStatus.RETURNED)
CANCELLABLE_STATES = (OrderStatus.PENDING, OrderStatus.PROCESSING)

TRANSITION_MESSAGES = {
    OrderStatus.PROCESSING: "Order is being processed",
    OrderStatus.SHIPPED: "Order has been handed to the carrier",
    OrderStatus.DELIVERED: "Order was delivered successfully",
    OrderStatus.CANCELLED: "Order has been cancelled",
    OrderStatus.RETURNED: "Order has been returned",
}


@dataclass(frozen=True)
class TransitionValidation:
    valid: bool
    error: Optional[str] = None


@dataclass
class TransitionResult:
    """Outcome of ``apply_transition``: the new status plus derived field updates."""

    status: str
    message: str
    updates: Dict[str, Any] = field(default_factory=dict)


def is_valid_status(status) -> bool:
    return status in ORDER_STATE_TRANSITIONS


def can_transition(current_status: str, new_status: str) -> bool:
    """True for a no-op (same status) or an edge of the transition table."""
    if current_status == new_status:
        return True
    return new_status in ORDER_STATE_TRANSITIONS.get(current_status, ())


def get_valid_next_statuses(current_status: str) -> Tuple[str, ...]:
    return ORDER_STATE_TRANSITIONS.get(current_status, ())


def validate_transition(current_status: str, new_status: str) -> TransitionValidation:
    if current_status == new_status:
        return TransitionValidation(valid=True)

    if not can_transition(current_status, new_status):
        valid_statuses = get_valid_next_statuses(current_status)
        alternatives = ", ".join(str(s) for s in valid_statuses) or "none (final state)"
        return TransitionValidation(
            valid=False,
            error=(
                f'Cannot transition order from "{current_status}" to "{new_status}". '
                f'Valid next statuses: {alternatives}'
            ),
        )

    return TransitionValidation(valid=True)


def is_final_state(status: str) -> bool:
    return status in FINAL_STATES


def can_cancel(status: str) -> bool:
    return status in CANCELLABLE_STATES


def get_status_display_name(status: str) -> str:
    try:
        return str(OrderStatus(status).label)
    except ValueError:
        return status


def apply_transition(order: Order, new_status: str) -> TransitionResult:
    """
    Compute the updates for moving ``order`` to ``new_status``.

    Raises ``InvalidTransition`` before anything is computed when the edge is
    not in the table; the order instance is never modified here.

    Side-effect policy:
    - DELIVERED: a cash-on-delivery order that is still unpaid becomes paid
    - SHIPPED / DELIVERED: the matching timestamp is recorded
    - CANCELLED: a paid online-gateway order is flagged for refund
    """
    validation = validate_transition(order.status, new_status)
    if not validation.valid:
        raise InvalidTransition(validation.error)

    updates: Dict[str, Any] = {'status': new_status}

    if new_status == order.status:
        return TransitionResult(
            status=new_status,
            message=f"Order is already {new_status}",
            updates=updates,
        )

    now = timezone.now()

    if new_status == OrderStatus.SHIPPED and not order.shipped_at:
        updates['shipped_at'] = now

    elif new_status == OrderStatus.DELIVERED:
        if order.payment_method == PaymentMethod.COD and not order.is_paid:
            updates['is_paid'] = True
        if not order.delivered_at:
            updates['delivered_at'] = now

    elif new_status == OrderStatus.CANCELLED:
        if order.is_paid and order.is_online_payment:
            updates['requires_refund'] = True

    return TransitionResult(
        status=new_status,
        message=TRANSITION_MESSAGES.get(new_status, f"Order moved to {new_status}"),
        updates=updates,
    )
