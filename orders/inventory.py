"""
Inventory reconciliation for orders.

Stock for an order is decremented at most once. The guard is the order's
``inventory_decremented`` flag, claimed with a conditional UPDATE before any
stock is touched, so a duplicated or concurrent payment notification finds
the flag already set and skips.

Individual line items are decremented with conditional updates as well
(``inventory >= quantity``). There is no transaction around the loop: when an
item cannot be decremented the failure is logged and reported, items already
applied stay applied, and the caller carries on. Payment confirmation is never
blocked or reversed by a stock-accounting problem.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from django.db.models import F
from django.utils import timezone

from products.models import ProductVariant

from .models import Order, OrderItem

logger = logging.getLogger(__name__)

ALREADY_PROCESSED = "Inventory already processed for this order"


@dataclass
class InventoryResult:
    """Summary of one reconciliation attempt. Callers log it, never raise it."""

    success: bool
    message: str
    decremented: int = 0
    skipped: bool = False
    failed_items: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.decremented and self.failed_items)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class InventoryCheck:
    available: bool
    current_stock: int
    requested: int
    message: Optional[str] = None


def _decrement_item(item: OrderItem) -> bool:
    """
    Take ``item.quantity`` units from the variant, or from the product when
    the line has no variant. Returns False when stock is insufficient.
    """
    if item.variant_id:
        return item.variant.reduce_inventory(item.quantity)
    return item.product.reduce_stock(item.quantity)


def decrement_order_inventory(order_id, already_paid: bool = False) -> InventoryResult:
    """
    Decrement stock for every line item of a paid order, exactly once.

    Args:
        order_id: primary key of the order
        already_paid: the order was marked paid before the current payment
            notification arrived; its stock was handled then

    The order's ``inventory_decremented`` flag is true after any attempt that
    got past the guard, including partially failed ones.
    """
    if already_paid:
        logger.info("Skipping inventory for order %s: already paid", order_id)
        return InventoryResult(success=True, skipped=True, message=ALREADY_PROCESSED)

    claimed = Order.objects.filter(
        pk=order_id,
        inventory_decremented=False,
    ).update(inventory_decremented=True, updated_at=timezone.now())

    if not claimed:
        if not Order.objects.filter(pk=order_id).exists():
            logger.warning("Inventory reconciliation for unknown order %s", order_id)
            return InventoryResult(success=False, message="Order not found")
        logger.info("Skipping inventory for order %s: flag already set", order_id)
        return InventoryResult(success=True, skipped=True, message=ALREADY_PROCESSED)

    decremented = 0
    failed_items = []
    items = OrderItem.objects.filter(order_id=order_id).select_related('product', 'variant')

    for item in items:
        if not item.product.track_quantity:
            continue
        try:
            applied = _decrement_item(item)
            reason = None if applied else "Insufficient stock"
        except Exception as exc:
            logger.exception("Error decrementing stock for order item %s", item.pk)
            applied = False
            reason = str(exc) or exc.__class__.__name__

        if applied:
            OrderItem.objects.filter(pk=item.pk).update(stock_decremented=True)
            decremented += 1
            continue

        logger.warning(
            "Could not decrement stock for order %s item %s (%s x%s): %s",
            order_id, item.pk, item.product_name, item.quantity, reason,
        )
        failed_items.append({
            'item_id': item.pk,
            'product_id': item.product_id,
            'variant_id': item.variant_id,
            'product_name': item.product_name,
            'quantity': item.quantity,
            'reason': reason,
        })

    if failed_items:
        message = f"Decremented {decremented} item(s); {len(failed_items)} item(s) failed"
        logger.error("Partial inventory reconciliation for order %s: %s", order_id, message)
    else:
        message = f"Decremented {decremented} item(s)"
        logger.info("Inventory reconciled for order %s: %s", order_id, message)

    return InventoryResult(
        success=not failed_items,
        message=message,
        decremented=decremented,
        failed_items=failed_items,
    )


def release_order_inventory(order: Order) -> InventoryResult:
    """
    Put stock back for a cancelled or deleted order.

    Only line items whose stock was actually taken are restocked; lines that
    failed during a partial reconciliation hold nothing. Each line is claimed
    by clearing its ``stock_decremented`` flag first, so a line is released
    at most once. The order flag is left set so the order can never be
    decremented again.
    """
    if not order.inventory_decremented:
        return InventoryResult(success=True, skipped=True, message="No inventory held for this order")

    released = 0
    failed_items = []
    for item in order.items.filter(stock_decremented=True).select_related('product', 'variant'):
        claimed = OrderItem.objects.filter(pk=item.pk, stock_decremented=True).update(stock_decremented=False)
        if not claimed:
            continue
        try:
            if item.variant_id:
                item.variant.increase_inventory(item.quantity)
            else:
                item.product.increase_stock(item.quantity)
            released += 1
        except Exception as exc:
            logger.exception("Error releasing stock for order item %s", item.pk)
            OrderItem.objects.filter(pk=item.pk).update(stock_decremented=True)
            failed_items.append({'item_id': item.pk, 'quantity': item.quantity, 'reason': str(exc)})

    logger.info("Released %s item(s) of stock for order %s", released, order.pk)
    return InventoryResult(
        success=not failed_items,
        message=f"Released {released} item(s)",
        decremented=released,
        failed_items=failed_items,
    )


def check_inventory_availability(variant_id, quantity: int) -> InventoryCheck:
    """
    Check whether ``quantity`` units of a variant can be sold.

    Untracked products are always available; backorder products are
    available with an explanatory message.
    """
    variant = ProductVariant.objects.select_related('product').filter(pk=variant_id).first()
    if variant is None:
        return InventoryCheck(
            available=False,
            current_stock=0,
            requested=quantity,
            message="Product variant does not exist",
        )

    product = variant.product
    if not product.track_quantity or variant.inventory >= quantity:
        return InventoryCheck(available=True, current_stock=variant.inventory, requested=quantity)

    if product.allow_backorder:
        return InventoryCheck(
            available=True,
            current_stock=variant.inventory,
            requested=quantity,
            message=(
                f"{product.name}: only {variant.inventory} in stock, "
                f"the rest will ship later"
            ),
        )

    return InventoryCheck(
        available=False,
        current_stock=variant.inventory,
        requested=quantity,
        message=f"{product.name}: only {variant.inventory} left in stock",
    )


def get_low_stock_variants():
    """Tracked variants at or below their low-stock threshold."""
    variants = ProductVariant.objects.select_related('product').filter(
        product__track_quantity=True,
        inventory__lte=F('low_stock_threshold'),
    )
    return [
        {
            'variant_id': variant.pk,
            'product_name': variant.product.name,
            'size': variant.size,
            'color': variant.color,
            'current_stock': variant.inventory,
            'threshold': variant.low_stock_threshold,
        }
        for variant in variants
    ]
