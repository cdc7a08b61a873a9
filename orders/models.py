"""
Order models for the e-commerce admin application.

This module defines Order and OrderItem models which represent customer
purchase transactions:
- Status tracking for the order lifecycle (see ``orders.state_machine``)
- Payment state and the inventory idempotency flag
- Financial calculations with Decimal precision
- Price snapshots on order items
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


def generate_order_number() -> str:
    """Short customer-facing reference, e.g. ``ORD-20240131-9F2C41AB``."""
    return f"ORD-{timezone.now().strftime('%Y%m%d')}-{uuid.uuid4().hex[:8].upper()}"


class Order(models.Model):
    """
    Represents a customer purchase transaction.

    - ``status`` only moves along the edges defined in ``orders.state_machine``
    - ``is_paid`` implies the order has left PENDING
    - ``inventory_decremented`` is set once stock has been taken for the
      order and is never cleared, so stock is decremented at most once
    - ``order_number`` is immutable once assigned
    """

    class OrderStatus(models.TextChoices):
        PENDING = 'PENDING', _('Pending')
        PROCESSING = 'PROCESSING', _('Processing')
        SHIPPED = 'SHIPPED', _('Shipped')
        DELIVERED = 'DELIVERED', _('Delivered')
        CANCELLED = 'CANCELLED', _('Cancelled')
        RETURNED = 'RETURNED', _('Returned')

    class PaymentMethod(models.TextChoices):
        COD = 'COD', _('Cash on delivery')
        STRIPE = 'STRIPE', _('Card (Stripe)')
        MOMO = 'MOMO', _('MoMo wallet')
        VNPAY = 'VNPAY', _('VNPay bank transfer')
        QR = 'QR', _('QR transfer')

    # Payment methods settled through an online gateway; cancelling a paid
    # order with one of these needs a refund.
    ONLINE_GATEWAY_METHODS = (
        PaymentMethod.STRIPE,
        PaymentMethod.MOMO,
        PaymentMethod.VNPAY,
    )

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
    )

    order_number = models.CharField(
        max_length=50,
        unique=True,
        null=True,
        blank=True,
        help_text=_("Unique order identifier for customer reference"),
    )

    # Customer. Guest orders have no user and are linked later by e-mail.
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders',
        help_text=_("Customer account, if linked"),
    )
    email = models.EmailField(
        blank=True,
        db_index=True,
        help_text=_("Customer e-mail captured at checkout (lower case)"),
    )

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
        db_index=True,
        help_text=_("Current status of the order"),
    )

    # Payment
    is_paid = models.BooleanField(default=False, db_index=True)
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.COD,
    )
    transaction_id = models.CharField(
        max_length=100,
        blank=True,
        help_text=_("Payment provider transaction reference"),
    )
    inventory_decremented = models.BooleanField(
        default=False,
        help_text=_("Set once stock has been decremented for this order"),
    )
    requires_refund = models.BooleanField(
        default=False,
        help_text=_("Paid online order that was cancelled; refund handled outside the system"),
    )

    # Financial Information
    subtotal = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text=_("Sum of all order items before tax and shipping"),
    )
    tax_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
    )
    shipping_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
    )
    discount_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
    )
    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text=_("Total order amount including tax and shipping, less discount"),
    )
    coupon_code = models.CharField(max_length=50, blank=True)

    # Shipping Information
    receiver_name = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=20, blank=True)
    shipping_address = models.TextField(blank=True)
    shipping_city = models.CharField(max_length=100, blank=True)
    shipping_postal_code = models.CharField(max_length=20, blank=True)
    shipping_country = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)

    # Timestamps
    created_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text=_("Timestamp when order was created"),
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text=_("Timestamp when order was last updated"),
    )
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='orders_orde_user_id_4b8e1a_idx'),
            models.Index(fields=['status', 'created_at'], name='orders_orde_status_c2d7f0_idx'),
            models.Index(fields=['is_paid', 'status'], name='orders_orde_is_paid_93a5be_idx'),
        ]
        verbose_name = _("Order")
        verbose_name_plural = _("Orders")

    def __str__(self):
        return f"Order {self.order_number} - {self.email or 'guest'} - {self.total_amount}"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_order_number = instance.__dict__.get('order_number')
        return instance

    @property
    def is_online_payment(self) -> bool:
        return self.payment_method in self.ONLINE_GATEWAY_METHODS

    def calculate_total(self) -> Decimal:
        """
        Calculate total amount (subtotal + tax + shipping - discount), never
        below zero.
        """
        total = self.subtotal + self.tax_amount + self.shipping_cost - self.discount_amount
        return max(total, Decimal('0.00'))

    def save(self, *args, **kwargs):
        """
        Normalise the e-mail, recompute the total and assign the order number
        on first save. A persisted order number can never change.
        """
        loaded_number = getattr(self, '_loaded_order_number', None)
        if loaded_number and self.order_number != loaded_number:
            raise ValueError("order_number is immutable once assigned")

        if not self.order_number:
            self.order_number = generate_order_number()
            update_fields = kwargs.get('update_fields')
            if update_fields is not None:
                kwargs['update_fields'] = set(update_fields) | {'order_number'}

        if self.email:
            self.email = self.email.strip().lower()

        update_fields = kwargs.get('update_fields')
        if update_fields is None or {'subtotal', 'tax_amount', 'shipping_cost', 'discount_amount'} & set(update_fields):
            self.total_amount = self.calculate_total()
            if update_fields is not None:
                kwargs['update_fields'] = set(update_fields) | {'total_amount'}

        super().save(*args, **kwargs)
        self._loaded_order_number = self.order_number


class OrderItem(models.Model):
    """
    Represents a single product within an order with quantity and price.

    Product name, variant labels and unit price are copied at order time so
    later catalogue edits never change past orders.
    """

    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='items',
        help_text=_("Order this item belongs to"),
    )
    product = models.ForeignKey(
        'products.Product',
        on_delete=models.PROTECT,
        related_name='order_items',
        help_text=_("Product being ordered"),
    )
    variant = models.ForeignKey(
        'products.ProductVariant',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='order_items',
        help_text=_("Variant whose inventory this line consumes"),
    )

    # Snapshot
    product_name = models.CharField(max_length=200, blank=True)
    size_name = models.CharField(max_length=50, blank=True)
    color_name = models.CharField(max_length=50, blank=True)
    material_name = models.CharField(max_length=50, blank=True)

    quantity = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text=_("Quantity of this product in the order"),
    )
    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        help_text=_("Price per unit at time of order (snapshot)"),
    )
    line_total = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal('0.00'),
        help_text=_("Total for this line item (quantity x unit_price)"),
    )
    stock_decremented = models.BooleanField(
        default=False,
        help_text=_("Stock for this line was taken and has not been put back"),
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['order', 'product'], name='orders_orde_order_i_5e0a77_idx'),
        ]
        verbose_name = _("Order Item")
        verbose_name_plural = _("Order Items")

    def __str__(self):
        return f"{self.quantity}x {self.product_name or self.product_id} in Order {self.order.order_number}"

    def calculate_line_total(self) -> Decimal:
        return Decimal(self.quantity) * self.unit_price

    def save(self, *args, **kwargs):
        self.line_total = self.calculate_line_total()
        if not self.product_name and self.product_id:
            self.product_name = self.product.name
        if self.variant_id and not (self.size_name or self.color_name or self.material_name):
            self.size_name = self.variant.size
            self.color_name = self.variant.color
            self.material_name = self.variant.material
        super().save(*args, **kwargs)
