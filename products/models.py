"""
Product models for the e-commerce admin application.

This module defines the Product and ProductVariant models. Stock lives on the
variant (size/color/material combination) when a product has variants, and on
the product itself otherwise. Stock changes are made through conditional
updates so two concurrent orders can never drive a quantity below zero.
"""

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Product(models.Model):
    """
    Represents a product/item available for sale.

    - All prices are stored as Decimal to prevent floating-point errors
    - Stock quantities are validated to be non-negative
    - Soft deletion (is_active) preserves order history
    """

    name = models.CharField(
        max_length=200,
        help_text=_("Product name (max 200 characters)"),
        db_index=True,
    )
    description = models.TextField(
        help_text=_("Detailed product description"),
        blank=True,
    )
    sku = models.CharField(
        max_length=100,
        unique=True,
        help_text=_("Stock Keeping Unit - unique product identifier"),
        db_index=True,
    )

    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text=_("Product price in the base currency"),
    )

    # Used when the product has no variants
    stock_quantity = models.PositiveIntegerField(
        default=0,
        help_text=_("Current stock quantity available"),
    )
    track_quantity = models.BooleanField(
        default=True,
        help_text=_("If False, stock is not tracked and orders never decrement it"),
    )
    allow_backorder = models.BooleanField(
        default=False,
        help_text=_("Accept orders beyond available stock"),
    )

    is_active = models.BooleanField(
        default=True,
        help_text=_("If False, product is hidden from customers but preserved for order history"),
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        help_text=_("Timestamp when product was created"),
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text=_("Timestamp when product was last updated"),
    )

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['is_active', 'created_at'], name='products_pr_is_acti_8e1f2c_idx'),
        ]
        verbose_name = _("Product")
        verbose_name_plural = _("Products")

    def __str__(self):
        return f"{self.name} (SKU: {self.sku})"

    def reduce_stock(self, quantity: int) -> bool:
        """
        Reduce stock quantity by specified amount.

        Args:
            quantity: Amount to reduce (must be positive)

        Returns:
            bool: True if reduction was applied, False if stock was insufficient

        The check and the decrement are one conditional UPDATE, so concurrent
        callers cannot oversell.
        """
        if quantity <= 0:
            raise ValueError("Quantity must be positive")

        updated = Product.objects.filter(
            pk=self.pk,
            stock_quantity__gte=quantity,
        ).update(
            stock_quantity=F('stock_quantity') - quantity,
            updated_at=timezone.now(),
        )
        if updated:
            self.refresh_from_db(fields=['stock_quantity', 'updated_at'])
        return bool(updated)

    def increase_stock(self, quantity: int) -> None:
        if quantity <= 0:
            raise ValueError("Quantity must be positive")

        Product.objects.filter(pk=self.pk).update(
            stock_quantity=F('stock_quantity') + quantity,
            updated_at=timezone.now(),
        )
        self.refresh_from_db(fields=['stock_quantity', 'updated_at'])


class ProductVariant(models.Model):
    """
    A purchasable size/color/material combination of a product with its own
    inventory.
    """

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name='variants',
    )
    size = models.CharField(max_length=50, blank=True)
    color = models.CharField(max_length=50, blank=True)
    material = models.CharField(max_length=50, blank=True)

    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.01'))],
        help_text=_("Overrides the product price when set"),
    )
    inventory = models.PositiveIntegerField(
        default=0,
        help_text=_("Units in stock for this variant"),
    )
    low_stock_threshold = models.PositiveIntegerField(
        default=10,
        help_text=_("Inventory at or below this value is reported as low stock"),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['product', 'size', 'color']
        constraints = [
            models.UniqueConstraint(
                fields=['product', 'size', 'color', 'material'],
                name='unique_product_variant',
            ),
        ]
        verbose_name = _("Product Variant")
        verbose_name_plural = _("Product Variants")

    def __str__(self):
        label = ' / '.join(part for part in (self.size, self.color, self.material) if part)
        return f"{self.product.name} ({label or 'default'})"

    @property
    def effective_price(self) -> Decimal:
        return self.price if self.price is not None else self.product.price

    def reduce_inventory(self, quantity: int) -> bool:
        """Conditional decrement; False when fewer than ``quantity`` units remain."""
        if quantity <= 0:
            raise ValueError("Quantity must be positive")

        updated = ProductVariant.objects.filter(
            pk=self.pk,
            inventory__gte=quantity,
        ).update(
            inventory=F('inventory') - quantity,
            updated_at=timezone.now(),
        )
        if updated:
            self.refresh_from_db(fields=['inventory', 'updated_at'])
        return bool(updated)

    def increase_inventory(self, quantity: int) -> None:
        if quantity <= 0:
            raise ValueError("Quantity must be positive")

        ProductVariant.objects.filter(pk=self.pk).update(
            inventory=F('inventory') + quantity,
            updated_at=timezone.now(),
        )
        self.refresh_from_db(fields=['inventory', 'updated_at'])
