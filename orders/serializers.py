"""
Order serializers for the e-commerce admin API.

Orders are read through the API; every write goes through
``orders.services`` so the state machine stays the only way to change status.
"""

from rest_framework import serializers

from .models import Order, OrderItem
from .state_machine import get_status_display_name, get_valid_next_statuses


class OrderItemSerializer(serializers.ModelSerializer):
    """
    Line item as captured at checkout.

    Names and prices are the snapshot stored on the item, not the current
    catalogue values.
    """

    product_sku = serializers.CharField(
        source='product.sku',
        read_only=True,
    )

    class Meta:
        model = OrderItem
        fields = [
            'id',
            'product',
            'variant',
            'product_name',
            'product_sku',
            'size_name',
            'color_name',
            'material_name',
            'quantity',
            'unit_price',
            'line_total',
            'created_at',
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """
    Order with nested items, the customer's e-mail and the statuses the
    order may move to next.
    """

    items = OrderItemSerializer(many=True, read_only=True)
    status_display = serializers.SerializerMethodField()
    next_statuses = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id',
            'order_number',
            'user',
            'email',
            'status',
            'status_display',
            'next_statuses',
            'is_paid',
            'payment_method',
            'transaction_id',
            'inventory_decremented',
            'requires_refund',
            'subtotal',
            'tax_amount',
            'shipping_cost',
            'discount_amount',
            'total_amount',
            'coupon_code',
            'receiver_name',
            'phone',
            'shipping_address',
            'shipping_city',
            'shipping_postal_code',
            'shipping_country',
            'notes',
            'items',
            'created_at',
            'updated_at',
            'shipped_at',
            'delivered_at',
        ]
        read_only_fields = fields

    def get_status_display(self, obj):
        return get_status_display_name(obj.status)

    def get_next_statuses(self, obj):
        return list(get_valid_next_statuses(obj.status))


class StatusUpdateSerializer(serializers.Serializer):
    """
    Body of ``PATCH /api/orders/<id>/status/``.

    The value is only checked for presence here; unknown statuses are
    rejected by ``update_order_status`` with the list of valid values.
    """

    status = serializers.CharField(max_length=20)

    def validate_status(self, value):
        return value.strip().upper()


class BulkDeleteSerializer(serializers.Serializer):
    ids = serializers.ListField(
        child=serializers.UUIDField(),
        allow_empty=False,
        max_length=500,
    )
