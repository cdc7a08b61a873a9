from django.contrib import admin

from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ['product', 'variant', 'product_name', 'quantity', 'unit_price', 'line_total', 'stock_decremented']
    readonly_fields = fields
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Read-mostly view of orders. Status changes belong to the API so they go
    through the state machine.
    """
    list_display = [
        'order_number', 'email', 'status', 'is_paid', 'payment_method',
        'total_amount', 'requires_refund', 'created_at',
    ]
    list_filter = ['status', 'is_paid', 'payment_method', 'requires_refund']
    search_fields = ['order_number', 'email', 'receiver_name', 'phone', 'transaction_id']
    readonly_fields = [
        'id', 'order_number', 'status', 'is_paid', 'transaction_id',
        'inventory_decremented', 'requires_refund', 'total_amount',
        'created_at', 'updated_at', 'shipped_at', 'delivered_at',
    ]
    raw_id_fields = ['user']
    inlines = [OrderItemInline]
