from django.contrib import admin

from .models import Product, ProductVariant


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0
    fields = ['size', 'color', 'material', 'price', 'inventory', 'low_stock_threshold']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Admin interface for Product model."""
    list_display = ['name', 'sku', 'price', 'stock_quantity', 'track_quantity', 'is_active']
    list_filter = ['is_active', 'track_quantity', 'allow_backorder']
    search_fields = ['name', 'sku']
    inlines = [ProductVariantInline]
