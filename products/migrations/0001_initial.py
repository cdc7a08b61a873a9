from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(db_index=True, help_text='Product name (max 200 characters)', max_length=200)),
                ('description', models.TextField(blank=True, help_text='Detailed product description')),
                ('sku', models.CharField(db_index=True, help_text='Stock Keeping Unit - unique product identifier', max_length=100, unique=True)),
                ('price', models.DecimalField(decimal_places=2, help_text='Product price in the base currency', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('stock_quantity', models.PositiveIntegerField(default=0, help_text='Current stock quantity available')),
                ('track_quantity', models.BooleanField(default=True, help_text='If False, stock is not tracked and orders never decrement it')),
                ('allow_backorder', models.BooleanField(default=False, help_text='Accept orders beyond available stock')),
                ('is_active', models.BooleanField(default=True, help_text='If False, product is hidden from customers but preserved for order history')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when product was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when product was last updated')),
            ],
            options={
                'verbose_name': 'Product',
                'verbose_name_plural': 'Products',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['is_active', 'created_at'], name='products_pr_is_acti_8e1f2c_idx')],
            },
        ),
        migrations.CreateModel(
            name='ProductVariant',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('size', models.CharField(blank=True, max_length=50)),
                ('color', models.CharField(blank=True, max_length=50)),
                ('material', models.CharField(blank=True, max_length=50)),
                ('price', models.DecimalField(blank=True, decimal_places=2, help_text='Overrides the product price when set', max_digits=12, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('inventory', models.PositiveIntegerField(default=0, help_text='Units in stock for this variant')),
                ('low_stock_threshold', models.PositiveIntegerField(default=10, help_text='Inventory at or below this value is reported as low stock')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='variants', to='products.product')),
            ],
            options={
                'verbose_name': 'Product Variant',
                'verbose_name_plural': 'Product Variants',
                'ordering': ['product', 'size', 'color'],
                'constraints': [models.UniqueConstraint(fields=('product', 'size', 'color', 'material'), name='unique_product_variant')],
            },
        ),
    ]
