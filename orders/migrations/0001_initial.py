import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('products', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('order_number', models.CharField(blank=True, help_text='Unique order identifier for customer reference', max_length=50, null=True, unique=True)),
                ('email', models.EmailField(blank=True, db_index=True, help_text='Customer e-mail captured at checkout (lower case)', max_length=254)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('PROCESSING', 'Processing'), ('SHIPPED', 'Shipped'), ('DELIVERED', 'Delivered'), ('CANCELLED', 'Cancelled'), ('RETURNED', 'Returned')], db_index=True, default='PENDING', help_text='Current status of the order', max_length=20)),
                ('is_paid', models.BooleanField(db_index=True, default=False)),
                ('payment_method', models.CharField(choices=[('COD', 'Cash on delivery'), ('STRIPE', 'Card (Stripe)'), ('MOMO', 'MoMo wallet'), ('VNPAY', 'VNPay bank transfer'), ('QR', 'QR transfer')], default='COD', max_length=20)),
                ('transaction_id', models.CharField(blank=True, help_text='Payment provider transaction reference', max_length=100)),
                ('inventory_decremented', models.BooleanField(default=False, help_text='Set once stock has been decremented for this order')),
                ('requires_refund', models.BooleanField(default=False, help_text='Paid online order that was cancelled; refund handled outside the system')),
                ('subtotal', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Sum of all order items before tax and shipping', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('tax_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('shipping_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('discount_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Total order amount including tax and shipping, less discount', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('coupon_code', models.CharField(blank=True, max_length=50)),
                ('receiver_name', models.CharField(blank=True, max_length=200)),
                ('phone', models.CharField(blank=True, max_length=20)),
                ('shipping_address', models.TextField(blank=True)),
                ('shipping_city', models.CharField(blank=True, max_length=100)),
                ('shipping_postal_code', models.CharField(blank=True, max_length=20)),
                ('shipping_country', models.CharField(blank=True, max_length=100)),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now, help_text='Timestamp when order was created')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when order was last updated')),
                ('shipped_at', models.DateTimeField(blank=True, null=True)),
                ('delivered_at', models.DateTimeField(blank=True, null=True)),
                ('user', models.ForeignKey(blank=True, help_text='Customer account, if linked', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='orders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Order',
                'verbose_name_plural': 'Orders',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'created_at'], name='orders_orde_user_id_4b8e1a_idx'),
                    models.Index(fields=['status', 'created_at'], name='orders_orde_status_c2d7f0_idx'),
                    models.Index(fields=['is_paid', 'status'], name='orders_orde_is_paid_93a5be_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OrderItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product_name', models.CharField(blank=True, max_length=200)),
                ('size_name', models.CharField(blank=True, max_length=50)),
                ('color_name', models.CharField(blank=True, max_length=50)),
                ('material_name', models.CharField(blank=True, max_length=50)),
                ('quantity', models.PositiveIntegerField(help_text='Quantity of this product in the order', validators=[django.core.validators.MinValueValidator(1)])),
                ('unit_price', models.DecimalField(decimal_places=2, help_text='Price per unit at time of order (snapshot)', max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('line_total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Total for this line item (quantity x unit_price)', max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('order', models.ForeignKey(help_text='Order this item belongs to', on_delete=django.db.models.deletion.CASCADE, related_name='items', to='orders.order')),
                ('product', models.ForeignKey(help_text='Product being ordered', on_delete=django.db.models.deletion.PROTECT, related_name='order_items', to='products.product')),
                ('variant', models.ForeignKey(blank=True, help_text='Variant whose inventory this line consumes', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='order_items', to='products.productvariant')),
            ],
            options={
                'verbose_name': 'Order Item',
                'verbose_name_plural': 'Order Items',
                'ordering': ['created_at', 'id'],
                'indexes': [models.Index(fields=['order', 'product'], name='orders_orde_order_i_5e0a77_idx')],
            },
        ),
    ]
