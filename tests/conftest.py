"""
Shared fixtures: users with roles, a small catalogue, orders and API clients.
"""

from decimal import Decimal
from unittest import mock

import pytest
from rest_framework.test import APIClient

from authentication.models import Role
from orders.models import Order
from products.models import Product, ProductVariant

from .factories import make_order, make_user


@pytest.fixture(autouse=True)
def _test_settings(settings):
    settings.RATELIMIT_ENABLE = False
    settings.MOMO = {
        'PARTNER_CODE': 'MOMOTEST',
        'ACCESS_KEY': 'test-access-key',
        'SECRET_KEY': 'test-momo-secret',
        'ENDPOINT': 'https://momo.test/v2/gateway/api/create',
        'REQUEST_TYPE': 'payWithMethod',
        'TIMEOUT': 5,
    }
    settings.VNPAY = {
        'TMN_CODE': 'VNPTEST',
        'SECURE_SECRET': 'test-vnpay-secret',
        'HOST': 'https://sandbox.vnpayment.vn',
    }
    settings.STRIPE = {'WEBHOOK_SECRET': 'whsec_test_stripe_secret'}
    settings.IDENTITY_WEBHOOK_SECRET = 'whsec_dGVzdC1pZGVudGl0eS13ZWJob29rLXNlY3JldA=='


@pytest.fixture(autouse=True)
def pusher_client():
    """Every push goes to a mock client; tests can assert on ``trigger``."""
    client = mock.MagicMock()
    with mock.patch('notifications.dispatch.get_pusher_client', return_value=client):
        yield client


@pytest.fixture
def customer(db):
    return make_user('customer@example.com', Role.CUSTOMER)


@pytest.fixture
def other_customer(db):
    return make_user('other@example.com', Role.CUSTOMER)


@pytest.fixture
def admin_user(db):
    return make_user('admin@example.com', Role.ADMIN)


@pytest.fixture
def vendor(db):
    return make_user('vendor@example.com', Role.VENDOR)


@pytest.fixture
def product(db):
    return Product.objects.create(
        name='Linen Shirt',
        sku='SHIRT-001',
        price=Decimal('250000.00'),
        stock_quantity=20,
    )


@pytest.fixture
def variant(product):
    return ProductVariant.objects.create(
        product=product,
        size='M',
        color='White',
        inventory=10,
    )


@pytest.fixture
def second_variant(product):
    return ProductVariant.objects.create(
        product=product,
        size='L',
        color='White',
        inventory=1,
    )


@pytest.fixture
def pending_order(customer, product, variant):
    return make_order(
        user=customer,
        payment_method=Order.PaymentMethod.MOMO,
        items=[(product, variant, 2)],
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def customer_client(customer):
    client = APIClient()
    client.force_authenticate(user=customer)
    return client


@pytest.fixture
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client