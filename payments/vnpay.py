"""
VNPay bank-transfer gateway helpers.

VNPay signs the ``vnp_*`` parameters with HMAC-SHA512: keys sorted, values
URL-encoded (spaces as ``+``), joined as a query string. The hash fields
themselves are excluded.
"""

import hashlib
import hmac
from decimal import Decimal, InvalidOperation
from urllib.parse import quote_plus

from django.conf import settings

HASH_FIELDS = ('vnp_SecureHash', 'vnp_SecureHashType')

RESPONSE_SUCCESS = '00'

RSP_SUCCESS = '00'
RSP_ORDER_NOT_FOUND = '01'
RSP_AMOUNT_MISMATCH = '04'
RSP_INVALID_SIGNATURE = '97'
RSP_UNKNOWN_ERROR = '99'

# vnp_Amount is sent in hundredths of the currency unit
AMOUNT_MULTIPLIER = 100
AMOUNT_TOLERANCE = Decimal('1')


def get_config():
    return settings.VNPAY


def is_configured() -> bool:
    config = get_config()
    return bool(config.get('TMN_CODE') and config.get('SECURE_SECRET'))


def build_hash_data(params) -> str:
    items = sorted(
        (key, value) for key, value in params.items()
        if key.startswith('vnp_') and key not in HASH_FIELDS and value not in (None, '')
    )
    return '&'.join(f"{key}={quote_plus(str(value))}" for key, value in items)


def sign_params(params, secret=None) -> str:
    secret = secret if secret is not None else get_config().get('SECURE_SECRET', '')
    return hmac.new(
        secret.encode('utf-8'),
        build_hash_data(params).encode('utf-8'),
        hashlib.sha512,
    ).hexdigest()


def verify_ipn_params(params, secret=None) -> bool:
    received = params.get('vnp_SecureHash')
    secret = secret if secret is not None else get_config().get('SECURE_SECRET', '')
    if not received or not secret:
        return False
    return hmac.compare_digest(sign_params(params, secret).lower(), str(received).lower())


def parse_amount(params):
    """Amount in currency units, or None when missing or malformed."""
    try:
        return Decimal(str(params.get('vnp_Amount'))) / AMOUNT_MULTIPLIER
    except (InvalidOperation, TypeError):
        return None


def amount_matches(received, expected) -> bool:
    return received is not None and abs(received - Decimal(expected)) <= AMOUNT_TOLERANCE
