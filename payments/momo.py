"""
MoMo wallet gateway client.

MoMo signs every message with HMAC-SHA256 over a fixed, ordered
``key=value&...`` string built from the message fields; the order of the keys
differs between the create-payment request and the IPN callback.
"""

import hashlib
import hmac
import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

REQUEST_SIGNATURE_FIELDS = (
    'accessKey', 'amount', 'extraData', 'ipnUrl', 'orderId', 'orderInfo',
    'partnerCode', 'redirectUrl', 'requestId', 'requestType',
)

IPN_SIGNATURE_FIELDS = (
    'accessKey', 'amount', 'extraData', 'message', 'orderId', 'orderInfo',
    'orderType', 'partnerCode', 'payType', 'requestId', 'responseTime',
    'resultCode', 'transId',
)

RESULT_SUCCESS = 0


class MoMoError(Exception):
    """The gateway rejected the request or could not be reached."""


class MoMoNotConfigured(MoMoError):
    pass


def get_config():
    return settings.MOMO


def is_configured() -> bool:
    config = get_config()
    return bool(config.get('PARTNER_CODE') and config.get('ACCESS_KEY') and config.get('SECRET_KEY'))


def get_redirect_url(order_id) -> str:
    """Customer-facing page MoMo sends the shopper back to."""
    return f"{settings.FRONTEND_STORE_URL}/payment/momo/return?orderId={order_id}"


def get_ipn_url() -> str:
    return f"{settings.APP_URL}/api/momo/ipn/"


def get_return_url(order_id) -> str:
    return f"{settings.FRONTEND_STORE_URL}/payment/success?orderId={order_id}&method=momo"


def _format(value) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return str(int(value))
    return str(value)


def build_raw_signature(fields, values) -> str:
    return '&'.join(f"{field}={_format(values.get(field))}" for field in fields)


def generate_signature(raw_signature: str, secret_key: str) -> str:
    return hmac.new(
        secret_key.encode('utf-8'),
        raw_signature.encode('utf-8'),
        hashlib.sha256,
    ).hexdigest()


def verify_ipn_signature(payload, secret_key=None, access_key=None) -> bool:
    """
    Check the signature of an IPN payload.

    ``accessKey`` is not part of the payload; it is taken from settings.
    """
    config = get_config()
    secret_key = secret_key if secret_key is not None else config.get('SECRET_KEY')
    access_key = access_key if access_key is not None else config.get('ACCESS_KEY')
    signature = payload.get('signature')
    if not secret_key or not signature:
        return False

    values = dict(payload, accessKey=access_key)
    expected = generate_signature(build_raw_signature(IPN_SIGNATURE_FIELDS, values), secret_key)
    return hmac.compare_digest(expected, str(signature))


def create_payment(order_id, amount: int, order_info: str) -> dict:
    """
    Create a payment session with MoMo and return the gateway response,
    which carries ``payUrl``, ``deeplink`` and ``qrCodeUrl``.

    Raises:
        MoMoNotConfigured: credentials are missing
        MoMoError: transport failure or a non-zero ``resultCode``
    """
    if not is_configured():
        raise MoMoNotConfigured("MoMo configuration is missing")

    config = get_config()
    order_id = str(order_id)
    body = {
        'partnerCode': config['PARTNER_CODE'],
        'partnerName': config.get('PARTNER_NAME', 'E-Commerce Store'),
        'storeId': config.get('STORE_ID', 'MoMoStore'),
        'requestId': order_id,
        'amount': str(amount),
        'orderId': order_id,
        'orderInfo': order_info,
        'redirectUrl': get_redirect_url(order_id),
        'ipnUrl': get_ipn_url(),
        'lang': config.get('LANG', 'vi'),
        'extraData': '',
        'requestType': config.get('REQUEST_TYPE', 'payWithMethod'),
    }
    raw_signature = build_raw_signature(
        REQUEST_SIGNATURE_FIELDS, dict(body, accessKey=config['ACCESS_KEY'])
    )
    body['signature'] = generate_signature(raw_signature, config['SECRET_KEY'])

    try:
        response = requests.post(config['ENDPOINT'], json=body, timeout=config.get('TIMEOUT', 30))
        response.raise_for_status()
        result = response.json()
    except requests.RequestException as exc:
        logger.error("MoMo create payment request failed for order %s: %s", order_id, exc)
        raise MoMoError(f"MoMo API request failed: {exc}") from exc
    except ValueError as exc:
        raise MoMoError("MoMo returned an invalid response") from exc

    if result.get('resultCode') != RESULT_SUCCESS:
        logger.warning(
            "MoMo rejected payment for order %s: %s (%s)",
            order_id, result.get('message'), result.get('resultCode'),
        )
        raise MoMoError(f"MoMo payment creation failed: {result.get('message')}")

    return result
