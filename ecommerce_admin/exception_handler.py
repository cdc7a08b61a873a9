"""
API-wide exception handler.

Every error leaving the API uses the same envelope, ``{"success": false,
"message": "..."}``, so storefront and dashboard clients only need one error
path. Unauthenticated (401) and forbidden (403) stay distinct because the
default authentication class advertises a ``WWW-Authenticate`` header.
"""

import logging

from django.conf import settings
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def _first_message(detail):
    """Flatten DRF error details (str, list or dict) into one readable line."""
    if isinstance(detail, dict):
        for field, value in detail.items():
            message = _first_message(value)
            if field in ('detail', 'non_field_errors'):
                return message
            return f"{field}: {message}"
        return ''
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ''
    return str(detail)


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)

    if response is None:
        view = context.get('view')
        logger.exception(
            "Unhandled error in %s", view.__class__.__name__ if view else 'unknown view'
        )
        if settings.DEBUG:
            return None
        return Response(
            {'success': False, 'message': 'Internal server error'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    payload = {
        'success': False,
        'message': _first_message(response.data),
    }
    if isinstance(response.data, dict) and 'detail' not in response.data:
        payload['errors'] = response.data
    response.data = payload
    return response
