"""
Order domain errors.

Each error carries the HTTP status the API answers with, so services can raise
them and views can let DRF render them through the project exception handler.
"""

from rest_framework import status
from rest_framework.exceptions import APIException


class OrderError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Order operation failed.'
    default_code = 'order_error'


class OrderNotFound(OrderError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Order not found.'
    default_code = 'order_not_found'


class OrderAccessDenied(OrderError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "You don't have permission to modify this order."
    default_code = 'order_access_denied'


class InvalidTransition(OrderError):
    """Illegal status change; the message names the offending states."""

    default_detail = 'Invalid order status transition.'
    default_code = 'invalid_transition'


class InvalidOrderStatus(OrderError):
    default_detail = 'Invalid order status.'
    default_code = 'invalid_status'
