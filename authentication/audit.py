"""
Helpers for writing AuditLog entries from views and services.
"""

import logging

from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """
    Get client IP address from request.

    Handles proxies and load balancers that add X-Forwarded-For header.
    """
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        # X-Forwarded-For can contain multiple IPs, take the first one
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def log_audit_event(request, action, resource_type, resource_id, status, metadata=None):
    """
    Create an audit log entry for the given request.

    Args:
        request: HTTP request object (Django or DRF), or None for
            events raised outside a request cycle
        action: Action type (CANCEL, UPDATE_STATUS, PAYMENT_IPN, ...)
        resource_type: Resource type (ORDER, PAYMENT, USER, ...)
        resource_id: ID of the affected resource
        status: AuditLog.Status value
        metadata: Additional event-specific data

    Audit logging never fails the caller; errors are logged instead.
    """
    try:
        user = None
        fields = {}
        if request is not None:
            request_user = getattr(request, 'user', None)
            if request_user is not None and request_user.is_authenticated:
                user = request_user
            fields = {
                'ip_address': get_client_ip(request),
                'user_agent': request.META.get('HTTP_USER_AGENT', ''),
                'request_path': request.path,
                'request_method': request.method,
            }

        return AuditLog.objects.create(
            user=user,
            action=action,
            resource_type=resource_type,
            resource_id=str(resource_id) if resource_id else None,
            status=status,
            metadata=metadata or {},
            **fields,
        )
    except Exception:
        logger.exception("Failed to write audit log entry for %s %s", action, resource_type)
        return None
