"""
Security middleware for the e-commerce admin application.

This module provides middleware for:
- Audit logging of state-changing API requests
- Security header injection
"""

import logging

from django.utils.deprecation import MiddlewareMixin

from .audit import get_client_ip
from .models import AuditLog

logger = logging.getLogger(__name__)


class AuditLoggingMiddleware(MiddlewareMixin):
    """
    Middleware to automatically log state-changing API requests.

    Logs method, path, user, IP and the resulting status for every
    POST/PUT/PATCH/DELETE under the audited prefixes. Payment and identity
    webhooks are excluded: their handlers write richer audit entries
    themselves (signature failures, reconciliation outcome).

    Logging failures never affect request processing.
    """

    LOGGED_PATHS = [
        '/api/auth/',
        '/api/orders/',
        '/api/momo/payment/',
        '/admin/',
    ]

    LOGGED_METHODS = ['POST', 'PUT', 'PATCH', 'DELETE']

    EXCLUDED_PATHS = [
        '/api/momo/ipn/',
        '/api/vnpay/ipn/',
        '/api/webhooks/',
        '/static/',
    ]

    def process_request(self, request):
        if any(request.path.startswith(path) for path in self.EXCLUDED_PATHS):
            return None

        if request.method in self.LOGGED_METHODS and any(
            request.path.startswith(path) for path in self.LOGGED_PATHS
        ):
            try:
                # Status is only known in process_response
                request._audit_log_data = {
                    'action': self._determine_action(request),
                    'resource_type': self._determine_resource_type(request.path),
                    'ip_address': get_client_ip(request),
                    'user_agent': request.META.get('HTTP_USER_AGENT', ''),
                    'request_path': request.path,
                    'request_method': request.method,
                }
            except Exception as e:
                logger.error(f"Error in audit logging middleware: {e}")

        return None

    def process_response(self, request, response):
        if hasattr(request, '_audit_log_data'):
            try:
                if 200 <= response.status_code < 300:
                    status = AuditLog.Status.SUCCESS
                elif response.status_code == 403:
                    status = AuditLog.Status.BLOCKED
                else:
                    status = AuditLog.Status.FAILURE

                resource_id = None
                if hasattr(response, 'data') and isinstance(response.data, dict):
                    order = response.data.get('order')
                    if isinstance(order, dict):
                        resource_id = order.get('id')
                    resource_id = resource_id or response.data.get('id')

                user = getattr(request, 'user', None)
                AuditLog.objects.create(
                    user=user if user is not None and user.is_authenticated else None,
                    resource_id=str(resource_id) if resource_id else None,
                    status=status,
                    metadata={'status_code': response.status_code},
                    **request._audit_log_data,
                )
            except Exception as e:
                logger.error(f"Error completing audit log: {e}")

        return response

    def _determine_action(self, request):
        method = request.method
        path = request.path.lower()

        if method == 'POST':
            if path.rstrip('/').endswith('/cancel'):
                return 'CANCEL'
            return 'CREATE'
        elif method in ('PUT', 'PATCH'):
            return 'UPDATE'
        elif method == 'DELETE':
            return 'DELETE'
        return 'UNKNOWN'

    def _determine_resource_type(self, path):
        path_lower = path.lower()

        if '/auth/' in path_lower or '/user' in path_lower:
            return 'USER'
        elif '/order' in path_lower:
            return 'ORDER'
        elif '/momo' in path_lower or '/payment' in path_lower:
            return 'PAYMENT'
        elif '/admin' in path_lower:
            return 'ADMIN'
        return 'UNKNOWN'


class SecurityHeadersMiddleware(MiddlewareMixin):
    """
    Middleware to add security headers to all responses.

    The API serves JSON only, so the content security policy forbids every
    resource type; the Django admin gets a policy that allows its own
    static assets.
    """

    API_CSP = "default-src 'none'; frame-ancestors 'none'"
    ADMIN_CSP = (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline'; "
        "style-src 'self' 'unsafe-inline'; "
        "img-src 'self' data:; "
        "frame-ancestors 'none'"
    )

    def process_response(self, request, response):
        response['X-Content-Type-Options'] = 'nosniff'
        response['X-Frame-Options'] = 'DENY'
        response['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        if request.path.startswith('/api/'):
            response['Content-Security-Policy'] = self.API_CSP
            response['Cache-Control'] = 'no-store'
        else:
            response['Content-Security-Policy'] = self.ADMIN_CSP
        response['Permissions-Policy'] = (
            "camera=(), geolocation=(), microphone=(), payment=(), usb=()"
        )
        return response
