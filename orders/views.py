"""
Order ViewSet for the e-commerce admin API.

- Customers see the orders linked to their account or placed with their
  e-mail; admins and vendors see every order
- Cancellation, status changes and cleanup go through ``orders.services``
- Rate limiting on state-changing actions
- Audit logging for all state changes
"""

from django.db.models import Q
from django.utils.decorators import method_decorator
from django_filters.rest_framework import DjangoFilterBackend
from django_ratelimit.decorators import ratelimit
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from authentication.audit import log_audit_event
from authentication.models import AuditLog, Role
from authentication.permissions import IsAdminRole

from . import services
from .exceptions import OrderError
from .models import Order
from .serializers import BulkDeleteSerializer, OrderSerializer, StatusUpdateSerializer


class OrderViewSet(mixins.ListModelMixin,
                   mixins.RetrieveModelMixin,
                   viewsets.GenericViewSet):
    """
    Read access to orders plus the lifecycle actions.

    Every action answers ``{success, message, ...}``; errors are rendered by
    the project exception handler as ``{success: false, message}``.
    """

    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['status', 'is_paid', 'payment_method']

    def get_queryset(self):
        user = self.request.user
        queryset = Order.objects.select_related('user').prefetch_related('items')

        if user.has_role(Role.ADMIN, Role.VENDOR):
            return queryset

        if user.email:
            return queryset.filter(Q(user=user) | Q(email__iexact=user.email))
        return queryset.filter(user=user)

    def _respond(self, message, order=None, **extra):
        body = {'success': True, 'message': message}
        if order is not None:
            body['order'] = OrderSerializer(order).data
        body.update(extra)
        return Response(body, status=status.HTTP_200_OK)

    @action(detail=True, methods=['post'])
    @method_decorator(ratelimit(key='user', rate='10/m', method='POST'))
    def cancel(self, request, pk=None):
        """
        Cancel a PENDING or PROCESSING order.

        Owners may cancel their own orders; admins may cancel any order.
        Stock already taken for the order is put back.
        """
        try:
            order = services.cancel_order(pk, request.user)
        except OrderError as exc:
            log_audit_event(
                request, 'CANCEL', 'ORDER', pk,
                AuditLog.Status.FAILURE, {'reason': str(exc.detail)}
            )
            raise

        log_audit_event(
            request, 'CANCEL', 'ORDER', order.pk,
            AuditLog.Status.SUCCESS, {'requires_refund': order.requires_refund}
        )
        return self._respond("Order cancelled successfully", order)

    @action(detail=True, methods=['patch'], url_path='status', permission_classes=[IsAuthenticated, IsAdminRole])
    @method_decorator(ratelimit(key='user', rate='20/m', method='PATCH'))
    def update_status(self, request, pk=None):
        """Move an order along the state machine (admin only)."""
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data['status']

        try:
            order = services.update_order_status(pk, new_status, actor=request.user)
        except OrderError as exc:
            log_audit_event(
                request, 'UPDATE_STATUS', 'ORDER', pk,
                AuditLog.Status.FAILURE, {'new_status': new_status, 'reason': str(exc.detail)}
            )
            raise

        log_audit_event(
            request, 'UPDATE_STATUS', 'ORDER', order.pk,
            AuditLog.Status.SUCCESS, {'new_status': order.status}
        )
        return self._respond(f"Order status updated to {order.status}", order)

    @action(detail=True, methods=['delete'], url_path='cancel-payment')
    @method_decorator(ratelimit(key='user', rate='10/m', method='DELETE'))
    def cancel_payment(self, request, pk=None):
        """
        Drop an unpaid PENDING order after the customer abandoned the
        payment page.
        """
        services.delete_abandoned_order(pk, request.user)
        log_audit_event(request, 'CANCEL_PAYMENT', 'ORDER', pk, AuditLog.Status.SUCCESS)
        return self._respond("Order deleted")

    @action(detail=False, methods=['post'], url_path='link-user')
    def link_user(self, request):
        """Attach guest orders placed with the caller's e-mail to the account."""
        linked = services.link_orders_by_email(request.user)
        if linked:
            log_audit_event(
                request, 'LINK_ORDERS', 'USER', request.user.pk,
                AuditLog.Status.SUCCESS, {'linked': linked}
            )
        return self._respond(f"Linked {linked} order(s)", linked=linked)

    @action(detail=False, methods=['post'], url_path='bulk-delete', permission_classes=[IsAuthenticated, IsAdminRole])
    @method_decorator(ratelimit(key='user', rate='5/m', method='POST'))
    def bulk_delete(self, request):
        """Delete DELIVERED or CANCELLED orders (admin only)."""
        serializer = BulkDeleteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = services.bulk_delete_orders(serializer.validated_data['ids'])
        log_audit_event(
            request, 'BULK_DELETE', 'ORDER', None,
            AuditLog.Status.SUCCESS, result
        )
        return self._respond(f"Deleted {result['deleted']} order(s)", **result)
