"""
Identity provider webhook.

The identity provider delivers ``user.created``, ``user.updated`` and
``user.deleted`` events signed with Svix. Created and updated users are
mirrored locally and any guest orders placed with the same e-mail are linked
to the account.
"""

import json
import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from svix.webhooks import Webhook, WebhookVerificationError

from orders.services import link_orders_by_email

from .audit import log_audit_event
from .identity import placeholder_email, provision_user
from .models import AuditLog
from .serializers import IdentityEventSerializer, IdentityUserDataSerializer

logger = logging.getLogger(__name__)

User = get_user_model()

SVIX_HEADERS = ('svix-id', 'svix-timestamp', 'svix-signature')


def _verify(request):
    """Raise WebhookVerificationError unless the body carries a valid Svix signature."""
    secret = settings.IDENTITY_WEBHOOK_SECRET
    if not secret:
        raise WebhookVerificationError("IDENTITY_WEBHOOK_SECRET is not configured")
    headers = {name: request.headers.get(name, '') for name in SVIX_HEADERS}
    Webhook(secret).verify(request.body, headers)


def handle_user_upsert(data):
    """Create or refresh the local user, then link guest orders by e-mail."""
    serializer = IdentityUserDataSerializer(data=data)
    serializer.is_valid(raise_exception=True)
    attrs = serializer.validated_data

    user = provision_user(
        attrs['id'],
        email=attrs['email'],
        first_name=attrs['first_name'],
        last_name=attrs['last_name'],
        image_url=attrs['image_url'],
    )

    changed = []
    email = attrs['email']
    if email and user.email != email and not User.objects.filter(email=email).exclude(pk=user.pk).exists():
        user.email = email
        changed.append('email')
    for field in ('first_name', 'last_name', 'image_url'):
        if attrs[field] and getattr(user, field) != attrs[field]:
            setattr(user, field, attrs[field])
            changed.append(field)
    if changed:
        user.save(update_fields=changed + ['updated_at'])

    linked = 0
    if user.email and user.email != placeholder_email(attrs['id']):
        linked = link_orders_by_email(user)
        if linked:
            logger.info("Linked %s orders to user %s", linked, user.pk)
    return user, linked


def handle_user_deleted(data):
    external_id = data.get('id')
    if not external_id:
        return 0
    deleted, _ = User.objects.filter(external_id=external_id).delete()
    return deleted


@api_view(["POST"])
@authentication_classes([])
@permission_classes([AllowAny])
def identity_webhook(request):
    """
    Receive identity provider user events.

    Missing Svix headers or a bad signature are rejected with 400 so the
    provider surfaces the failure; verified events are processed and
    acknowledged with 200.
    """
    if not all(request.headers.get(name) for name in SVIX_HEADERS):
        return Response(
            {"success": False, "message": "Missing svix headers"},
            status=status.HTTP_400_BAD_REQUEST,
        )

    try:
        _verify(request)
    except WebhookVerificationError as exc:
        logger.warning("Identity webhook verification failed: %s", exc)
        log_audit_event(
            request, 'IDENTITY_WEBHOOK', 'USER', None,
            AuditLog.Status.BLOCKED, {'reason': 'Invalid signature'}
        )
        return Response(
            {"success": False, "message": "Invalid signature"},
            status=status.HTTP_400_BAD_REQUEST,
        )

    try:
        payload = json.loads(request.body)
    except ValueError:
        return Response(
            {"success": False, "message": "Invalid payload"},
            status=status.HTTP_400_BAD_REQUEST,
        )

    event = IdentityEventSerializer(data=payload)
    event.is_valid(raise_exception=True)
    event_type = event.validated_data['type']
    data = event.validated_data['data']

    if event_type in ('user.created', 'user.updated'):
        user, linked = handle_user_upsert(data)
        log_audit_event(
            request, event_type.upper().replace('.', '_'), 'USER', user.pk,
            AuditLog.Status.SUCCESS, {'linked_orders': linked}
        )
    elif event_type == 'user.deleted':
        deleted = handle_user_deleted(data)
        log_audit_event(
            request, 'USER_DELETED', 'USER', data.get('id'),
            AuditLog.Status.SUCCESS, {'deleted_rows': deleted}
        )
    else:
        logger.debug("Ignoring identity event %s", event_type)

    return Response({"success": True, "message": "Webhook processed"}, status=status.HTTP_200_OK)
