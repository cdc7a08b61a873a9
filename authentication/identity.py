"""
Bearer-token authentication against the external identity provider.

The provider issues signed session tokens whose ``sub`` claim is the
provider-side user identifier. Tokens are verified with
djangorestframework-simplejwt (signature, expiry, optional issuer) and the
subject is mapped to a local ``User``, which is created the first time a
subject is seen.
"""

import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken
from rest_framework_simplejwt.settings import api_settings

logger = logging.getLogger(__name__)

User = get_user_model()


def placeholder_email(external_id: str) -> str:
    """E-mail used until the identity provider tells us the real one."""
    return f"user_{external_id}@temp.local".lower()


def _unique_username(external_id: str) -> str:
    base = ''.join(ch for ch in external_id if ch.isalnum() or ch in '_.-')[:140] or 'user'
    username = base
    suffix = 1
    while User.objects.filter(username=username).exists():
        suffix += 1
        username = f"{base}-{suffix}"
    return username


def provision_user(external_id: str, email: str = '', first_name: str = '',
                   last_name: str = '', image_url: str = '') -> User:
    """
    Return the local user for an identity provider subject, creating it on
    first sight.

    When a local account already exists with the same e-mail (for example one
    created through the admin site) it is adopted instead of duplicated.
    Concurrent first requests for one subject race on the unique
    ``external_id``; the loser re-reads the winner's row.
    """
    user = User.objects.filter(external_id=external_id).first()
    if user is not None:
        return user

    normalized_email = (email or '').strip().lower()
    if normalized_email:
        existing = User.objects.filter(email=normalized_email, external_id__isnull=True).first()
        if existing is not None:
            existing.external_id = external_id
            existing.save(update_fields=['external_id', 'updated_at'])
            logger.info("Linked existing user %s to identity %s", existing.pk, external_id)
            return existing

    try:
        with transaction.atomic():
            user = User(
                external_id=external_id,
                email=normalized_email or placeholder_email(external_id),
                username=_unique_username(external_id),
                first_name=first_name or '',
                last_name=last_name or '',
                image_url=image_url or '',
            )
            user.set_unusable_password()
            user.save()
    except IntegrityError:
        user = User.objects.filter(external_id=external_id).first()
        if user is None:
            raise
        return user

    logger.info("Provisioned user %s for identity %s", user.pk, external_id)
    return user


class ExternalIdentityAuthentication(JWTAuthentication):
    """
    DRF authentication class for identity provider session tokens.

    Returns ``(user, token)`` for a valid ``Authorization: Bearer <token>``
    header, ``None`` when no credential is supplied, and raises
    ``AuthenticationFailed`` for an invalid one.
    """

    www_authenticate_realm = 'api'

    def get_user(self, validated_token):
        try:
            external_id = validated_token[api_settings.USER_ID_CLAIM]
        except KeyError:
            raise InvalidToken("Token contained no recognizable user identification")

        if not external_id:
            raise InvalidToken("Token contained no recognizable user identification")

        user = provision_user(
            str(external_id),
            email=validated_token.get('email', ''),
            first_name=validated_token.get('first_name', ''),
            last_name=validated_token.get('last_name', ''),
        )
        if not user.is_active:
            raise AuthenticationFailed("User is inactive", code="user_inactive")
        return user
