"""
Authentication app URL declarations.

Keeping this list centralized makes it easy to audit which endpoints are public
(the signed identity webhook) versus protected, and lets the project router
include all auth routes with a single `include()` statement.
"""

from django.urls import path

from . import views, webhooks

urlpatterns = [
    path("auth/me/", views.me, name="auth-me"),
    # Administrative operations guarded by the role_required decorator
    path("auth/users/", views.list_users, name="auth-users"),
    path("auth/users/<int:user_id>/role/", views.set_user_role, name="auth-user-role"),
    # Identity provider events (Svix-signed, no session)
    path("webhooks/identity/", webhooks.identity_webhook, name="identity-webhook"),
]
