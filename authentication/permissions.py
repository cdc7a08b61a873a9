"""
Role-based access control helpers.
"""

from functools import wraps

from django.utils.translation import gettext_lazy as _
from rest_framework.exceptions import NotAuthenticated, PermissionDenied
from rest_framework.permissions import BasePermission

from .models import Role


def role_required(*role_names):
    """
    Decorator to enforce that a request.user owns at least one of the supplied roles.
    Superusers bypass the check automatically.

    Works on function views and on viewset methods (``self, request, ...``).
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            request = args[1] if len(args) > 1 and hasattr(args[1], 'user') else args[0]
            user = request.user
            if not user or not user.is_authenticated:
                raise NotAuthenticated(detail=_("Authentication credentials were not provided."))
            if not user.has_role(*role_names):
                raise PermissionDenied(detail=_("You do not have permission to perform this action."))
            return func(*args, **kwargs)

        return wrapper

    return decorator


class HasRole(BasePermission):
    """
    DRF permission granting access to users holding any of ``required_roles``.

    Subclass and set ``required_roles``; ``IsAdminRole`` is the common case.
    """

    required_roles = ()
    message = _("You do not have permission to perform this action.")

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.has_role(*self.required_roles))


class IsAdminRole(HasRole):
    required_roles = (Role.ADMIN,)
