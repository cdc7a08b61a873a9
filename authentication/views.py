from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from django.utils.translation import gettext_lazy as _
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .audit import log_audit_event
from .models import AuditLog
from .permissions import role_required
from .serializers import ApplicationRoleSerializer, UserSerializer

User = get_user_model()


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def me(request):
    serializer = UserSerializer(request.user)
    return Response(serializer.data, status=status.HTTP_200_OK)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
@role_required("ADMIN")
def list_users(request):
    queryset = User.objects.all().order_by("-created_at")
    serializer = UserSerializer(queryset, many=True)
    return Response(serializer.data, status=status.HTTP_200_OK)


@api_view(["POST"])
@permission_classes([IsAuthenticated])
@role_required("ADMIN")
def set_user_role(request, user_id):
    """
    Replace a user's application role (ADMIN, VENDOR or CUSTOMER).
    """
    serializer = ApplicationRoleSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    target = get_object_or_404(User, pk=user_id)

    role_name = serializer.validated_data["role"]
    target.set_application_role(role_name, assigned_by=request.user)

    log_audit_event(
        request, 'SET_ROLE', 'USER', target.pk,
        AuditLog.Status.SUCCESS, {'role': role_name}
    )
    return Response(
        {
            "success": True,
            "message": _("Role updated successfully."),
            "user": UserSerializer(target).data,
        },
        status=status.HTTP_200_OK,
    )
