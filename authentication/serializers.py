from django.utils.translation import gettext_lazy as _
from rest_framework import serializers

from .models import Role, User


class RoleSerializer(serializers.ModelSerializer):
    class Meta:
        model = Role
        fields = [
            "id",
            "name",
            "display_name",
            "description",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ("id", "created_at", "updated_at")


class UserSerializer(serializers.ModelSerializer):
    roles = RoleSerializer(many=True, read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "external_id",
            "email",
            "username",
            "first_name",
            "last_name",
            "image_url",
            "is_active",
            "roles",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ApplicationRoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=Role.APPLICATION_ROLES)


class IdentityEmailSerializer(serializers.Serializer):
    id = serializers.CharField(required=False, allow_blank=True)
    email_address = serializers.EmailField()


class IdentityUserDataSerializer(serializers.Serializer):
    """
    ``data`` object of an identity provider ``user.*`` event.

    Only the fields this application mirrors are declared; unknown fields are
    ignored.
    """

    id = serializers.CharField()
    email_addresses = IdentityEmailSerializer(many=True, required=False, default=list)
    primary_email_address_id = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    first_name = serializers.CharField(required=False, allow_null=True, allow_blank=True, default='')
    last_name = serializers.CharField(required=False, allow_null=True, allow_blank=True, default='')
    image_url = serializers.CharField(required=False, allow_null=True, allow_blank=True, default='')

    def validate(self, attrs):
        addresses = attrs.get('email_addresses') or []
        primary_id = attrs.get('primary_email_address_id')
        email = ''
        for address in addresses:
            if primary_id and address.get('id') == primary_id:
                email = address['email_address']
                break
        if not email and addresses:
            email = addresses[0]['email_address']
        attrs['email'] = email.strip().lower()
        for field in ('first_name', 'last_name', 'image_url'):
            attrs[field] = attrs.get(field) or ''
        return attrs


class IdentityEventSerializer(serializers.Serializer):
    type = serializers.CharField()
    data = serializers.DictField()

    def validate_type(self, value):
        if not value:
            raise serializers.ValidationError(_("Event type is required."))
        return value
