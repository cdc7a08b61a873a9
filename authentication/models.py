"""
Authentication models for the e-commerce admin application.

Users are provisioned from an external identity provider: the provider owns
credentials and sessions, while this application keeps a local user row keyed
by the provider's subject identifier (``external_id``) plus role assignments
and an audit trail.
"""

from django.conf import settings
from django.contrib.auth.models import AbstractUser, UserManager
from django.core.validators import RegexValidator
from django.db import models, transaction


class Role(models.Model):
    """
    Represents an authorization role that can be attached to one or more users.
    Roles allow fine-grained control over which resources a user can access.
    """

    ADMIN = 'ADMIN'
    VENDOR = 'VENDOR'
    CUSTOMER = 'CUSTOMER'
    APPLICATION_ROLES = (ADMIN, VENDOR, CUSTOMER)

    name = models.CharField(
        max_length=32,
        unique=True,
        help_text="Unique machine-friendly role identifier, e.g. ADMIN, VENDOR.",
        validators=[
            RegexValidator(
                regex=r"^[A-Z_]{3,32}$",
                message="Role names must be uppercase letters and underscores only (3-32 chars).",
            )
        ],
    )
    display_name = models.CharField(
        max_length=64,
        help_text="Human readable role label shown in UIs.",
    )
    description = models.TextField(
        blank=True,
        help_text="Context about what this role can do and when to grant it.",
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Inactive roles remain for audit history but cannot be newly assigned.",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("name",)

    def __str__(self) -> str:
        return self.display_name or self.name


class User(AbstractUser):
    """
    Custom application user model.

    Uses email as the login identifier. ``external_id`` links the row to the
    identity provider account that authenticates the user.
    """

    username = models.CharField(
        max_length=150,
        unique=True,
        help_text="Letters, numbers, underscores, periods and hyphens allowed.",
        validators=[
            RegexValidator(
                regex=r"^[A-Za-z0-9_.-]{3,150}$",
                message="Username may include letters, numbers, underscores, periods or hyphens.",
            )
        ],
    )
    email = models.EmailField(unique=True)
    external_id = models.CharField(
        max_length=191,
        unique=True,
        null=True,
        blank=True,
        help_text="Subject identifier issued by the identity provider.",
    )
    image_url = models.URLField(max_length=500, blank=True)
    roles = models.ManyToManyField(
        Role,
        through="UserRole",
        through_fields=('user', 'role'),
        related_name="users",
        blank=True,
        help_text="Collection of authorization roles granted to this account.",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    objects = UserManager()

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=("email",), name="authenticat_email_7a3d2e_idx"),
            models.Index(fields=("external_id",), name="authenticat_externa_5c1b9f_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.email} ({self.get_full_name() or self.username})"

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.strip().lower()
        super().save(*args, **kwargs)

    def has_role(self, *role_names: str) -> bool:
        """
        Quickly check whether the user possesses any of the supplied role names.
        Superusers always return True.
        """
        if self.is_superuser:
            return True
        return self.roles.filter(name__in=role_names, is_active=True).exists()

    @property
    def is_admin(self) -> bool:
        return self.has_role(Role.ADMIN)

    @transaction.atomic
    def set_application_role(self, role_name: str, assigned_by=None) -> Role:
        """
        Replace the user's application role (ADMIN, VENDOR or CUSTOMER).

        Other, non-application roles are left untouched.
        """
        if role_name not in Role.APPLICATION_ROLES:
            raise ValueError(f"Unknown application role: {role_name}")

        role, _ = Role.objects.get_or_create(
            name=role_name,
            defaults={'display_name': role_name.title()},
        )
        UserRole.objects.filter(
            user=self,
            role__name__in=Role.APPLICATION_ROLES,
        ).exclude(role=role).delete()
        UserRole.objects.get_or_create(
            user=self,
            role=role,
            defaults={'assigned_by': assigned_by},
        )
        return role


class UserRole(models.Model):
    """
    Through table that tracks who granted which role to a user and when.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="role_memberships",
    )
    role = models.ForeignKey(
        Role,
        on_delete=models.CASCADE,
        related_name="role_memberships",
    )
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="roles_granted",
        help_text="Administrator who granted this role.",
    )
    assigned_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        unique_together = ("user", "role")
        verbose_name = "User role assignment"
        verbose_name_plural = "User role assignments"
        ordering = ("-assigned_at",)

    def __str__(self) -> str:
        return f"{self.user.email} -> {self.role.name}"


class AuditLog(models.Model):
    """
    Audit trail for security-relevant events.

    Records order cancellations and status changes, payment webhook
    anomalies (for example signature mismatches) and identity provider
    events. Rows are never deleted.
    """

    class Status(models.TextChoices):
        SUCCESS = 'SUCCESS', 'Success'
        FAILURE = 'FAILURE', 'Failure'
        BLOCKED = 'BLOCKED', 'Blocked'

    # Nullable for anonymous events such as payment provider callbacks
    user = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
        help_text="User who performed the action (null for anonymous events)",
    )

    action = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Action type: CANCEL, UPDATE_STATUS, PAYMENT_IPN, etc.",
    )
    resource_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Resource type: USER, PRODUCT, ORDER, PAYMENT, etc.",
    )
    resource_id = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        help_text="ID of the affected resource (if applicable)",
    )

    ip_address = models.GenericIPAddressField(
        null=True,
        blank=True,
        help_text="IP address of the client making the request",
    )
    user_agent = models.TextField(
        blank=True,
        help_text="User agent string from the HTTP request",
    )
    request_path = models.CharField(
        max_length=500,
        blank=True,
        help_text="URL path of the request",
    )
    request_method = models.CharField(
        max_length=10,
        blank=True,
        help_text="HTTP method: GET, POST, PUT, DELETE, etc.",
    )

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.SUCCESS,
        db_index=True,
        help_text="Status of the action",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Additional event-specific data in JSON format",
    )

    timestamp = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when the event occurred",
    )

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['user', 'timestamp'], name='authenticat_user_id_3f0c6a_idx'),
            models.Index(fields=['action', 'status', 'timestamp'], name='authenticat_action_9b2e41_idx'),
            models.Index(fields=['resource_type', 'resource_id'], name='authenticat_resourc_d84a17_idx'),
        ]
        verbose_name = "Audit Log"
        verbose_name_plural = "Audit Logs"

    def __str__(self):
        user_str = self.user.email if self.user else "Anonymous"
        return f"{self.action} on {self.resource_type} by {user_str} at {self.timestamp}"
