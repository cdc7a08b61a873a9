"""
In-app notifications shown to customers about their orders.
"""

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _


class Notification(models.Model):
    """A message for one user, usually about one of their orders."""

    class Type(models.TextChoices):
        ORDER_CONFIRMED = 'ORDER_CONFIRMED', _('Order confirmed')
        ORDER_SHIPPING = 'ORDER_SHIPPING', _('Order shipping')
        ORDER_DELIVERED = 'ORDER_DELIVERED', _('Order delivered')
        ORDER_CANCELLED = 'ORDER_CANCELLED', _('Order cancelled')
        ORDER_RETURNED = 'ORDER_RETURNED', _('Order returned')
        ORDER_PAID = 'ORDER_PAID', _('Order paid')

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications',
    )
    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notifications',
    )
    message = models.CharField(max_length=255)
    type = models.CharField(max_length=30, choices=Type.choices)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notificatio_user_id_6a1c3d_idx'),
        ]

    def __str__(self):
        return f"{self.type} for {self.user_id}: {self.message}"
