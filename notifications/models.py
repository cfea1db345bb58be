from django.db import models
from django.conf import settings


class Notification(models.Model):
    """
    In-app notification model for user notifications.
    Supports different notification types with optional JSON data.
    """

    class Type(models.TextChoices):
        ORDER_PLACED = 'ORDER_PLACED', 'Order Placed'
        NEW_ORDER = 'NEW_ORDER', 'New Order'
        ORDER_STATUS = 'ORDER_STATUS', 'Order Status'
        ORDER_CANCELLED = 'ORDER_CANCELLED', 'Order Cancelled'
        DELIVERY_ASSIGNED = 'DELIVERY_ASSIGNED', 'Delivery Assigned'
        PAYMENT = 'PAYMENT', 'Payment'
        LOW_STOCK_ALERT = 'LOW_STOCK_ALERT', 'Low Stock Alert'
        OUT_OF_STOCK_ALERT = 'OUT_OF_STOCK_ALERT', 'Out of Stock Alert'
        PASSWORD_RESET = 'PASSWORD_RESET', 'Password Reset'
        GENERAL = 'GENERAL', 'General'

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    type = models.CharField(
        max_length=30,
        choices=Type.choices,
        default=Type.GENERAL
    )
    title = models.CharField(max_length=255)
    message = models.TextField()
    data = models.JSONField(
        blank=True,
        null=True,
        help_text='Optional JSON data for notification context'
    )
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    read_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read', '-created_at'], name='notificatio_user_id_1a4e7c_idx'),
            models.Index(fields=['user', 'type'], name='notificatio_user_id_8d2b5f_idx'),
        ]

    def __str__(self):
        return f"{self.user.email} - {self.title}"

    def mark_as_read(self):
        """Mark notification as read."""
        from django.utils import timezone
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at'])
