import uuid
from django.db import models
from django.utils.translation import gettext_lazy as _
from tenant.managers import TenantManager


class OrderNotification(models.Model):
    """
    Waiter dashboard alert for items a guest just ordered.

    A notification only carries display state (unread, read, archived);
    accepting or rejecting the items is done on the order itself.
    """

    class NotificationStatus(models.TextChoices):
        UNREAD = "UNREAD", _("Unread")
        READ = "READ", _("Read")
        ARCHIVED = "ARCHIVED", _("Archived")

    class NotificationType(models.TextChoices):
        NEW_ITEMS = "NEW_ITEMS", _("New Items")

    PENDING_STATUSES = (NotificationStatus.UNREAD, NotificationStatus.READ)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tenant = models.ForeignKey(
        'tenant.Tenant',
        on_delete=models.CASCADE,
        related_name='order_notifications'
    )
    order_id = models.CharField(max_length=64)
    table_id = models.CharField(max_length=64)
    notification_type = models.CharField(
        max_length=20, choices=NotificationType.choices, default=NotificationType.NEW_ITEMS
    )
    status = models.CharField(
        max_length=10, choices=NotificationStatus.choices, default=NotificationStatus.UNREAD
    )
    priority = models.IntegerField(default=0, help_text=_("Higher values sort first"))
    item_ids = models.JSONField(default=list, blank=True)
    message = models.TextField()
    metadata = models.JSONField(default=dict, blank=True)
    message_id = models.CharField(
        max_length=64,
        blank=True,
        null=True,
        help_text=_("Broker message id of the event that created this notification"),
    )

    read_at = models.DateTimeField(null=True, blank=True)
    archived_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TenantManager()
    all_objects = models.Manager()

    class Meta:
        ordering = ["-priority", "created_at"]
        verbose_name = _("Order Notification")
        verbose_name_plural = _("Order Notifications")
        indexes = [
            models.Index(fields=['tenant', 'status'], name='notif_tenant_stat_idx'),
            models.Index(fields=['tenant', 'table_id'], name='notif_tenant_table_idx'),
            models.Index(fields=['tenant', 'order_id'], name='notif_tenant_order_idx'),
            models.Index(fields=['tenant', 'created_at'], name='notif_tenant_created_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['tenant', 'message_id'],
                condition=models.Q(message_id__isnull=False),
                name='unique_notification_per_message',
            ),
        ]

    def __str__(self):
        return f"{self.notification_type} for table {self.table_id} ({self.status})"

    @property
    def is_pending(self):
        return self.status in self.PENDING_STATUSES
