import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from core_backend.exceptions import ErrorCodes, NotFoundError, ValidationError
from notifications.models import OrderNotification

logger = logging.getLogger(__name__)


class WaiterNotificationService:
    """
    Alert store for the waiter dashboard.

    The only writes are the notification's own display state. Acting on the
    items (accept/reject) is done against the order service directly.
    """

    @staticmethod
    def build_message(customer_name, items):
        names = ", ".join(item.get('name') or "Item" for item in items)
        return f"New order from {customer_name or 'Guest'}: {names}"

    @staticmethod
    def find_by_message_id(tenant, message_id):
        if not message_id:
            return None
        return OrderNotification.objects.filter(tenant=tenant, message_id=message_id).first()

    @classmethod
    def handle_new_items(cls, tenant, data, message_id=None):
        """
        Store an alert for an ``order.new_items`` event.

        Idempotent per broker message: a redelivered message returns the
        notification it created the first time.

        Returns:
            (notification, created)
        """
        message_id = message_id or data.get('messageId')
        items = data.get('items') or []
        if not data.get('orderId') or not items:
            raise ValidationError("orderId and items are required for a notification")

        existing = cls.find_by_message_id(tenant, message_id)
        if existing:
            logger.warning(f"🚫 Duplicate delivery of message {message_id}, keeping notification {existing.id}")
            return existing, False

        received_at = timezone.now().isoformat()
        try:
            with transaction.atomic():
                notification = OrderNotification.objects.create(
                    tenant=tenant,
                    order_id=str(data['orderId']),
                    table_id=str(data.get('tableId') or ""),
                    notification_type=OrderNotification.NotificationType.NEW_ITEMS,
                    priority=int(data.get('priority') or 0),
                    item_ids=[str(item['id']) for item in items if item.get('id')],
                    message=cls.build_message(data.get('customerName'), items),
                    message_id=message_id,
                    metadata={
                        'customerName': data.get('customerName'),
                        'orderType': data.get('orderType'),
                        'isAppend': bool(data.get('isAppend')),
                        'itemCount': len(items),
                        'items': items,
                        '_messageId': message_id,
                        '_receivedAt': received_at,
                    },
                )
        except IntegrityError:
            # A concurrent redelivery of the same message won the insert
            existing = cls.find_by_message_id(tenant, message_id)
            if existing is None:
                raise
            return existing, False

        logger.info(
            f"🔔 Notification {notification.id} for table {notification.table_id}: "
            f"{len(items)} new item(s) on order {notification.order_id}"
        )
        return notification, True

    @staticmethod
    def get_pending(tenant, table_id=None, page=1, limit=20):
        """
        Unread and read notifications, highest priority first, then oldest first.

        Returns:
            (notifications, total)
        """
        page = max(int(page or 1), 1)
        limit = min(max(int(limit or 20), 1), 100)

        queryset = OrderNotification.objects.filter(
            tenant=tenant, status__in=OrderNotification.PENDING_STATUSES
        )
        if table_id:
            queryset = queryset.filter(table_id=table_id)

        queryset = queryset.order_by('-priority', 'created_at')
        total = queryset.count()
        offset = (page - 1) * limit
        return list(queryset[offset:offset + limit]), total

    @staticmethod
    def get_notification(tenant, notification_id, for_update=False) -> OrderNotification:
        queryset = OrderNotification.objects.filter(tenant=tenant)
        if for_update:
            queryset = queryset.select_for_update()
        try:
            return queryset.get(id=notification_id)
        except (OrderNotification.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError(
                "Notification", notification_id, error_code=ErrorCodes.NOTIFICATION_NOT_FOUND
            )

    @classmethod
    @transaction.atomic
    def mark_read(cls, tenant, notification_id, waiter_id=None) -> OrderNotification:
        """Only UNREAD moves to READ; anything else is returned unchanged."""
        notification = cls.get_notification(tenant, notification_id, for_update=True)
        if notification.status != OrderNotification.NotificationStatus.UNREAD:
            logger.warning(f"Notification {notification.id} is already {notification.status}")
            return notification

        notification.status = OrderNotification.NotificationStatus.READ
        notification.read_at = timezone.now()
        notification.save(update_fields=['status', 'read_at', 'updated_at'])
        logger.info(f"Notification {notification.id} read by waiter {waiter_id or 'unknown'}")
        return notification

    @classmethod
    @transaction.atomic
    def archive(cls, tenant, notification_id) -> OrderNotification:
        notification = cls.get_notification(tenant, notification_id, for_update=True)
        if notification.status == OrderNotification.NotificationStatus.ARCHIVED:
            return notification

        notification.status = OrderNotification.NotificationStatus.ARCHIVED
        notification.archived_at = timezone.now()
        notification.save(update_fields=['status', 'archived_at', 'updated_at'])
        logger.info(f"Archived notification {notification.id}")
        return notification

    @staticmethod
    def unread_count(tenant, table_id=None) -> int:
        queryset = OrderNotification.objects.filter(
            tenant=tenant, status=OrderNotification.NotificationStatus.UNREAD
        )
        if table_id:
            queryset = queryset.filter(table_id=table_id)
        return queryset.count()
