"""
Waiter Notification Tests

These tests verify the waiter relay: alerts built from "new items" events,
exactly one alert per broker message, and the read/archive lifecycle.

Priority: HIGH - a missed or doubled alert means a table waits or is served twice
"""
import pytest
from datetime import timedelta

from core_backend.exceptions import ErrorCodes, NotFoundError, ValidationError
from core_backend.messaging.registry import get_event_handlers
from core_backend.tests.fixtures import make_order, new_items_payload
from notifications.models import OrderNotification
from notifications.services import WaiterNotificationService

Status = OrderNotification.NotificationStatus


@pytest.mark.django_db
class TestHandleNewItems:

    def test_creates_unread_alert(self, tenant, order):
        notification, created = WaiterNotificationService.handle_new_items(tenant, new_items_payload(order))

        assert created is True
        assert notification.status == Status.UNREAD
        assert notification.notification_type == OrderNotification.NotificationType.NEW_ITEMS
        assert notification.message == 'New order from Lan: Pho Bo, Tra Da'
        assert notification.item_ids == ['item-1', 'item-2']
        assert notification.metadata['itemCount'] == 2
        assert notification.metadata['_messageId'] == 'msg-1'
        assert notification.metadata['items'][0]['name'] == 'Pho Bo'

    def test_guest_name_fallback(self, tenant, db):
        order = make_order(tenant, table_id='T4')
        notification, _ = WaiterNotificationService.handle_new_items(tenant, new_items_payload(order))
        assert notification.message.startswith('New order from Guest:')

    def test_same_message_twice_creates_one_notification(self, tenant, order):
        """
        CRITICAL: Broker redelivery of the same message must not ring twice

        Business Impact: Duplicate alerts make waiters act on items twice
        """
        payload = new_items_payload(order, message_id='msg-42')

        first, first_created = WaiterNotificationService.handle_new_items(tenant, payload)
        second, second_created = WaiterNotificationService.handle_new_items(tenant, payload)

        assert first_created is True
        assert second_created is False
        assert second.id == first.id
        assert OrderNotification.objects.count() == 1

    def test_distinct_checkouts_each_notify(self, tenant, order):
        WaiterNotificationService.handle_new_items(tenant, new_items_payload(order, message_id='msg-1'))
        WaiterNotificationService.handle_new_items(tenant, new_items_payload(order, message_id='msg-2'))

        assert OrderNotification.objects.count() == 2

    def test_same_message_id_in_another_tenant(self, tenant, tenant_b, order):
        WaiterNotificationService.handle_new_items(tenant, new_items_payload(order))
        other_order = make_order(tenant_b, table_id='T1')

        _, created = WaiterNotificationService.handle_new_items(tenant_b, new_items_payload(other_order))

        assert created is True

    def test_event_without_items_is_invalid(self, tenant, order):
        with pytest.raises(ValidationError):
            WaiterNotificationService.handle_new_items(tenant, new_items_payload(order, items=[]))

    def test_registered_handler(self, tenant, order):
        handler = get_event_handlers('waiter')['order.new_items']
        payload = new_items_payload(order, message_id='msg-7')

        handler(payload)
        handler(payload)

        assert OrderNotification.all_objects.filter(message_id='msg-7').count() == 1


@pytest.mark.django_db
class TestPendingNotifications:

    def test_priority_then_oldest_first(self, tenant, order):
        low, _ = WaiterNotificationService.handle_new_items(tenant, new_items_payload(order, message_id='a'))
        high, _ = WaiterNotificationService.handle_new_items(
            tenant, new_items_payload(order, message_id='b', priority=2)
        )
        low_later, _ = WaiterNotificationService.handle_new_items(tenant, new_items_payload(order, message_id='c'))
        OrderNotification.objects.filter(id=low_later.id).update(created_at=low.created_at + timedelta(seconds=1))

        notifications, total = WaiterNotificationService.get_pending(tenant)

        assert total == 3
        assert [n.id for n in notifications] == [high.id, low.id, low_later.id]

    def test_archived_are_hidden(self, tenant, notification):
        WaiterNotificationService.mark_read(tenant, notification.id)
        _, total = WaiterNotificationService.get_pending(tenant)
        assert total == 1

        WaiterNotificationService.archive(tenant, notification.id)
        _, total = WaiterNotificationService.get_pending(tenant)
        assert total == 0

    def test_table_filter_and_pagination(self, tenant, order):
        other = make_order(tenant, table_id='T2')
        for index in range(3):
            WaiterNotificationService.handle_new_items(tenant, new_items_payload(order, message_id=f't1-{index}'))
        WaiterNotificationService.handle_new_items(tenant, new_items_payload(other, message_id='t2-0'))

        notifications, total = WaiterNotificationService.get_pending(tenant, table_id='T1', page=2, limit=2)

        assert total == 3
        assert len(notifications) == 1
        assert all(n.table_id == 'T1' for n in notifications)

    def test_unread_count(self, tenant, order):
        first, _ = WaiterNotificationService.handle_new_items(tenant, new_items_payload(order, message_id='x'))
        WaiterNotificationService.handle_new_items(tenant, new_items_payload(order, message_id='y'))

        WaiterNotificationService.mark_read(tenant, first.id)

        assert WaiterNotificationService.unread_count(tenant) == 1


@pytest.mark.django_db
class TestReadAndArchive:

    def test_mark_read(self, tenant, notification):
        read = WaiterNotificationService.mark_read(tenant, notification.id, waiter_id='waiter-1')

        assert read.status == Status.READ
        assert read.read_at is not None

    def test_mark_read_only_from_unread(self, tenant, notification):
        WaiterNotificationService.archive(tenant, notification.id)

        result = WaiterNotificationService.mark_read(tenant, notification.id)

        assert result.status == Status.ARCHIVED
        assert result.read_at is None

    def test_archive_from_any_state(self, tenant, notification):
        archived = WaiterNotificationService.archive(tenant, notification.id)

        assert archived.status == Status.ARCHIVED
        assert archived.archived_at is not None

    def test_unknown_notification(self, tenant):
        with pytest.raises(NotFoundError) as exc_info:
            WaiterNotificationService.mark_read(tenant, '00000000-0000-0000-0000-000000000000')
        assert exc_info.value.code == ErrorCodes.NOTIFICATION_NOT_FOUND.code

    def test_other_tenant_cannot_archive(self, tenant_b, notification):
        with pytest.raises(NotFoundError):
            WaiterNotificationService.archive(tenant_b, notification.id)
