"""
Waiter consumer of order events.

Raising leaves retry and dead-lettering to the consumer; a redelivered
message is absorbed by the messageId check.
"""
import logging

from core_backend.messaging.registry import event_handler
from notifications.services import WaiterNotificationService

logger = logging.getLogger(__name__)


@event_handler('waiter', 'order.new_items')
def handle_new_items(tenant, data):
    notification, created = WaiterNotificationService.handle_new_items(tenant, data)
    if not created:
        logger.info(f"Message {data.get('messageId')} already relayed as {notification.id}")
