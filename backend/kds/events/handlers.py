"""
Kitchen consumers of order events.

Handlers raise on failure so the consumer can requeue with a death count;
redelivered events are safe because ticket creation is idempotent per
order item.
"""
import logging

from core_backend.messaging.registry import event_handler
from kds.services.ticket_service import KitchenTicketService

logger = logging.getLogger(__name__)


@event_handler('kitchen', 'order.items_accepted')
def handle_items_accepted(tenant, data):
    logger.info(f"🍳 Items accepted for order {data.get('orderId')}: {len(data.get('items') or [])} item(s)")
    KitchenTicketService.create_ticket_from_event(tenant, data)


@event_handler('kitchen', 'order.cancelled')
def handle_order_cancelled(tenant, data):
    cancelled = KitchenTicketService.cancel_tickets_for_order(
        tenant, data.get('orderId'), reason=data.get('reason')
    )
    if cancelled:
        logger.info(f"Cancelled {cancelled} ticket(s) for order {data.get('orderId')}")


@event_handler('kitchen', 'order.items_status_changed')
def handle_items_status_changed(tenant, data):
    # Only a rejection changes what the kitchen should cook
    if data.get('status') != 'REJECTED':
        return
    KitchenTicketService.drop_rejected_items(
        tenant, data.get('orderId'), data.get('itemIds'), reason=data.get('reason')
    )
