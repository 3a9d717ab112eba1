import logging

from core_backend.messaging.publisher import publish_event, publish_event_on_commit

logger = logging.getLogger(__name__)

TICKET_NEW = "kitchen.ticket.new"
TICKET_UPDATED = "kitchen.ticket.updated"
TICKET_COMPLETED = "kitchen.ticket.completed"
TICKET_CANCELLED = "kitchen.ticket.cancelled"
ITEMS_RECALLED = "kitchen.items.recalled"
TIMERS_UPDATE = "kitchen.timers.update"


def serialize_ticket_summary(ticket):
    return {
        "tenantId": str(ticket.tenant_id),
        "ticketId": str(ticket.id),
        "ticketNumber": ticket.ticket_number,
        "orderId": ticket.order_id,
        "tableId": ticket.table_id,
        "tableNumber": ticket.table_number,
        "status": ticket.status,
        "priority": ticket.priority,
    }


class KitchenEventPublisher:
    """
    Display events for kitchen screens.

    These are informational; the order service does not consume them and
    authoritative item status goes through the status updater instead.
    """

    @staticmethod
    def ticket_new(ticket):
        logger.info(f"Publishing {TICKET_NEW} for ticket {ticket.ticket_number}")
        return publish_event_on_commit(TICKET_NEW, serialize_ticket_summary(ticket))

    @staticmethod
    def ticket_updated(ticket, action, item_ids=None):
        data = {
            **serialize_ticket_summary(ticket),
            "action": action,
            "itemIds": [str(item_id) for item_id in item_ids or []],
        }
        return publish_event_on_commit(TICKET_UPDATED, data)

    @staticmethod
    def ticket_completed(ticket):
        return publish_event_on_commit(TICKET_COMPLETED, serialize_ticket_summary(ticket))

    @staticmethod
    def ticket_cancelled(ticket, reason=None):
        data = {**serialize_ticket_summary(ticket), "reason": reason}
        return publish_event_on_commit(TICKET_CANCELLED, data)

    @staticmethod
    def items_recalled(ticket, items, reason):
        data = {
            **serialize_ticket_summary(ticket),
            "itemIds": [str(item.id) for item in items],
            "reason": reason,
        }
        return publish_event_on_commit(ITEMS_RECALLED, data)

    @staticmethod
    def timers_update(tenant_id, tickets, timestamp):
        """One batched timer snapshot per tenant; sent outside any transaction."""
        data = {
            "tenantId": str(tenant_id),
            "timestamp": timestamp.isoformat(),
            "tickets": tickets,
        }
        return publish_event(TIMERS_UPDATE, data)
