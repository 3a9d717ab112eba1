import logging

from core_backend.messaging.publisher import publish_event_on_commit

logger = logging.getLogger(__name__)

NEW_ITEMS = "order.new_items"
ITEMS_ACCEPTED = "order.items_accepted"
ITEMS_STATUS_CHANGED = "order.items_status_changed"
ORDER_CANCELLED = "order.cancelled"
ORDER_COMPLETED = "order.completed"


def _isoformat(value):
    return value.isoformat() if value else None


def serialize_item(item):
    """Wire snapshot of an order item, shared by every order event."""
    return {
        "id": str(item.id),
        "menuItemId": item.menu_item_id,
        "name": item.name,
        "description": item.description,
        "quantity": item.quantity,
        "unitPrice": str(item.unit_price),
        "total": str(item.total),
        "currency": item.currency,
        "notes": item.notes,
        "status": item.status,
        "modifiers": [
            {
                "modifierGroupId": modifier.modifier_group_id,
                "modifierGroupName": modifier.modifier_group_name,
                "modifierOptionId": modifier.modifier_option_id,
                "optionName": modifier.option_name,
                "price": str(modifier.price),
            }
            for modifier in item.modifiers.all()
        ],
    }


class OrderEventPublisher:
    """
    Fanout events emitted by the order service.

    Every event is deferred until the surrounding transaction commits, so
    a rolled-back checkout or status change is never announced.
    """

    @staticmethod
    def _order_header(order):
        return {
            "tenantId": str(order.tenant_id),
            "orderId": str(order.id),
            "tableId": order.table_id,
        }

    @staticmethod
    def new_items(order, items, is_append=False):
        """Only the items created by this checkout are carried."""
        data = {
            **OrderEventPublisher._order_header(order),
            "customerName": order.customer_name,
            "orderType": order.order_type,
            "isAppend": is_append,
            "items": [serialize_item(item) for item in items],
        }
        logger.info(f"Publishing {NEW_ITEMS} for order {order.id} ({len(items)} items)")
        return publish_event_on_commit(NEW_ITEMS, data)

    @staticmethod
    def items_accepted(order, items):
        data = {
            **OrderEventPublisher._order_header(order),
            "customerName": order.customer_name,
            "orderType": order.order_type,
            "notes": order.notes,
            "waiterId": order.waiter_id,
            "items": [serialize_item(item) for item in items],
        }
        logger.info(f"Publishing {ITEMS_ACCEPTED} for order {order.id} ({len(items)} items)")
        return publish_event_on_commit(ITEMS_ACCEPTED, data)

    @staticmethod
    def items_status_changed(order, items, status, actor_id=None):
        data = {
            **OrderEventPublisher._order_header(order),
            "itemIds": [str(item.id) for item in items],
            "status": status,
            "orderStatus": order.status,
            "actorId": actor_id,
        }
        if status == "REJECTED":
            data["reason"] = items[0].rejection_reason if items else None
        return publish_event_on_commit(ITEMS_STATUS_CHANGED, data)

    @staticmethod
    def order_cancelled(order, cancelled_items):
        data = {
            **OrderEventPublisher._order_header(order),
            "reason": order.cancellation_reason,
            "itemIds": [str(item.id) for item in cancelled_items],
            "cancelledAt": _isoformat(order.cancelled_at),
        }
        logger.info(f"Publishing {ORDER_CANCELLED} for order {order.id}")
        return publish_event_on_commit(ORDER_CANCELLED, data)

    @staticmethod
    def order_completed(order):
        data = {
            **OrderEventPublisher._order_header(order),
            "total": str(order.total),
            "currency": order.currency,
            "paymentMethod": order.payment_method,
            "completedAt": _isoformat(order.completed_at),
        }
        logger.info(f"Publishing {ORDER_COMPLETED} for order {order.id}")
        return publish_event_on_commit(ORDER_COMPLETED, data)
