"""
How other services change authoritative order item status.

The kitchen never decides an OrderItem's status by itself; it asks the
order service through an ``OrderStatusUpdater``. Two implementations:

- ``LocalOrderStatusUpdater`` calls ``OrderService`` in-process, inside the
  caller's transaction, so a failed update rolls back the caller's work.
- ``RpcOrderStatusUpdater`` calls the order service's RPC queue and blocks
  for the reply (fixed timeout, no retry).

``ORDER_STATUS_UPDATER`` selects one (``local`` or ``rpc``).
"""
import logging

from django.conf import settings
from django.utils.module_loading import import_string

from core_backend.messaging.rpc import RpcClient
from core_backend.messaging.topology import ServiceTopology

logger = logging.getLogger(__name__)

UPDATE_ITEMS_STATUS_PATTERN = "orders:update-items-status"


class OrderStatusUpdater:
    def update_items_status(self, tenant, order_id, item_ids, status, actor_id=None):
        """
        Move order items to ``status``.

        Raises the same ``AppError`` subclasses as ``OrderService`` whether
        the call is local or remote.
        """
        raise NotImplementedError


class LocalOrderStatusUpdater(OrderStatusUpdater):
    def update_items_status(self, tenant, order_id, item_ids, status, actor_id=None):
        from orders.services.order_service import OrderService

        order, items = OrderService.update_items_status(
            tenant, order_id, item_ids, status, actor_id=actor_id
        )
        return {
            "orderId": str(order.id),
            "orderStatus": order.status,
            "itemIds": [str(item.id) for item in items],
            "status": status,
        }


class RpcOrderStatusUpdater(OrderStatusUpdater):
    def __init__(self, client=None):
        self.client = client or RpcClient(
            ServiceTopology.for_service("order"),
            settings.ORDER_API_KEY,
        )

    def update_items_status(self, tenant, order_id, item_ids, status, actor_id=None):
        logger.debug(f"RPC {UPDATE_ITEMS_STATUS_PATTERN}: order {order_id} {len(item_ids)} item(s) -> {status}")
        return self.client.call(
            UPDATE_ITEMS_STATUS_PATTERN,
            {
                "tenantId": str(tenant.id),
                "orderId": str(order_id),
                "itemIds": [str(item_id) for item_id in item_ids],
                "status": status,
                "actorId": actor_id,
            },
        )


ORDER_STATUS_UPDATERS = {
    "local": "orders.services.status_updater.LocalOrderStatusUpdater",
    "rpc": "orders.services.status_updater.RpcOrderStatusUpdater",
}


def get_order_status_updater() -> OrderStatusUpdater:
    backend = getattr(settings, "ORDER_STATUS_UPDATER", "local")
    return import_string(ORDER_STATUS_UPDATERS.get(backend, backend))()
