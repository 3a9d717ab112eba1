"""
RPC handlers served by the order service on its ``<name>_rpc`` queue.

Each handler receives the resolved tenant and the request data (API key
already checked) and returns the reply data.
"""
import logging

from core_backend.exceptions import ValidationError
from core_backend.messaging.registry import rpc_handler
from orders.serializers import OrderSerializer
from orders.services.order_service import OrderService

logger = logging.getLogger(__name__)


def _require(data, *fields):
    missing = [field for field in fields if not data.get(field)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}", details={'missing': missing})


def _order_reply(tenant, order):
    return OrderSerializer(OrderService.get_order(tenant, order.id)).data


@rpc_handler('order', 'orders:update-items-status')
def handle_update_items_status(tenant, data):
    _require(data, 'orderId', 'itemIds', 'status')
    order, items = OrderService.update_items_status(
        tenant,
        data['orderId'],
        data['itemIds'],
        data['status'],
        actor_id=data.get('actorId'),
        reason=data.get('reason'),
    )
    return {
        'orderId': str(order.id),
        'orderStatus': order.status,
        'itemIds': [str(item.id) for item in items],
        'status': data['status'],
    }


@rpc_handler('order', 'orders:accept-items')
def handle_accept_items(tenant, data):
    _require(data, 'orderId', 'itemIds')
    order, _ = OrderService.accept_items(
        tenant, data['orderId'], data['itemIds'], waiter_id=data.get('waiterId')
    )
    return _order_reply(tenant, order)


@rpc_handler('order', 'orders:reject-items')
def handle_reject_items(tenant, data):
    _require(data, 'orderId', 'itemIds')
    order, _ = OrderService.reject_items(
        tenant,
        data['orderId'],
        data['itemIds'],
        data.get('rejectionReason') or data.get('reason'),
        waiter_id=data.get('waiterId'),
    )
    return _order_reply(tenant, order)


@rpc_handler('order', 'orders:get')
def handle_get_order(tenant, data):
    _require(data, 'orderId')
    return OrderSerializer(OrderService.get_order(tenant, data['orderId'])).data
