from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework import status
import logging

from core_backend.responses import paginated, success_response
from .serializers import (
    CancelOrderSerializer,
    CheckoutSerializer,
    ItemIdsSerializer,
    OrderListSerializer,
    OrderSerializer,
    RejectItemsSerializer,
    UpdateItemsStatusSerializer,
    UpdatePaymentStatusSerializer,
)
from .services import CheckoutService, OrderService

logger = logging.getLogger(__name__)


def _order_data(request, order):
    # Reload with items prefetched so the response reflects the committed state
    return OrderSerializer(OrderService.get_order(request.tenant, order.id)).data


@api_view(['POST'])
@permission_classes([AllowAny])
def checkout(request):
    """
    Turn the table's cart into order items.

    Appends to the table's open order when there is one.
    """
    serializer = CheckoutSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order, new_items, is_append = CheckoutService.checkout(request.tenant, **serializer.validated_data)

    return success_response(
        _order_data(request, order),
        message="Items added to order" if is_append else "Order created from cart",
        status=status.HTTP_200_OK if is_append else status.HTTP_201_CREATED,
    )


@api_view(['GET'])
@permission_classes([AllowAny])
def order_list(request):
    """
    Query parameters:
    - status: Order status filter (repeatable)
    - table_id: Table filter
    - customer_id: Customer filter
    - page / limit: Pagination (default 1 / 20)
    """
    try:
        page = int(request.GET.get('page', 1))
        limit = int(request.GET.get('limit', 20))
    except ValueError:
        page, limit = 1, 20

    orders, total = OrderService.list_orders(
        request.tenant,
        status=request.GET.getlist('status') or None,
        table_id=request.GET.get('table_id'),
        customer_id=request.GET.get('customer_id'),
        page=page,
        limit=limit,
    )
    return success_response(
        paginated(OrderListSerializer(orders, many=True).data, total, max(page, 1), min(max(limit, 1), 100))
    )


@api_view(['GET'])
@permission_classes([AllowAny])
def order_detail(request, order_id):
    order = OrderService.get_order(request.tenant, order_id)
    return success_response(OrderSerializer(order).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def table_open_order(request, table_id):
    """The table's open order, or null when the table has none."""
    order = OrderService.get_open_order_for_table(request.tenant, table_id)
    return success_response(_order_data(request, order) if order else None)


@api_view(['POST'])
@permission_classes([AllowAny])
def accept_items(request, order_id):
    serializer = ItemIdsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order, _ = OrderService.accept_items(
        request.tenant, order_id, serializer.validated_data['item_ids'], waiter_id=request.actor_id
    )
    return success_response(_order_data(request, order), message="Items accepted")


@api_view(['POST'])
@permission_classes([AllowAny])
def reject_items(request, order_id):
    serializer = RejectItemsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order, _ = OrderService.reject_items(
        request.tenant,
        order_id,
        serializer.validated_data['item_ids'],
        serializer.validated_data['reason'],
        waiter_id=request.actor_id,
    )
    return success_response(_order_data(request, order), message="Items rejected")


@api_view(['POST'])
@permission_classes([AllowAny])
def serve_items(request, order_id):
    serializer = ItemIdsSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order, _ = OrderService.mark_items_served(
        request.tenant, order_id, serializer.validated_data['item_ids'], waiter_id=request.actor_id
    )
    return success_response(_order_data(request, order), message="Items served")


@api_view(['PATCH'])
@permission_classes([AllowAny])
def update_items_status(request, order_id):
    serializer = UpdateItemsStatusSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order, _ = OrderService.update_items_status(
        request.tenant,
        order_id,
        serializer.validated_data['item_ids'],
        serializer.validated_data['status'],
        actor_id=request.actor_id,
        reason=request.data.get('reason'),
    )
    return success_response(_order_data(request, order), message="Items updated")


@api_view(['POST'])
@permission_classes([AllowAny])
def cancel_order(request, order_id):
    serializer = CancelOrderSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = OrderService.cancel_order(request.tenant, order_id, reason=serializer.validated_data.get('reason'))
    return success_response(_order_data(request, order), message="Order cancelled")


@api_view(['PATCH'])
@permission_classes([AllowAny])
def update_payment_status(request, order_id):
    serializer = UpdatePaymentStatusSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    order = OrderService.update_payment_status(
        request.tenant,
        order_id,
        data['payment_status'],
        payment_method=data.get('payment_method'),
        transaction_id=data.get('payment_transaction_id'),
    )
    return success_response(_order_data(request, order), message="Payment status updated")
