from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
import logging

from core_backend.exceptions import (
    ErrorCodes,
    InvalidStatusTransitionError,
    NotFoundError,
    ValidationError,
)
from orders.events.publishers import OrderEventPublisher
from orders.models import Order, OrderItem
from .calculation_service import OrderCalculationService

logger = logging.getLogger(__name__)

ItemStatus = OrderItem.ItemStatus


class OrderService:
    """
    Item-level lifecycle of an order.

    Items move forward along VALID_ITEM_TRANSITIONS only. The order's own
    status is derived: it becomes IN_PROGRESS once an item reaches the
    kitchen and COMPLETED only through a payment while every live item has
    been served. CANCELLED items are reachable only through cancel_order.
    """

    VALID_ITEM_TRANSITIONS = {
        ItemStatus.PENDING: [ItemStatus.ACCEPTED, ItemStatus.REJECTED],
        ItemStatus.ACCEPTED: [ItemStatus.PREPARING, ItemStatus.REJECTED],
        ItemStatus.PREPARING: [ItemStatus.READY],
        ItemStatus.READY: [ItemStatus.SERVED],
        ItemStatus.SERVED: [],
        ItemStatus.REJECTED: [],
        ItemStatus.CANCELLED: [],
    }

    ITEM_TIMESTAMP_FIELDS = {
        ItemStatus.ACCEPTED: "accepted_at",
        ItemStatus.PREPARING: "preparing_at",
        ItemStatus.READY: "ready_at",
        ItemStatus.SERVED: "served_at",
        ItemStatus.CANCELLED: "cancelled_at",
    }

    CANCELLABLE_ORDER_STATUSES = Order.OPEN_STATUSES

    @staticmethod
    def is_valid_transition(current_status: str, target_status: str) -> bool:
        return target_status in OrderService.VALID_ITEM_TRANSITIONS.get(current_status, [])

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def get_order(tenant, order_id, for_update=False) -> Order:
        queryset = Order.objects.filter(tenant=tenant)
        if for_update:
            queryset = queryset.select_for_update()
        else:
            queryset = queryset.prefetch_related("items__modifiers")
        try:
            return queryset.get(id=order_id)
        except (Order.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError("Order", order_id, error_code=ErrorCodes.ORDER_NOT_FOUND)

    @staticmethod
    def get_open_order_for_table(tenant, table_id, for_update=False):
        queryset = Order.objects.filter(
            tenant=tenant,
            table_id=table_id,
            status__in=Order.OPEN_STATUSES,
        )
        if for_update:
            queryset = queryset.select_for_update()
        return queryset.first()

    @staticmethod
    def list_orders(tenant, status=None, table_id=None, customer_id=None, page=1, limit=20):
        """
        Returns:
            (orders, total) for the requested page, newest first.
        """
        page = max(int(page or 1), 1)
        limit = min(max(int(limit or 20), 1), 100)

        queryset = Order.objects.filter(tenant=tenant)
        if status:
            statuses = status if isinstance(status, (list, tuple)) else [status]
            queryset = queryset.filter(status__in=statuses)
        if table_id:
            queryset = queryset.filter(table_id=table_id)
        if customer_id:
            queryset = queryset.filter(customer_id=customer_id)

        total = queryset.count()
        offset = (page - 1) * limit
        orders = list(queryset.prefetch_related("items__modifiers")[offset:offset + limit])
        return orders, total

    # ------------------------------------------------------------------
    # Item status changes
    # ------------------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def update_items_status(tenant, order_id, item_ids, target_status, actor_id=None, reason=None):
        """
        Move a batch of items of one order to ``target_status``.

        Every item is validated before any is changed, so the batch applies
        completely or not at all.

        Returns:
            (order, updated_items)

        Raises:
            ValidationError: empty batch, unknown status, or REJECTED without a reason
            NotFoundError: the order or one of the items does not exist
            InvalidStatusTransitionError: an item cannot move to ``target_status``
        """
        if not item_ids:
            raise ValidationError("itemIds must contain at least one item")
        if target_status not in ItemStatus.values:
            raise ValidationError(f"'{target_status}' is not a valid item status")
        if target_status == ItemStatus.REJECTED and not (reason or "").strip():
            raise ValidationError("A rejection reason is required")

        order = OrderService.get_order(tenant, order_id, for_update=True)

        requested_ids = {str(item_id) for item_id in item_ids}
        try:
            items = list(
                OrderItem.objects.select_for_update()
                .filter(order=order, id__in=requested_ids)
            )
        except DjangoValidationError:
            raise ValidationError("itemIds must be UUIDs", details={"itemIds": sorted(requested_ids)})
        found_ids = {str(item.id) for item in items}
        missing = requested_ids - found_ids
        if missing:
            raise NotFoundError(
                "Order item",
                ", ".join(sorted(missing)),
                error_code=ErrorCodes.ORDER_ITEM_NOT_FOUND,
            )

        for item in items:
            if not OrderService.is_valid_transition(item.status, target_status):
                raise InvalidStatusTransitionError(item.status, target_status, subject=f"item {item.id}")

        now = timezone.now()
        timestamp_field = OrderService.ITEM_TIMESTAMP_FIELDS.get(target_status)
        for item in items:
            item.status = target_status
            update_fields = ["status", "updated_at"]
            if timestamp_field:
                setattr(item, timestamp_field, now)
                update_fields.append(timestamp_field)
            if target_status == ItemStatus.REJECTED:
                item.rejection_reason = reason.strip()
                update_fields.append("rejection_reason")
            item.save(update_fields=update_fields)

        if target_status == ItemStatus.ACCEPTED and actor_id:
            order.waiter_id = actor_id
            order.save(update_fields=["waiter_id", "updated_at"])

        if target_status == ItemStatus.REJECTED:
            OrderCalculationService.recalculate_order_totals(order)

        OrderService._derive_order_status(order)

        logger.info(
            f"Order {order.id}: {len(items)} item(s) -> {target_status}"
            + (f" by {actor_id}" if actor_id else "")
        )

        OrderEventPublisher.items_status_changed(order, items, target_status, actor_id=actor_id)
        if target_status == ItemStatus.ACCEPTED:
            OrderEventPublisher.items_accepted(order, items)

        return order, items

    @staticmethod
    def accept_items(tenant, order_id, item_ids, waiter_id=None):
        """Waiter confirms items; accepted items are sent to the kitchen."""
        return OrderService.update_items_status(
            tenant, order_id, item_ids, ItemStatus.ACCEPTED, actor_id=waiter_id
        )

    @staticmethod
    def reject_items(tenant, order_id, item_ids, reason, waiter_id=None):
        return OrderService.update_items_status(
            tenant, order_id, item_ids, ItemStatus.REJECTED, actor_id=waiter_id, reason=reason
        )

    @staticmethod
    def mark_items_served(tenant, order_id, item_ids, waiter_id=None):
        return OrderService.update_items_status(
            tenant, order_id, item_ids, ItemStatus.SERVED, actor_id=waiter_id
        )

    @staticmethod
    def _derive_order_status(order):
        """
        Promote PENDING -> IN_PROGRESS once any item is in the kitchen, and
        complete an already-paid order once its last item is served.
        """
        statuses = list(order.items.values_list("status", flat=True))

        if order.status == Order.OrderStatus.PENDING and any(
            status in OrderItem.IN_KITCHEN_STATUSES for status in statuses
        ):
            order.status = Order.OrderStatus.IN_PROGRESS
            order.save(update_fields=["status", "updated_at"])
            logger.info(f"Order {order.id} is now IN_PROGRESS")

        if order.is_paid and order.is_editable and order.is_payment_ready:
            OrderService._complete(order)

        return order

    # ------------------------------------------------------------------
    # Order level
    # ------------------------------------------------------------------

    @staticmethod
    @transaction.atomic
    def cancel_order(tenant, order_id, reason=None) -> Order:
        """
        Cancel an open order and every item that has not reached a terminal state.

        Raises:
            InvalidStatusTransitionError: the order is already COMPLETED or CANCELLED
        """
        order = OrderService.get_order(tenant, order_id, for_update=True)

        if order.status not in OrderService.CANCELLABLE_ORDER_STATUSES:
            raise InvalidStatusTransitionError(
                order.status,
                Order.OrderStatus.CANCELLED,
                error_code=ErrorCodes.INVALID_ORDER_STATUS_TRANSITION,
                subject=f"order {order.id}",
            )

        now = timezone.now()
        cancelled_items = list(
            OrderItem.objects.select_for_update()
            .filter(order=order)
            .exclude(status__in=OrderItem.TERMINAL_STATUSES)
        )
        for item in cancelled_items:
            item.status = ItemStatus.CANCELLED
            item.cancelled_at = now
            item.save(update_fields=["status", "cancelled_at", "updated_at"])

        order.status = Order.OrderStatus.CANCELLED
        order.cancellation_reason = reason or "Cancelled by user"
        order.cancelled_at = now
        order.save(update_fields=["status", "cancellation_reason", "cancelled_at", "updated_at"])

        logger.info(f"Order {order.id} cancelled ({len(cancelled_items)} items): {order.cancellation_reason}")
        OrderEventPublisher.order_cancelled(order, cancelled_items)
        return order

    @staticmethod
    @transaction.atomic
    def update_payment_status(tenant, order_id, payment_status, payment_method=None, transaction_id=None) -> Order:
        """
        Record a payment outcome.

        PAID on a payment-ready open order completes it; paid orders that
        still have unserved items complete when the last one is served.
        """
        if payment_status not in Order.PaymentStatus.values:
            raise ValidationError(f"'{payment_status}' is not a valid payment status")

        order = OrderService.get_order(tenant, order_id, for_update=True)

        order.payment_status = payment_status
        update_fields = ["payment_status", "updated_at"]
        if payment_method:
            order.payment_method = payment_method
            update_fields.append("payment_method")
        if transaction_id:
            order.payment_transaction_id = transaction_id
            update_fields.append("payment_transaction_id")
        order.save(update_fields=update_fields)

        logger.info(f"Order {order.id} payment status -> {payment_status}")

        if order.is_paid and order.is_editable and order.is_payment_ready:
            OrderService._complete(order)

        return order

    @staticmethod
    def _complete(order):
        order.status = Order.OrderStatus.COMPLETED
        order.completed_at = timezone.now()
        order.save(update_fields=["status", "completed_at", "updated_at"])
        logger.info(f"✅ Order {order.id} completed")
        OrderEventPublisher.order_completed(order)
        return order
