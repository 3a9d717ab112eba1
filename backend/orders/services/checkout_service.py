from decimal import Decimal
from django.conf import settings
from django.db import IntegrityError, transaction
import logging

from cart.pricing import PricingOracleClient
from cart.services import CartService
from core_backend.exceptions import CartEmptyError, ItemUnavailableError, ValidationError
from orders.events.publishers import OrderEventPublisher
from orders.models import Order, OrderItem, OrderItemModifier
from .calculation_service import OrderCalculationService
from .order_service import OrderService

logger = logging.getLogger(__name__)

NOTES_SEPARATOR = " | "


class CheckoutService:
    """
    Turns a table's cart into order items.

    A table has one open order at a time: the first checkout creates it and
    every later checkout appends to it until it is completed or cancelled.
    Cart prices are ignored; every line is re-priced from the catalog and
    the whole checkout fails if any item is unavailable.
    """

    @staticmethod
    def checkout(tenant, table_id, customer_id=None, customer_name=None, order_type=None,
                 notes=None, pricing_client=None):
        """
        Returns:
            (order, new_items, is_append)

        Raises:
            CartEmptyError: the cart has no lines
            ItemUnavailableError: the catalog marks a menu item unavailable
            ServiceUnavailableError: the catalog could not be reached
        """
        if not table_id:
            raise ValidationError("tableId is required")
        if order_type and order_type not in Order.OrderType.values:
            raise ValidationError(f"'{order_type}' is not a valid order type")

        cart = CartService.get_cart(tenant.id, table_id)
        if not cart["items"]:
            raise CartEmptyError()

        pricing_client = pricing_client or PricingOracleClient(tenant.id)
        priced_lines = [CheckoutService._price_line(pricing_client, line) for line in cart["items"]]

        with transaction.atomic():
            order, is_append = CheckoutService._get_or_open_order(
                tenant, table_id, customer_id, customer_name, order_type, notes
            )
            new_items = [CheckoutService._create_item(tenant, order, line) for line in priced_lines]
            OrderCalculationService.recalculate_order_totals(order)

            OrderEventPublisher.new_items(order, new_items, is_append=is_append)
            transaction.on_commit(lambda: CartService.clear_cart(tenant.id, table_id))

        logger.info(
            f"🧾 Checkout for table {table_id}: {len(new_items)} item(s) "
            f"{'appended to' if is_append else 'opened'} order {order.id}"
        )
        return order, new_items, is_append

    @staticmethod
    def _price_line(pricing_client, line):
        """Resolve one cart line against the catalog."""
        menu_item_id = line.get("menuItemId")
        if not menu_item_id:
            raise ValidationError("Cart line without menuItemId")

        menu_item = pricing_client.get_menu_item(menu_item_id)
        if not pricing_client.is_available(menu_item):
            logger.warning(f"Menu item {menu_item_id} is not available ({menu_item.get('status')})")
            raise ItemUnavailableError(menu_item_id, name=menu_item.get("name") or line.get("name"))

        modifiers = []
        for selection in line.get("modifiers") or []:
            group_id = selection.get("modifierGroupId")
            option_id = selection.get("modifierOptionId")
            if not group_id or not option_id:
                raise ValidationError(
                    "Modifiers need modifierGroupId and modifierOptionId",
                    details={"menuItemId": menu_item_id},
                )
            group = pricing_client.get_modifier_group(group_id)
            option = pricing_client.get_modifier_option(group_id, option_id)
            modifiers.append({
                "modifier_group_id": str(group_id),
                "modifier_group_name": group.get("name") or "",
                "modifier_option_id": str(option_id),
                "option_name": option.get("name") or "",
                "price": Decimal(str(option.get("price") or 0)),
            })

        return {
            "menu_item_id": str(menu_item_id),
            "name": menu_item.get("name") or line.get("name") or "",
            "description": menu_item.get("description"),
            "unit_price": Decimal(str(menu_item.get("price") or 0)),
            "quantity": int(line.get("quantity") or 1),
            "notes": line.get("notes"),
            "modifiers": modifiers,
        }

    @staticmethod
    def _get_or_open_order(tenant, table_id, customer_id, customer_name, order_type, notes):
        order = OrderService.get_open_order_for_table(tenant, table_id, for_update=True)
        if order is None:
            try:
                with transaction.atomic():
                    order = Order.objects.create(
                        tenant=tenant,
                        table_id=table_id,
                        customer_id=customer_id,
                        customer_name=customer_name,
                        order_type=order_type or Order.OrderType.DINE_IN,
                        currency=settings.CURRENCY,
                        notes=notes or None,
                    )
                logger.info(f"Opened order {order.id} for table {table_id}")
                return order, False
            except IntegrityError:
                # Another checkout opened the table's order first
                order = OrderService.get_open_order_for_table(tenant, table_id, for_update=True)
                if order is None:
                    raise

        update_fields = ["updated_at"]
        if notes:
            order.notes = f"{order.notes}{NOTES_SEPARATOR}{notes}" if order.notes else notes
            update_fields.append("notes")
        if customer_name and not order.customer_name:
            order.customer_name = customer_name
            update_fields.append("customer_name")
        if customer_id and not order.customer_id:
            order.customer_id = customer_id
            update_fields.append("customer_id")
        order.save(update_fields=update_fields)
        return order, True

    @staticmethod
    def _create_item(tenant, order, line):
        subtotal, modifiers_total, total = OrderCalculationService.calculate_item_totals(
            line["unit_price"],
            line["quantity"],
            [modifier["price"] for modifier in line["modifiers"]],
        )
        item = OrderItem.objects.create(
            tenant=tenant,
            order=order,
            menu_item_id=line["menu_item_id"],
            name=line["name"],
            description=line["description"],
            unit_price=line["unit_price"],
            quantity=line["quantity"],
            subtotal=subtotal,
            modifiers_total=modifiers_total,
            total=total,
            currency=order.currency,
            notes=line["notes"],
        )
        for modifier in line["modifiers"]:
            OrderItemModifier.objects.create(
                tenant=tenant,
                order_item=item,
                currency=order.currency,
                **modifier,
            )
        return item
