from decimal import Decimal, ROUND_HALF_UP
import logging

from django.conf import settings

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")


def quantize(amount) -> Decimal:
    """Round a money amount to 2 decimal places."""
    return Decimal(str(amount)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


class OrderCalculationService:
    """Service for calculating item and order totals."""

    @staticmethod
    def get_tax_rate() -> Decimal:
        return Decimal(str(settings.TAX_RATE))

    @staticmethod
    def calculate_item_totals(unit_price, quantity, modifier_prices=()):
        """
        Line totals for one order item.

        Modifier prices are per unit, so they scale with quantity like the
        base price does.

        Returns:
            (subtotal, modifiers_total, total)
        """
        unit_price = Decimal(str(unit_price))
        subtotal = quantize(unit_price * quantity)
        per_unit_modifiers = sum((Decimal(str(price)) for price in modifier_prices), Decimal("0"))
        modifiers_total = quantize(per_unit_modifiers * quantity)
        return subtotal, modifiers_total, subtotal + modifiers_total

    @staticmethod
    def calculate_order_totals(item_totals, discount=Decimal("0.00"), tax_rate=None):
        """
        Order totals from line totals.

        Tax applies to the subtotal; the discount is subtracted after tax.

        Returns:
            dict with subtotal, tax, discount and total
        """
        if tax_rate is None:
            tax_rate = OrderCalculationService.get_tax_rate()
        subtotal = quantize(sum((Decimal(str(t)) for t in item_totals), Decimal("0")))
        tax = quantize(subtotal * Decimal(str(tax_rate)))
        discount = quantize(discount or 0)
        return {
            "subtotal": subtotal,
            "tax": tax,
            "discount": discount,
            "total": subtotal + tax - discount,
        }

    @staticmethod
    def recalculate_order_totals(order):
        """
        Recompute and persist an order's financial fields from its items.

        Rejected and cancelled items are not charged.
        """
        from orders.models import OrderItem

        item_totals = (
            order.items.exclude(status__in=OrderItem.DROPPED_STATUSES)
            .values_list("total", flat=True)
        )
        totals = OrderCalculationService.calculate_order_totals(item_totals, discount=order.discount)

        order.subtotal = totals["subtotal"]
        order.tax = totals["tax"]
        order.discount = totals["discount"]
        order.total = totals["total"]
        order.save(update_fields=["subtotal", "tax", "discount", "total", "updated_at"])

        logger.debug(
            f"Order {order.id} totals: subtotal={order.subtotal} tax={order.tax} "
            f"discount={order.discount} total={order.total}"
        )
        return order
