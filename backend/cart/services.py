"""
Cart service layer.

A cart is an ephemeral, per-(tenant, table) list of lines held in the
Django cache. It is never a source of truth for prices: checkout discards
the prices stored here and re-prices every line from the catalog.
"""

from decimal import Decimal, InvalidOperation
import hashlib
from django.conf import settings
from django.core.cache import cache
import logging

from core_backend.exceptions import ErrorCodes, ItemUnavailableError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class CartService:
    """Service for managing cart operations."""

    @staticmethod
    def cart_key(tenant_id, table_id) -> str:
        return f"cart:{tenant_id}:{table_id}"

    @staticmethod
    def empty_cart():
        return {"items": [], "totalPrice": "0.00", "totalItems": 0}

    @staticmethod
    def get_cart(tenant_id, table_id) -> dict:
        cart = cache.get(CartService.cart_key(tenant_id, table_id))
        return cart or CartService.empty_cart()

    @staticmethod
    def validate_menu_item(pricing_client, menu_item_id) -> dict:
        """
        Check the catalog before a line goes into the cart.

        Unknown and unavailable items are both refused as not available.
        """
        try:
            menu_item = pricing_client.get_menu_item(menu_item_id)
        except NotFoundError:
            logger.warning(f"Menu item {menu_item_id} is not in the catalog")
            raise ItemUnavailableError(menu_item_id)
        if not pricing_client.is_available(menu_item):
            logger.warning(f"Menu item {menu_item_id} is not available ({menu_item.get('status')})")
            raise ItemUnavailableError(menu_item_id, name=menu_item.get("name"))
        return menu_item


    @staticmethod
    def add_item(tenant_id, table_id, menu_item_id, quantity, price, name=None, modifiers=None, notes=None) -> dict:
        """
        Add a line, or increase the quantity of the line with the same menu
        item and modifier selection.

        ``price`` is whatever the client showed; it is kept for display only.
        """
        quantity = CartService._validate_quantity(quantity)
        price = CartService._parse_price(price)

        cart = CartService.get_cart(tenant_id, table_id)
        menu_item_id = str(menu_item_id)
        modifiers = list(modifiers or [])
        line_id = CartService.line_id(menu_item_id, modifiers)

        existing = CartService._find_line(cart, line_id)
        if existing is not None:
            existing["quantity"] += quantity
            existing["subtotal"] = str(Decimal(existing["price"]) * existing["quantity"])
        else:
            cart["items"].append({
                "lineId": line_id,
                "menuItemId": menu_item_id,
                "name": name,
                "quantity": quantity,
                "price": str(price),
                "subtotal": str(price * quantity),
                "modifiers": modifiers,
                "notes": notes,
            })

        CartService._save(tenant_id, table_id, cart)
        logger.info(f"Added item {menu_item_id} to cart for tenant {tenant_id}, table {table_id}")
        return cart

    @staticmethod
    def update_item_quantity(tenant_id, table_id, line_id, quantity) -> dict:
        """``line_id`` is the line's ``lineId``; a line without modifiers uses its menu item id."""
        quantity = CartService._validate_quantity(quantity)
        cart = CartService.get_cart(tenant_id, table_id)

        line = CartService._find_line(cart, str(line_id))
        if line is None:
            raise NotFoundError("Cart item", line_id, error_code=ErrorCodes.CART_ITEM_NOT_FOUND)

        line["quantity"] = quantity
        line["subtotal"] = str(Decimal(line["price"]) * quantity)

        CartService._save(tenant_id, table_id, cart)
        logger.info(
            f"Updated line {line_id} quantity to {quantity} for tenant {tenant_id}, table {table_id}"
        )
        return cart

    @staticmethod
    def remove_item(tenant_id, table_id, line_id) -> dict:
        cart = CartService.get_cart(tenant_id, table_id)
        line_id = str(line_id)

        if CartService._find_line(cart, line_id) is None:
            raise NotFoundError("Cart item", line_id, error_code=ErrorCodes.CART_ITEM_NOT_FOUND)

        cart["items"] = [line for line in cart["items"] if CartService._line_key(line) != line_id]
        CartService._save(tenant_id, table_id, cart)
        logger.info(f"Removed line {line_id} from cart for tenant {tenant_id}, table {table_id}")
        return cart

    @staticmethod
    def clear_cart(tenant_id, table_id):
        cache.delete(CartService.cart_key(tenant_id, table_id))
        logger.info(f"Cleared cart for tenant {tenant_id}, table {table_id}")

    @staticmethod
    def line_id(menu_item_id, modifiers=None) -> str:
        """
        Identity of a cart line: the menu item plus its modifier selection.

        The same dish with other modifiers is priced differently, so it
        gets a line of its own.
        """
        selection = sorted(
            f"{modifier.get('modifierGroupId')}:{modifier.get('modifierOptionId')}"
            for modifier in modifiers or []
        )
        if not selection:
            return str(menu_item_id)
        digest = hashlib.md5("|".join(selection).encode()).hexdigest()[:8]
        return f"{menu_item_id}-{digest}"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _line_key(line):
        return line.get("lineId") or CartService.line_id(line["menuItemId"], line.get("modifiers"))

    @staticmethod
    def _find_line(cart, line_id):
        for line in cart["items"]:
            if CartService._line_key(line) == line_id:
                return line
        return None

    @staticmethod
    def _validate_quantity(quantity) -> int:
        try:
            quantity = int(quantity)
        except (TypeError, ValueError):
            raise ValidationError("Quantity must be a whole number", error_code=ErrorCodes.INVALID_CART_QUANTITY)
        if quantity <= 0:
            raise ValidationError("Quantity must be greater than 0", error_code=ErrorCodes.INVALID_CART_QUANTITY)
        return quantity

    @staticmethod
    def _parse_price(price) -> Decimal:
        try:
            price = Decimal(str(price if price is not None else 0))
        except InvalidOperation:
            raise ValidationError("Price must be a number", error_code=ErrorCodes.INVALID_CART_OPERATION)
        if price < 0:
            raise ValidationError("Price cannot be negative", error_code=ErrorCodes.INVALID_CART_OPERATION)
        return price

    @staticmethod
    def _recalculate(cart):
        cart["totalPrice"] = str(sum((Decimal(line["subtotal"]) for line in cart["items"]), Decimal("0.00")))
        cart["totalItems"] = sum(line["quantity"] for line in cart["items"])
        return cart

    @staticmethod
    def _save(tenant_id, table_id, cart):
        """Store the cart, refreshing its TTL."""
        CartService._recalculate(cart)
        cache.set(CartService.cart_key(tenant_id, table_id), cart, timeout=settings.CART_TTL_SECONDS)
