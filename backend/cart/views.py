"""
Cart API views.

One cart per (tenant, table), held in the cache until checkout.
"""

from rest_framework import viewsets, status
from rest_framework.permissions import AllowAny
import logging

from core_backend.responses import success_response
from .pricing import PricingOracleClient
from .serializers import AddToCartSerializer, UpdateCartItemSerializer
from .services import CartService

logger = logging.getLogger(__name__)


class CartViewSet(viewsets.ViewSet):
    """
    ViewSet for table cart operations.

    Endpoints:
    - GET /api/cart/tables/{table_id}/ - Retrieve the table's cart
    - POST /api/cart/tables/{table_id}/add-item/ - Add item to cart
    - PATCH /api/cart/tables/{table_id}/update-item/{line_id}/ - Update line quantity
    - DELETE /api/cart/tables/{table_id}/remove-item/{line_id}/ - Remove line from cart
    - DELETE /api/cart/tables/{table_id}/clear/ - Clear all items
    """

    permission_classes = [AllowAny]

    def retrieve(self, request, table_id):
        cart = CartService.get_cart(request.tenant.id, table_id)
        return success_response(cart)

    def add_item(self, request, table_id):
        serializer = AddToCartSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        # Refuse dishes the catalog does not sell before they reach the cart
        menu_item = CartService.validate_menu_item(
            PricingOracleClient(request.tenant.id), data['menu_item_id']
        )

        modifiers = [
            {**modifier, 'price': str(modifier['price'])} if 'price' in modifier else dict(modifier)
            for modifier in data.get('modifiers', [])
        ]
        cart = CartService.add_item(
            request.tenant.id,
            table_id,
            data['menu_item_id'],
            data['quantity'],
            data['price'],
            name=data.get('name') or menu_item.get('name'),
            modifiers=modifiers,
            notes=data.get('notes'),
        )
        return success_response(cart, message="Item added to cart", status=status.HTTP_201_CREATED)

    def update_item(self, request, table_id, line_id):
        serializer = UpdateCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        cart = CartService.update_item_quantity(
            request.tenant.id, table_id, line_id, serializer.validated_data['quantity']
        )
        return success_response(cart, message="Cart item updated")

    def remove_item(self, request, table_id, line_id):
        cart = CartService.remove_item(request.tenant.id, table_id, line_id)
        return success_response(cart, message="Item removed from cart")

    def clear(self, request, table_id):
        CartService.clear_cart(request.tenant.id, table_id)
        return success_response(CartService.empty_cart(), message="Cart cleared")
