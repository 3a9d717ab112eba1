"""
Cart Service Tests

Carts are cache-held, per (tenant, table), and never a price authority.
"""
import pytest
from decimal import Decimal

from core_backend.exceptions import ErrorCodes, ItemUnavailableError, NotFoundError, ValidationError
from cart.services import CartService

TENANT = 'tenant-1'


class TestCartService:

    def test_empty_cart(self):
        cart = CartService.get_cart(TENANT, 'T1')
        assert cart == {'items': [], 'totalPrice': '0.00', 'totalItems': 0}

    def test_add_item_computes_totals(self):
        cart = CartService.add_item(TENANT, 'T1', 'pho', 2, '60000', name='Pho Bo')

        assert cart['totalItems'] == 2
        assert Decimal(cart['totalPrice']) == Decimal('120000')
        line = cart['items'][0]
        assert line['menuItemId'] == 'pho'
        assert line['name'] == 'Pho Bo'
        assert Decimal(line['subtotal']) == Decimal('120000')

    def test_adding_same_menu_item_merges_lines(self):
        CartService.add_item(TENANT, 'T1', 'pho', 1, '60000')
        cart = CartService.add_item(TENANT, 'T1', 'pho', 2, '60000')

        assert len(cart['items']) == 1
        assert cart['items'][0]['quantity'] == 3
        assert cart['totalItems'] == 3

    def test_cart_is_persisted_per_table(self):
        CartService.add_item(TENANT, 'T1', 'pho', 1, '60000')

        assert len(CartService.get_cart(TENANT, 'T1')['items']) == 1
        assert CartService.get_cart(TENANT, 'T2')['items'] == []
        assert CartService.get_cart('tenant-2', 'T1')['items'] == []

    def test_update_quantity(self):
        CartService.add_item(TENANT, 'T1', 'pho', 1, '60000')

        cart = CartService.update_item_quantity(TENANT, 'T1', 'pho', 4)

        assert cart['items'][0]['quantity'] == 4
        assert Decimal(cart['totalPrice']) == Decimal('240000')

    def test_update_missing_item(self):
        with pytest.raises(NotFoundError) as exc_info:
            CartService.update_item_quantity(TENANT, 'T1', 'ghost', 1)
        assert exc_info.value.code == ErrorCodes.CART_ITEM_NOT_FOUND.code

    @pytest.mark.parametrize("quantity", [0, -1, 'two', None])
    def test_invalid_quantity(self, quantity):
        with pytest.raises(ValidationError) as exc_info:
            CartService.add_item(TENANT, 'T1', 'pho', quantity, '60000')
        assert exc_info.value.code == ErrorCodes.INVALID_CART_QUANTITY.code

    def test_negative_price(self):
        with pytest.raises(ValidationError) as exc_info:
            CartService.add_item(TENANT, 'T1', 'pho', 1, '-5')
        assert exc_info.value.code == ErrorCodes.INVALID_CART_OPERATION.code

    def test_remove_item(self):
        CartService.add_item(TENANT, 'T1', 'pho', 1, '60000')
        CartService.add_item(TENANT, 'T1', 'tea', 1, '10000')

        cart = CartService.remove_item(TENANT, 'T1', 'pho')

        assert [line['menuItemId'] for line in cart['items']] == ['tea']
        assert Decimal(cart['totalPrice']) == Decimal('10000')

    def test_remove_missing_item(self):
        with pytest.raises(NotFoundError):
            CartService.remove_item(TENANT, 'T1', 'ghost')

    def test_clear_cart(self):
        CartService.add_item(TENANT, 'T1', 'pho', 1, '60000')

        CartService.clear_cart(TENANT, 'T1')

        assert CartService.get_cart(TENANT, 'T1')['items'] == []

    def test_cart_expires_with_ttl(self, settings):
        settings.CART_TTL_SECONDS = 0
        CartService.add_item(TENANT, 'T1', 'pho', 1, '60000')

        assert CartService.get_cart(TENANT, 'T1')['items'] == []


LARGE = [{'modifierGroupId': 'size', 'modifierOptionId': 'large', 'price': '15000'}]
SMALL = [{'modifierGroupId': 'size', 'modifierOptionId': 'small', 'price': '0'}]


class TestCartLinesWithModifiers:

    def test_different_modifiers_get_separate_lines(self):
        """
        CRITICAL: The same dish with other modifiers is its own line

        Business Impact: Merging would charge one modifier set for every portion
        """
        CartService.add_item(TENANT, 'T1', 'pho', 1, '60000', modifiers=LARGE)
        cart = CartService.add_item(TENANT, 'T1', 'pho', 2, '60000', modifiers=SMALL)

        assert len(cart['items']) == 2
        large, small = cart['items']
        assert (large['quantity'], large['modifiers']) == (1, LARGE)
        assert (small['quantity'], small['modifiers']) == (2, SMALL)
        assert large['lineId'] != small['lineId']

    def test_same_selection_in_any_order_merges(self):
        extras = [
            {'modifierGroupId': 'size', 'modifierOptionId': 'large'},
            {'modifierGroupId': 'spice', 'modifierOptionId': 'hot'},
        ]
        CartService.add_item(TENANT, 'T1', 'pho', 1, '60000', modifiers=extras)
        cart = CartService.add_item(TENANT, 'T1', 'pho', 1, '60000', modifiers=list(reversed(extras)))

        assert len(cart['items']) == 1
        assert cart['items'][0]['quantity'] == 2

    def test_plain_line_is_addressed_by_menu_item_id(self):
        cart = CartService.add_item(TENANT, 'T1', 'pho', 1, '60000')
        assert cart['items'][0]['lineId'] == 'pho'

    def test_update_and_remove_by_line_id(self):
        CartService.add_item(TENANT, 'T1', 'pho', 1, '60000')
        cart = CartService.add_item(TENANT, 'T1', 'pho', 1, '60000', modifiers=LARGE)
        large_line = cart['items'][1]['lineId']

        cart = CartService.update_item_quantity(TENANT, 'T1', large_line, 3)
        assert [line['quantity'] for line in cart['items']] == [1, 3]

        cart = CartService.remove_item(TENANT, 'T1', large_line)
        assert [line['lineId'] for line in cart['items']] == ['pho']


class TestMenuItemValidation:

    def test_available_item_is_returned(self, pricing_client):
        pricing_client.menu_items['pho'] = {'name': 'Pho Bo', 'price': '60000', 'status': 'AVAILABLE'}
        assert CartService.validate_menu_item(pricing_client, 'pho')['name'] == 'Pho Bo'

    def test_unavailable_item_is_refused(self, pricing_client):
        pricing_client.menu_items['crab'] = {'name': 'Crab Soup', 'price': '90000', 'status': 'OUT_OF_STOCK'}

        with pytest.raises(ItemUnavailableError) as exc_info:
            CartService.validate_menu_item(pricing_client, 'crab')

        assert exc_info.value.code == ErrorCodes.MENU_ITEM_NOT_AVAILABLE.code
        assert exc_info.value.details == {'menuItemId': 'crab'}

    def test_unknown_item_is_refused(self, pricing_client):
        with pytest.raises(ItemUnavailableError):
            CartService.validate_menu_item(pricing_client, 'ghost')
