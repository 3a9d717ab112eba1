"""
Checkout Tests

These tests verify cart -> order consolidation: one open order per table,
catalog re-pricing, and "new items" events that only carry what was just
added.

Priority: CRITICAL - checkout decides what the kitchen cooks and what the guest pays
"""
import pytest
from decimal import Decimal
from unittest.mock import patch

from cart.services import CartService
from core_backend.exceptions import CartEmptyError, ErrorCodes, ItemUnavailableError
from orders.models import Order, OrderItem
from orders.services import CheckoutService, OrderService


@pytest.fixture
def catalog(pricing_client):
    pricing_client.menu_items['pho'] = {
        'id': 'pho', 'name': 'Pho Bo', 'description': 'Beef noodle soup',
        'price': '60000.00', 'status': 'AVAILABLE',
    }
    pricing_client.menu_items['tea'] = {
        'id': 'tea', 'name': 'Tra Da', 'price': '10000', 'status': 'available',
    }
    pricing_client.menu_items['crab'] = {
        'id': 'crab', 'name': 'Crab Soup', 'price': '90000', 'status': 'OUT_OF_STOCK',
    }
    pricing_client.groups['size'] = {'id': 'size', 'name': 'Size'}
    pricing_client.options[('size', 'large')] = {'id': 'large', 'name': 'Large', 'price': '15000'}
    return pricing_client


@pytest.fixture
def published_events():
    with patch('orders.events.publishers.publish_event_on_commit') as mock_publish:
        yield mock_publish


def events_named(mock_publish, pattern):
    return [call.args[1] for call in mock_publish.call_args_list if call.args[0] == pattern]


@pytest.mark.django_db
class TestCheckout:

    def test_checkout_creates_order_from_cart(self, tenant, catalog, published_events, django_capture_on_commit_callbacks):
        CartService.add_item(tenant.id, 'T1', 'pho', 2, '60000.00', name='Pho Bo')

        with django_capture_on_commit_callbacks(execute=True):
            order, new_items, is_append = CheckoutService.checkout(
                tenant, 'T1', customer_name='Lan', notes='No onions', pricing_client=catalog
            )

        assert is_append is False
        assert order.status == Order.OrderStatus.PENDING
        assert order.customer_name == 'Lan'
        assert order.notes == 'No onions'
        assert len(new_items) == 1
        assert new_items[0].status == OrderItem.ItemStatus.PENDING
        assert new_items[0].description == 'Beef noodle soup'
        assert CartService.get_cart(tenant.id, 'T1')['items'] == [], "Cart must be cleared after checkout"

    def test_pricing_comes_from_catalog_not_cart(self, tenant, catalog, published_events):
        """
        CRITICAL: The client-side price in the cart is never trusted

        Security Impact: A tampered cart price cannot lower what the guest pays
        """
        CartService.add_item(tenant.id, 'T1', 'pho', 1, '1.00', name='Pho Bo')

        order, new_items, _ = CheckoutService.checkout(tenant, 'T1', pricing_client=catalog)

        assert new_items[0].unit_price == Decimal('60000.00')
        assert new_items[0].unit_price != Decimal('1.00')
        order.refresh_from_db()
        assert order.subtotal == Decimal('60000.00')

    def test_modifier_prices_come_from_catalog(self, tenant, catalog, published_events):
        CartService.add_item(
            tenant.id, 'T1', 'pho', 2, '60000',
            modifiers=[{'modifierGroupId': 'size', 'modifierOptionId': 'large', 'price': '0'}],
        )

        order, new_items, _ = CheckoutService.checkout(tenant, 'T1', pricing_client=catalog)

        item = new_items[0]
        assert item.subtotal == Decimal('120000.00')
        assert item.modifiers_total == Decimal('30000.00')
        assert item.total == Decimal('150000.00')
        modifier = item.modifiers.get()
        assert modifier.option_name == 'Large'
        assert modifier.modifier_group_name == 'Size'
        assert modifier.price == Decimal('15000.00')

    def test_second_checkout_appends_to_open_order(self, tenant, catalog, published_events, django_capture_on_commit_callbacks):
        """
        CRITICAL: A table has one open order; later checkouts append to it

        Business Impact: The kitchen must only receive the newly added items
        """
        CartService.add_item(tenant.id, 'T1', 'pho', 1, '60000')
        with django_capture_on_commit_callbacks(execute=True):
            first_order, first_items, _ = CheckoutService.checkout(
                tenant, 'T1', notes='Window seat', pricing_client=catalog
            )

        CartService.add_item(tenant.id, 'T1', 'tea', 2, '10000')
        with django_capture_on_commit_callbacks(execute=True):
            second_order, second_items, is_append = CheckoutService.checkout(
                tenant, 'T1', notes='Extra ice', pricing_client=catalog
            )

        assert is_append is True
        assert second_order.id == first_order.id
        assert Order.objects.filter(table_id='T1').count() == 1

        order = OrderService.get_order(tenant, first_order.id)
        assert {item.menu_item_id for item in order.items.all()} == {'pho', 'tea'}
        assert order.notes == 'Window seat | Extra ice'
        assert order.subtotal == Decimal('80000.00')
        assert order.tax == Decimal('8000.00')
        assert order.total == Decimal('88000.00')

        new_items_events = events_named(published_events, 'order.new_items')
        assert len(new_items_events) == 2
        second_event = new_items_events[1]
        assert second_event['isAppend'] is True
        assert [item['id'] for item in second_event['items']] == [str(item.id) for item in second_items]
        assert str(first_items[0].id) not in [item['id'] for item in second_event['items']]

    def test_append_keeps_items_already_in_the_kitchen(self, tenant, catalog, published_events, django_capture_on_commit_callbacks):
        CartService.add_item(tenant.id, 'T1', 'pho', 1, '60000')
        with django_capture_on_commit_callbacks(execute=True):
            order, items, _ = CheckoutService.checkout(tenant, 'T1', pricing_client=catalog)
        OrderService.accept_items(tenant, order.id, [items[0].id])

        CartService.add_item(tenant.id, 'T1', 'tea', 1, '10000')
        order, _, is_append = CheckoutService.checkout(tenant, 'T1', pricing_client=catalog)

        assert is_append is True
        statuses = sorted(order.items.values_list('status', flat=True))
        assert statuses == ['ACCEPTED', 'PENDING']

    def test_new_order_after_previous_is_closed(self, tenant, catalog, published_events, django_capture_on_commit_callbacks):
        CartService.add_item(tenant.id, 'T1', 'pho', 1, '60000')
        with django_capture_on_commit_callbacks(execute=True):
            first, _, _ = CheckoutService.checkout(tenant, 'T1', pricing_client=catalog)
        OrderService.cancel_order(tenant, first.id)

        CartService.add_item(tenant.id, 'T1', 'tea', 1, '10000')
        second, _, is_append = CheckoutService.checkout(tenant, 'T1', pricing_client=catalog)

        assert is_append is False
        assert second.id != first.id

    def test_unavailable_item_fails_whole_checkout(self, tenant, catalog, published_events):
        """
        CRITICAL: No partial orders when one item is unavailable
        """
        CartService.add_item(tenant.id, 'T1', 'pho', 1, '60000')
        CartService.add_item(tenant.id, 'T1', 'crab', 1, '90000')

        with pytest.raises(ItemUnavailableError) as exc_info:
            CheckoutService.checkout(tenant, 'T1', pricing_client=catalog)

        assert exc_info.value.code == ErrorCodes.MENU_ITEM_NOT_AVAILABLE.code
        assert Order.objects.count() == 0
        assert len(CartService.get_cart(tenant.id, 'T1')['items']) == 2, "Cart survives a failed checkout"
        assert events_named(published_events, 'order.new_items') == []

    def test_empty_cart(self, tenant, catalog):
        with pytest.raises(CartEmptyError) as exc_info:
            CheckoutService.checkout(tenant, 'T1', pricing_client=catalog)
        assert exc_info.value.code == ErrorCodes.CART_EMPTY.code

    def test_carts_are_per_table(self, tenant, catalog, published_events):
        CartService.add_item(tenant.id, 'T1', 'pho', 1, '60000')
        CartService.add_item(tenant.id, 'T2', 'tea', 1, '10000')

        order, items, _ = CheckoutService.checkout(tenant, 'T2', pricing_client=catalog)

        assert order.table_id == 'T2'
        assert [item.menu_item_id for item in items] == ['tea']
        assert len(CartService.get_cart(tenant.id, 'T1')['items']) == 1

    def test_losing_the_open_order_race_appends(self, tenant, catalog, published_events, django_capture_on_commit_callbacks):
        """
        CRITICAL: A checkout that misses the open order still appends to it

        Business Impact: Two concurrent checkouts on one table must not
        produce two bills; the unique open-order constraint sends the loser
        to the existing order
        """
        CartService.add_item(tenant.id, 'T1', 'pho', 1, '60000')
        with django_capture_on_commit_callbacks(execute=True):
            first_order, first_items, _ = CheckoutService.checkout(tenant, 'T1', pricing_client=catalog)

        find_open_order = OrderService.get_open_order_for_table
        lookups = []

        def stale_first_lookup(*args, **kwargs):
            # The first lookup ran before the other checkout committed
            lookups.append(args)
            if len(lookups) == 1:
                return None
            return find_open_order(*args, **kwargs)

        CartService.add_item(tenant.id, 'T1', 'tea', 2, '10000')
        with patch.object(OrderService, 'get_open_order_for_table', side_effect=stale_first_lookup):
            with django_capture_on_commit_callbacks(execute=True):
                order, new_items, is_append = CheckoutService.checkout(tenant, 'T1', pricing_client=catalog)

        assert is_append is True
        assert order.id == first_order.id
        assert Order.objects.filter(table_id='T1').count() == 1
        assert len(lookups) == 2

        order = OrderService.get_order(tenant, first_order.id)
        assert order.items.count() == 2
        assert order.total == Decimal('88000.00')

        second_event = events_named(published_events, 'order.new_items')[-1]
        assert second_event['isAppend'] is True
        assert [item['id'] for item in second_event['items']] == [str(item.id) for item in new_items]
        assert str(first_items[0].id) not in [item['id'] for item in second_event['items']]
