"""
Shared test fixtures for all backend tests.

This module provides reusable pytest fixtures for common test objects
like tenants, orders, tickets and notifications.
"""
import pytest
from decimal import Decimal
from unittest.mock import MagicMock

from core_backend.exceptions import NotFoundError
from tenant.models import Tenant
from tenant.managers import set_current_tenant
from orders.models import Order, OrderItem, OrderItemModifier


# ============================================================================
# TENANT FIXTURES
# ============================================================================

@pytest.fixture
def tenant_a(db):
    """Create test tenant A (Pizza Place)"""
    return Tenant.objects.create(
        name='Pizza Place',
        slug='pizza-place',
        is_active=True
    )


@pytest.fixture
def tenant_b(db):
    """Create test tenant B (Burger Joint)"""
    return Tenant.objects.create(
        name='Burger Joint',
        slug='burger-joint',
        is_active=True
    )


@pytest.fixture
def inactive_tenant(db):
    """Create inactive test tenant"""
    return Tenant.objects.create(
        name='Closed Restaurant',
        slug='closed-restaurant',
        is_active=False
    )


@pytest.fixture
def tenant(tenant_a):
    """
    Tenant A with tenant context set for the test.

    TenantManager fails closed, so service calls and related managers
    (``order.items.all()``) only see rows while the context is set.
    The autouse ``reset_tenant_context`` clears it afterwards.
    """
    set_current_tenant(tenant_a)
    return tenant_a


@pytest.fixture
def tenant_client(api_client, tenant_a):
    """
    API client that sends tenant A in the X-Tenant-Id header.

    Usage:
        def test_list(tenant_client):
            response = tenant_client.get('/api/orders/')
    """
    api_client.credentials(HTTP_X_TENANT_ID=str(tenant_a.id), HTTP_X_ACTOR_ID='waiter-1')
    return api_client


# ============================================================================
# ORDER FIXTURES
# ============================================================================

def make_order(tenant, table_id='T1', **kwargs):
    return Order.objects.create(tenant=tenant, table_id=table_id, **kwargs)


def make_item(order, name='Pho Bo', unit_price='50000.00', quantity=1, status=OrderItem.ItemStatus.PENDING, **kwargs):
    unit_price = Decimal(unit_price)
    total = unit_price * quantity
    return OrderItem.objects.create(
        tenant=order.tenant,
        order=order,
        menu_item_id=kwargs.pop('menu_item_id', f'menu-{name.lower().replace(" ", "-")}'),
        name=name,
        unit_price=unit_price,
        quantity=quantity,
        subtotal=total,
        total=total,
        status=status,
        **kwargs
    )


@pytest.fixture
def order(tenant):
    """Open PENDING order on table T1"""
    return make_order(tenant, customer_name='Lan')


@pytest.fixture
def order_with_items(order):
    """Order with two PENDING items (Pho Bo 50,000 x2 and Tra Da 10,000)"""
    pho = make_item(order, name='Pho Bo', unit_price='50000.00', quantity=2)
    OrderItemModifier.objects.create(
        tenant=order.tenant,
        order_item=pho,
        modifier_group_id='size',
        modifier_group_name='Size',
        modifier_option_id='large',
        option_name='Large',
        price=Decimal('0.00'),
    )
    make_item(order, name='Tra Da', unit_price='10000.00', quantity=1)
    return order


# ============================================================================
# COLLABORATOR FIXTURES
# ============================================================================

@pytest.fixture
def pricing_client():
    """
    Stand-in for the product catalog client.

    Configure prices with ``pricing_client.menu_items[menu_item_id] = {...}``
    and ``pricing_client.options[(group_id, option_id)] = {...}``.
    """
    client = MagicMock()
    client.menu_items = {}
    client.groups = {}
    client.options = {}

    def get_menu_item(menu_item_id):
        if menu_item_id not in client.menu_items:
            raise NotFoundError('Menu item', menu_item_id)
        return client.menu_items[menu_item_id]

    client.get_menu_item.side_effect = get_menu_item
    client.get_modifier_group.side_effect = lambda group_id: client.groups.get(
        group_id, {'id': group_id, 'name': group_id.title()}
    )
    client.get_modifier_option.side_effect = lambda group_id, option_id: client.options[(group_id, option_id)]
    client.is_available.side_effect = lambda menu_item: str(menu_item.get('status', '')).upper() == 'AVAILABLE'
    return client


@pytest.fixture
def no_table_directory(settings):
    """Table lookups return nothing without touching the network."""
    settings.TABLE_SERVICE_URL = ''


# ============================================================================
# KITCHEN FIXTURES
# ============================================================================

def items_accepted_payload(order, items, **overrides):
    """``order.items_accepted`` event data for ``items`` of ``order``"""
    from orders.events.publishers import serialize_item

    return {
        'tenantId': str(order.tenant_id),
        'orderId': str(order.id),
        'tableId': order.table_id,
        'customerName': order.customer_name,
        'orderType': order.order_type,
        'notes': order.notes,
        'items': [serialize_item(item) for item in items],
        **overrides,
    }


@pytest.fixture
def accepted_order(order):
    """Order on T1 with two ACCEPTED items (Pho Bo, Tra Da)"""
    make_item(order, name='Pho Bo', unit_price='50000.00', status=OrderItem.ItemStatus.ACCEPTED)
    make_item(order, name='Tra Da', unit_price='10000.00', status=OrderItem.ItemStatus.ACCEPTED)
    return order


@pytest.fixture
def kitchen_ticket(tenant, accepted_order, no_table_directory):
    """PENDING kitchen ticket built from ``accepted_order``"""
    from kds.services import KitchenTicketService

    items = list(accepted_order.items.order_by('created_at'))
    return KitchenTicketService.create_ticket_from_event(
        tenant, items_accepted_payload(accepted_order, items)
    )


# ============================================================================
# WAITER FIXTURES
# ============================================================================

def new_items_payload(order, items=None, message_id='msg-1', **overrides):
    """``order.new_items`` event data as the order service publishes it"""
    return {
        'tenantId': str(order.tenant_id),
        'orderId': str(order.id),
        'tableId': order.table_id,
        'customerName': order.customer_name,
        'orderType': order.order_type,
        'isAppend': False,
        'items': items if items is not None else [
            {'id': 'item-1', 'name': 'Pho Bo', 'quantity': 2},
            {'id': 'item-2', 'name': 'Tra Da', 'quantity': 1},
        ],
        'messageId': message_id,
        **overrides,
    }


@pytest.fixture
def notification(tenant, order):
    """UNREAD notification for ``order`` on T1"""
    from notifications.services import WaiterNotificationService

    created, _ = WaiterNotificationService.handle_new_items(tenant, new_items_payload(order))
    return created
