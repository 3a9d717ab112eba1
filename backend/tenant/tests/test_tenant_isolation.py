"""
Tenant Isolation Tests - CRITICAL SECURITY TESTS

These tests verify that TenantManager filters every tenant-owned model by
the current tenant and returns nothing when no tenant is set.
If ANY of these tests fail, one restaurant can read another's orders.

Priority: 🔥 CRITICAL
"""
import pytest

from core_backend.exceptions import NotFoundError, UnauthorizedError, ValidationError
from core_backend.tests.fixtures import make_item, make_order
from kds.models import KitchenTicket
from notifications.models import OrderNotification
from orders.models import Order, OrderItem
from tenant.managers import get_current_tenant, set_current_tenant, tenant_context
from tenant.models import Tenant

pytestmark = pytest.mark.tenant_isolation


@pytest.fixture
def order_a(tenant_a):
    order = make_order(tenant_a, table_id='A1')
    make_item(order)
    return order


@pytest.fixture
def order_b(tenant_b):
    order = make_order(tenant_b, table_id='B1')
    make_item(order)
    return order


@pytest.mark.django_db
class TestTenantManager:

    def test_orders_filtered_by_tenant(self, tenant_a, tenant_b, order_a, order_b):
        """
        CRITICAL: Verify Order.objects only returns the current tenant's orders

        Security Impact: If this fails, restaurants see each other's tables
        """
        set_current_tenant(tenant_a)
        assert list(Order.objects.all()) == [order_a]

        set_current_tenant(tenant_b)
        assert list(Order.objects.all()) == [order_b]

    def test_fails_closed_without_context(self, order_a, order_b):
        set_current_tenant(None)

        assert Order.objects.count() == 0, "TenantManager should return empty queryset without tenant context"
        assert OrderItem.objects.count() == 0
        assert Order.all_objects.count() == 2

    def test_get_by_id_respects_tenant(self, tenant_a, order_a, order_b):
        set_current_tenant(tenant_a)

        assert Order.objects.get(id=order_a.id) == order_a
        with pytest.raises(Order.DoesNotExist):
            Order.objects.get(id=order_b.id)

    def test_related_manager_respects_tenant(self, tenant_b, order_a):
        """
        CRITICAL: order.items goes through the tenant-filtered manager too
        """
        set_current_tenant(tenant_b)
        assert order_a.items.count() == 0

    @pytest.mark.parametrize("model", [KitchenTicket, OrderNotification])
    def test_every_service_model_fails_closed(self, model):
        set_current_tenant(None)
        assert model.objects.count() == 0


class TestTenantContext:

    def test_context_restores_previous_tenant(self):
        outer, inner = object(), object()
        set_current_tenant(outer)

        with tenant_context(inner):
            assert get_current_tenant() is inner

        assert get_current_tenant() is outer

    def test_context_restores_on_error(self):
        set_current_tenant(None)

        with pytest.raises(RuntimeError):
            with tenant_context(object()):
                raise RuntimeError("handler failed")

        assert get_current_tenant() is None


@pytest.mark.django_db
class TestTenantResolve:

    def test_resolves_active_tenant(self, tenant_a):
        assert Tenant.resolve(str(tenant_a.id)) == tenant_a

    def test_missing_id(self):
        with pytest.raises(ValidationError):
            Tenant.resolve(None)

    @pytest.mark.parametrize("tenant_id", ['00000000-0000-0000-0000-000000000000', 'not-a-uuid'])
    def test_unknown_tenant(self, tenant_id):
        with pytest.raises(NotFoundError):
            Tenant.resolve(tenant_id)

    def test_inactive_tenant_is_unauthorized(self, inactive_tenant):
        with pytest.raises(UnauthorizedError):
            Tenant.resolve(str(inactive_tenant.id))
