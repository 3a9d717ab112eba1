"""
Root conftest.py for all backend tests.

This file makes fixtures available to all test files across all apps.
"""
import pytest
from django.core.cache import cache
from tenant.managers import set_current_tenant
from django.conf import settings

# Keep publishers off the broker and run celery tasks inline
settings.MESSAGING_ENABLED = False
settings.CELERY_TASK_ALWAYS_EAGER = True
settings.ORDER_STATUS_UPDATER = 'local'
settings.TABLE_SERVICE_URL = ''


# ============================================================================
# AUTO-USE FIXTURES (Run automatically for every test)
# ============================================================================

@pytest.fixture(scope='session', autouse=True)
def default_tenant(django_db_setup, django_db_blocker):
    """
    Create default tenant for development/test fallback.

    The TenantMiddleware uses DEFAULT_TENANT_SLUG for localhost/testserver requests.
    This fixture ensures that tenant exists for all tests.
    """
    with django_db_blocker.unblock():
        from tenant.models import Tenant

        default_slug = getattr(settings, 'DEFAULT_TENANT_SLUG', 'myrestaurant')

        tenant, _ = Tenant.objects.get_or_create(
            slug=default_slug,
            defaults={
                'name': 'Test Restaurant',
                'is_active': True
            }
        )
        return tenant


@pytest.fixture(autouse=True)
def reset_tenant_context():
    """
    Reset tenant context after each test.

    CRITICAL: This prevents tenant context from leaking between tests.
    If tenant context leaks, tests may pass when they should fail.
    """
    yield

    set_current_tenant(None)


@pytest.fixture(autouse=True)
def clear_cache_after_test():
    """
    Clear cache after each test to prevent cache pollution.

    Carts and the kitchen timer broadcast throttle both live in the cache.
    """
    yield
    cache.clear()


# ============================================================================
# API CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def api_client():
    """
    Provide DRF API client for API tests.

    Usage:
        def test_my_api(api_client):
            response = api_client.get('/api/health/')
            assert response.status_code == 200
    """
    from rest_framework.test import APIClient
    return APIClient()


# ============================================================================
# IMPORT ALL FIXTURES FROM core_backend/tests/fixtures.py
# ============================================================================
from core_backend.tests.fixtures import *
