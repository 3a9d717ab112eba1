from django.http import JsonResponse
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from .models import Tenant
from .managers import set_current_tenant


class TenantNotFoundError(Exception):
    """Raised when tenant cannot be resolved from request."""
    pass


class TenantMiddleware:
    """
    Resolves tenant from request and attaches to request.tenant.

    The gateway authenticates the caller and forwards the tenant it
    resolved. Resolution precedence (highest to lowest):
    1. X-Tenant-Id header - tenant UUID
    2. X-Tenant header - tenant slug
    3. Development fallback - DEFAULT_TENANT_SLUG for localhost/testserver
    4. Fail with 400

    The actor identity (waiter/chef id) travels in X-Actor-Id and is
    attached as request.actor_id without re-authentication.
    """

    LOCAL_HOSTS = ['localhost', '127.0.0.1', 'testserver']

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        # Admin and health checks operate without tenant context
        if request.path.startswith('/admin/') or request.path.startswith('/api/health/'):
            request.tenant = None
            set_current_tenant(None)
            return self.get_response(request)

        try:
            tenant = self.get_tenant_from_request(request)
            request.tenant = tenant
            request.actor_id = request.META.get('HTTP_X_ACTOR_ID') or None

            # CRITICAL: Set thread-local context for TenantManager
            set_current_tenant(tenant)

            if not tenant.is_active:
                return JsonResponse({
                    'error': 'Tenant account is inactive',
                    'code': 'TENANT_INACTIVE'
                }, status=403)

            return self.get_response(request)

        except TenantNotFoundError as e:
            return JsonResponse({
                'error': str(e),
                'code': 'TENANT_NOT_FOUND'
            }, status=400)

        finally:
            # CRITICAL: Always clean up thread-local context
            set_current_tenant(None)

    def get_tenant_from_request(self, request):
        tenant_id = request.META.get('HTTP_X_TENANT_ID')
        if tenant_id:
            try:
                return Tenant.objects.get(id=tenant_id)
            except (Tenant.DoesNotExist, DjangoValidationError, ValueError):
                raise TenantNotFoundError(f"Tenant '{tenant_id}' not found. Check X-Tenant-Id header value.")

        tenant_slug = request.META.get('HTTP_X_TENANT')
        if tenant_slug:
            try:
                return Tenant.objects.get(slug=tenant_slug)
            except Tenant.DoesNotExist:
                raise TenantNotFoundError(f"Tenant '{tenant_slug}' not found. Check X-Tenant header value.")

        host = request.get_host().split(':')[0]
        if host in self.LOCAL_HOSTS:
            fallback_slug = getattr(settings, 'DEFAULT_TENANT_SLUG', None)
            if fallback_slug:
                try:
                    return Tenant.objects.get(slug=fallback_slug)
                except Tenant.DoesNotExist:
                    raise TenantNotFoundError(f"Fallback tenant '{fallback_slug}' not found.")

        raise TenantNotFoundError(f"No tenant found for host: {host}. Send X-Tenant-Id or X-Tenant.")
