"""
URL configuration for core_backend project.

Each service mounts under its own prefix:
    /api/cart/      table carts
    /api/orders/    orders and checkout
    /api/kitchen/   kitchen display tickets
    /api/waiter/    waiter notifications
    /admin/         staff inspection across tenants
"""

from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include


def health_check(request):
    """Simple health check endpoint that doesn't require a tenant"""
    return JsonResponse({"status": "ok", "message": "Backend is running"})


urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/health/", health_check, name="health_check"),
    path("api/cart/", include("cart.urls")),
    path("api/orders/", include("orders.urls")),
    path("api/kitchen/", include("kds.urls")),
    path("api/waiter/", include("notifications.urls")),
]
