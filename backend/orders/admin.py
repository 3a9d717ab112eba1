from django.contrib import admin

from core_backend.admin_mixins import AllTenantsAdminMixin, ReadOnlyTabularInline
from .models import Order, OrderItem, OrderItemModifier


class OrderItemInline(ReadOnlyTabularInline):
    model = OrderItem
    fields = ("name", "quantity", "unit_price", "total", "status", "rejection_reason")
    readonly_fields = fields

    def get_queryset(self, request):
        return OrderItem.all_objects.all()


@admin.register(Order)
class OrderAdmin(AllTenantsAdminMixin, admin.ModelAdmin):
    """
    Status changes go through OrderService so events and the kitchen stay
    in sync; the admin only inspects orders.
    """

    list_display = (
        "id",
        "table_id",
        "customer_name",
        "status",
        "payment_status",
        "total",
        "created_at",
    )
    list_filter = ("status", "payment_status", "order_type", "created_at")
    search_fields = ("id", "table_id", "customer_name", "waiter_id")
    readonly_fields = (
        "subtotal",
        "tax",
        "discount",
        "total",
        "created_at",
        "updated_at",
        "completed_at",
        "cancelled_at",
    )
    ordering = ("-created_at",)
    inlines = [OrderItemInline]


@admin.register(OrderItemModifier)
class OrderItemModifierAdmin(AllTenantsAdminMixin, admin.ModelAdmin):
    list_display = ("order_item", "modifier_group_name", "option_name", "price")
    search_fields = ("option_name", "modifier_group_name")
