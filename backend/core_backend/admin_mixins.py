"""
Admin mixins for tenant-scoped models.

The admin runs without a tenant context, so the default TenantManager
returns nothing there. Staff see every tenant's rows instead.
"""
from django.contrib import admin


class AllTenantsAdminMixin:
    """
    Reads through ``all_objects`` and shows the owning tenant.

    Usage:
        @admin.register(Order)
        class OrderAdmin(AllTenantsAdminMixin, admin.ModelAdmin):
            list_display = ('id', 'table_id', 'status')
    """

    def get_queryset(self, request):
        queryset = self.model.all_objects.all()
        ordering = self.get_ordering(request)
        if ordering:
            queryset = queryset.order_by(*ordering)
        return queryset.select_related('tenant')

    def get_list_display(self, request):
        list_display = list(super().get_list_display(request))
        if 'tenant' not in list_display:
            list_display.append('tenant')
        return list_display

    def get_list_filter(self, request):
        list_filter = list(super().get_list_filter(request))
        if 'tenant' not in list_filter:
            list_filter.insert(0, 'tenant')
        return list_filter


class ReadOnlyInlineMixin:
    """Inlines for rows that only services may write."""

    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


class ReadOnlyTabularInline(ReadOnlyInlineMixin, admin.TabularInline):
    pass
