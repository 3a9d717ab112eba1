from django.contrib import admin

from core_backend.admin_mixins import AllTenantsAdminMixin
from .models import OrderNotification


@admin.register(OrderNotification)
class OrderNotificationAdmin(AllTenantsAdminMixin, admin.ModelAdmin):
    list_display = ('order_id', 'table_id', 'notification_type', 'status', 'priority', 'created_at')
    list_filter = ('status', 'notification_type')
    search_fields = ('order_id', 'table_id', 'message_id')
    readonly_fields = ('message_id', 'item_ids', 'metadata', 'read_at', 'archived_at', 'created_at')
    ordering = ('-created_at',)
