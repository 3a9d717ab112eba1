from django.contrib import admin

from core_backend.admin_mixins import AllTenantsAdminMixin, ReadOnlyTabularInline
from .models import KitchenTicket, KitchenTicketItem, TicketSequence


class KitchenTicketItemInline(ReadOnlyTabularInline):
    model = KitchenTicketItem
    fields = ('name', 'quantity', 'status', 'order_item_status', 'station', 'recall_count')
    readonly_fields = fields

    def get_queryset(self, request):
        return KitchenTicketItem.all_objects.all()


@admin.register(KitchenTicket)
class KitchenTicketAdmin(AllTenantsAdminMixin, admin.ModelAdmin):
    list_display = (
        'ticket_number',
        'business_date',
        'table_id',
        'status',
        'priority',
        'elapsed_seconds',
        'is_timer_paused',
        'created_at',
    )
    list_filter = ('status', 'priority', 'business_date')
    search_fields = ('ticket_number', 'order_id', 'table_id')
    readonly_fields = ('elapsed_seconds', 'total_paused_seconds', 'timer_anchor_at', 'source_message_id')
    ordering = ('-created_at',)
    inlines = [KitchenTicketItemInline]


@admin.register(TicketSequence)
class TicketSequenceAdmin(admin.ModelAdmin):
    list_display = ('tenant', 'business_date', 'last_number')
    list_filter = ('tenant',)
    ordering = ('-business_date',)
