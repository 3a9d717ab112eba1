from rest_framework import serializers

from .models import KitchenTicket, KitchenTicketItem, KitchenTicketPriority
from .services.timer_service import format_elapsed


class KitchenTicketItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = KitchenTicketItem
        fields = [
            'id',
            'order_item_id',
            'menu_item_id',
            'name',
            'quantity',
            'status',
            'order_item_status',
            'station',
            'course_number',
            'modifiers',
            'notes',
            'is_allergy',
            'allergy_info',
            'is_rush',
            'elapsed_seconds',
            'recall_count',
            'recall_reason',
            'started_at',
            'ready_at',
            'cancelled_at',
            'created_at',
        ]
        read_only_fields = fields


class KitchenTicketSerializer(serializers.ModelSerializer):
    items = KitchenTicketItemSerializer(many=True, read_only=True)
    priority_label = serializers.SerializerMethodField()
    elapsed_formatted = serializers.SerializerMethodField()
    age_color = serializers.CharField(read_only=True)
    display_color = serializers.CharField(read_only=True)
    total_items = serializers.IntegerField(read_only=True)

    class Meta:
        model = KitchenTicket
        fields = [
            'id',
            'ticket_number',
            'order_id',
            'table_id',
            'table_number',
            'floor_name',
            'status',
            'priority',
            'priority_label',
            'customer_name',
            'order_type',
            'notes',
            'assigned_cook_id',
            'assigned_cook_name',
            'elapsed_seconds',
            'elapsed_formatted',
            'estimated_prep_time',
            'warning_threshold',
            'critical_threshold',
            'age_color',
            'display_color',
            'is_timer_paused',
            'timer_paused_at',
            'total_paused_seconds',
            'items',
            'total_items',
            'created_at',
            'started_at',
            'ready_at',
            'completed_at',
            'cancelled_at',
        ]
        read_only_fields = fields

    def get_priority_label(self, obj):
        return KitchenTicketPriority(obj.priority).name

    def get_elapsed_formatted(self, obj):
        return format_elapsed(obj.elapsed_seconds)


# --- Request serializers ---

class StartTicketSerializer(serializers.Serializer):
    cook_name = serializers.CharField(max_length=100, required=False, allow_null=True, allow_blank=True)


class ItemIdsSerializer(serializers.Serializer):
    item_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)


class ReadyItemsSerializer(serializers.Serializer):
    """Omit ``item_ids`` to mark every preparing item ready."""
    item_ids = serializers.ListField(child=serializers.UUIDField(), required=False)


class RecallItemsSerializer(ItemIdsSerializer):
    # Blank reasons are rejected by the service with a dedicated error code
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class CancelItemsSerializer(ItemIdsSerializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class UpdatePrioritySerializer(serializers.Serializer):
    """Accepts 0-3 or NORMAL / HIGH / URGENT / FIRE."""
    priority = serializers.CharField()
