from rest_framework import serializers

from .models import OrderNotification


class OrderNotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderNotification
        fields = [
            'id',
            'order_id',
            'table_id',
            'notification_type',
            'status',
            'priority',
            'item_ids',
            'message',
            'metadata',
            'read_at',
            'archived_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields
