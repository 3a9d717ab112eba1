from rest_framework import serializers

from .models import Order, OrderItem, OrderItemModifier


class OrderItemModifierSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItemModifier
        fields = [
            "modifier_group_id",
            "modifier_group_name",
            "modifier_option_id",
            "option_name",
            "price",
            "currency",
        ]


class OrderItemSerializer(serializers.ModelSerializer):
    modifiers = OrderItemModifierSerializer(many=True, read_only=True)
    order_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "order_id",
            "menu_item_id",
            "name",
            "description",
            "unit_price",
            "quantity",
            "subtotal",
            "modifiers_total",
            "total",
            "currency",
            "status",
            "modifiers",
            "notes",
            "rejection_reason",
            "accepted_at",
            "preparing_at",
            "ready_at",
            "served_at",
            "cancelled_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    total_items = serializers.IntegerField(read_only=True)
    is_payment_ready = serializers.BooleanField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "table_id",
            "customer_id",
            "customer_name",
            "waiter_id",
            "order_type",
            "status",
            "payment_status",
            "payment_method",
            "payment_transaction_id",
            "subtotal",
            "tax",
            "discount",
            "total",
            "currency",
            "notes",
            "cancellation_reason",
            "items",
            "total_items",
            "is_payment_ready",
            "created_at",
            "updated_at",
            "completed_at",
            "cancelled_at",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Order summary without items, for list endpoints."""

    class Meta:
        model = Order
        fields = [
            "id",
            "table_id",
            "customer_name",
            "order_type",
            "status",
            "payment_status",
            "total",
            "currency",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


# --- Request serializers ---

class CheckoutSerializer(serializers.Serializer):
    table_id = serializers.CharField(max_length=64)
    customer_id = serializers.CharField(max_length=64, required=False, allow_null=True, allow_blank=True)
    customer_name = serializers.CharField(max_length=100, required=False, allow_null=True, allow_blank=True)
    order_type = serializers.ChoiceField(choices=Order.OrderType.choices, required=False)
    notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class ItemIdsSerializer(serializers.Serializer):
    item_ids = serializers.ListField(child=serializers.UUIDField(), allow_empty=False)


class RejectItemsSerializer(ItemIdsSerializer):
    reason = serializers.CharField()


class UpdateItemsStatusSerializer(ItemIdsSerializer):
    status = serializers.ChoiceField(choices=OrderItem.ItemStatus.choices)


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class UpdatePaymentStatusSerializer(serializers.Serializer):
    payment_status = serializers.ChoiceField(choices=Order.PaymentStatus.choices)
    payment_method = serializers.CharField(max_length=50, required=False, allow_null=True, allow_blank=True)
    payment_transaction_id = serializers.CharField(max_length=255, required=False, allow_null=True, allow_blank=True)
