"""
Request serializers for cart operations.

Carts live in the cache as plain dicts, so responses return the stored
cart as is and only requests need validating here.
"""

from rest_framework import serializers


class CartModifierSerializer(serializers.Serializer):
    modifierGroupId = serializers.CharField(max_length=64)
    modifierOptionId = serializers.CharField(max_length=64)
    name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)


class AddToCartSerializer(serializers.Serializer):
    """Price and name are what the client displayed; checkout re-prices."""
    menu_item_id = serializers.CharField(max_length=64)
    quantity = serializers.IntegerField(default=1)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, default=0)
    name = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    modifiers = CartModifierSerializer(many=True, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class UpdateCartItemSerializer(serializers.Serializer):
    quantity = serializers.IntegerField()
