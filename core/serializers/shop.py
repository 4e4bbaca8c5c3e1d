from decimal import Decimal

from rest_framework import serializers

from core.models import Medicine, Order


class CartLineSerializer(serializers.Serializer):
    medicineId = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class MedicineWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    category = serializers.ChoiceField(choices=Medicine.CATEGORY_CHOICES)
    type = serializers.ChoiceField(choices=Medicine.TYPE_CHOICES)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'))
    stockQuantity = serializers.IntegerField(min_value=0)
    description = serializers.CharField(required=False, allow_blank=True)
    dosage = serializers.CharField(max_length=255, required=False, allow_blank=True)
    benefits = serializers.CharField(required=False, allow_blank=True)
    expiryDate = serializers.DateField(required=False, allow_null=True)


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=Order.STATUS_CHOICES,
        error_messages={'invalid_choice': 'Invalid status. Use one of: pending, processing, shipped, delivered, cancelled'},
    )
