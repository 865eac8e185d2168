from rest_framework import serializers

from registry.models import BLOOD_TYPES, InventoryUnit


class InventoryCreateSerializer(serializers.Serializer):
    bloodType = serializers.ChoiceField(choices=BLOOD_TYPES)
    quantity = serializers.IntegerField(min_value=1)
    donationId = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class InventoryUpdateSerializer(serializers.Serializer):
    id = serializers.IntegerField(min_value=1)
    status = serializers.ChoiceField(choices=[c for c, _ in InventoryUnit.STATUS_CHOICES])
    requestId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
