from rest_framework import serializers

from registry.models import BLOOD_TYPES, BloodRequest
from registry.serializers.donation import clean_text


class BloodRequestCreateSerializer(serializers.Serializer):
    transactionHash = serializers.CharField(max_length=66)
    requesterAddress = serializers.CharField(max_length=42)
    bloodType = serializers.ChoiceField(choices=BLOOD_TYPES)
    quantity = serializers.IntegerField(min_value=1)
    recipientName = serializers.CharField(max_length=255)
    age = serializers.IntegerField(min_value=0, max_value=120)
    contact = serializers.CharField(min_length=10, max_length=32)
    hospital = serializers.CharField(max_length=255)
    reason = serializers.CharField(max_length=2000)

    def validate_recipientName(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Please enter recipient name')
        return v

    def validate_hospital(self, v):
        return clean_text(v)

    def validate_reason(self, v):
        return clean_text(v)


class BloodRequestListQuerySerializer(serializers.Serializer):
    requesterAddress = serializers.CharField(max_length=42, required=False)
    status = serializers.ChoiceField(choices=[c for c, _ in BloodRequest.STATUS_CHOICES], required=False)


class BloodRequestUpdateSerializer(serializers.Serializer):
    id = serializers.IntegerField(min_value=1)
    status = serializers.ChoiceField(choices=[c for c, _ in BloodRequest.STATUS_CHOICES])
    fulfilledBy = serializers.CharField(max_length=42, required=False, allow_null=True, allow_blank=True)


class BloodRequestFormSerializer(serializers.Serializer):
    """Fields submitted with a ``requestBlood`` transaction; ``units`` are whole donations."""
    bloodType = serializers.ChoiceField(choices=BLOOD_TYPES, error_messages={'invalid_choice': 'Please select a blood type'})
    units = serializers.IntegerField(min_value=1, error_messages={'min_value': 'Please enter a valid number of units'})
    recipientName = serializers.CharField(max_length=255, error_messages={'blank': 'Please enter recipient name'})
    age = serializers.IntegerField(
        min_value=0, max_value=120,
        error_messages={'min_value': 'Please enter a valid age', 'max_value': 'Please enter a valid age'},
    )
    contact = serializers.CharField(min_length=10, max_length=32, error_messages={'min_length': 'Please enter a valid contact number'})
    hospital = serializers.CharField(max_length=255, error_messages={'blank': 'Please enter hospital name'})
    reason = serializers.CharField(max_length=2000, error_messages={'blank': 'Please enter reason for request'})
