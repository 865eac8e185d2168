import bleach
from rest_framework import serializers

from registry.models import BLOOD_TYPES, Donation

# Fixed volume of a single donation, in ml
DONATION_AMOUNT = 450


def clean_text(v):
    return bleach.clean((v or '').strip(), strip=True)


class DonationCreateSerializer(serializers.Serializer):
    transactionHash = serializers.CharField(max_length=66)
    donorAddress = serializers.CharField(max_length=42)
    bloodType = serializers.ChoiceField(choices=BLOOD_TYPES)
    quantity = serializers.IntegerField(min_value=1, required=False, default=DONATION_AMOUNT)
    donorName = serializers.CharField(max_length=255)
    age = serializers.IntegerField(min_value=17, max_value=70)
    contact = serializers.CharField(min_length=10, max_length=32)

    def validate_donorName(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Please enter your name')
        return v

    def validate_contact(self, v):
        return clean_text(v)


class DonationListQuerySerializer(serializers.Serializer):
    donorAddress = serializers.CharField(max_length=42, required=False)
    status = serializers.ChoiceField(choices=[c for c, _ in Donation.STATUS_CHOICES], required=False)


class DonationUpdateSerializer(serializers.Serializer):
    id = serializers.IntegerField(min_value=1)
    status = serializers.ChoiceField(choices=[c for c, _ in Donation.STATUS_CHOICES])


class RecordIdQuerySerializer(serializers.Serializer):
    id = serializers.IntegerField(min_value=1)


class DonationFormSerializer(serializers.Serializer):
    """Fields a donor submits before the ``donate`` transaction is sent."""
    bloodType = serializers.ChoiceField(choices=BLOOD_TYPES, error_messages={'invalid_choice': 'Please select a blood type'})
    donorName = serializers.CharField(max_length=255, error_messages={'blank': 'Please enter your name'})
    age = serializers.IntegerField(
        min_value=17, max_value=70,
        error_messages={
            'min_value': 'Donor must be between 17 and 70 years old',
            'max_value': 'Donor must be between 17 and 70 years old',
        },
    )
    contact = serializers.CharField(min_length=10, max_length=32, error_messages={'min_length': 'Please enter a valid contact number'})

    def validate_donorName(self, v):
        return clean_text(v)
