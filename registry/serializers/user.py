from rest_framework import serializers

from registry.models import User
from registry.serializers.donation import clean_text


class UserSerializer(serializers.Serializer):
    address = serializers.CharField(max_length=42)
    name = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    email = serializers.EmailField(required=False, allow_blank=True, default='')
    role = serializers.ChoiceField(choices=[c for c, _ in User.ROLE_CHOICES], required=False, default='DONOR')

    def validate_name(self, v):
        return clean_text(v)


class UserLookupSerializer(serializers.Serializer):
    address = serializers.CharField(max_length=42, required=False)
