from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User


class UserSerializer(serializers.ModelSerializer):
    """Basic customer serializer for profile display."""

    class Meta:
        model = User
        fields = [
            'id',
            'phone',
            'display_name',
            'email',
            'created_at',
            'last_login',
        ]
        read_only_fields = ['id', 'phone', 'created_at', 'last_login']


class UserRegistrationSerializer(serializers.Serializer):
    """Input serializer for customer registration."""

    phone = serializers.RegexField(
        regex=r'^\+?[\d\s-]{6,20}$',
        max_length=20,
        required=True,
        error_messages={'invalid': 'Enter a valid phone number.'},
    )
    password = serializers.CharField(
        write_only=True,
        required=True,
        validators=[validate_password],
        style={'input_type': 'password'}
    )
    password_confirm = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )
    display_name = serializers.CharField(max_length=100, required=False, allow_blank=True)

    def validate(self, attrs):
        """Validate password confirmation."""
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({
                'password_confirm': 'Passwords do not match'
            })
        return attrs


class UserLoginSerializer(serializers.Serializer):
    """Serializer for customer login."""

    phone = serializers.CharField(max_length=20, required=True)
    password = serializers.CharField(
        required=True,
        write_only=True,
        style={'input_type': 'password'}
    )
