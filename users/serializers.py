from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers
from .models import User, phone_validator


class CoordinatesSerializer(serializers.Serializer):
    """A {lat, lng} pair in decimal degrees."""
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)


class UserSerializer(serializers.ModelSerializer):
    """Serializer for User model"""

    class Meta:
        model = User
        fields = [
            'id', 'name', 'email', 'phone', 'role', 'address', 'avatar',
            'preferences', 'is_active', 'is_verified', 'date_joined', 'last_login'
        ]
        read_only_fields = fields


class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for User (used in nested representations)"""

    class Meta:
        model = User
        fields = ['id', 'name', 'phone']


class RegisterSerializer(serializers.ModelSerializer):
    """Serializer for self-service registration"""
    name = serializers.CharField(min_length=2, max_length=50)
    phone = serializers.CharField(validators=[phone_validator])
    password = serializers.CharField(write_only=True, min_length=6)
    role = serializers.ChoiceField(
        choices=[
            User.Role.CUSTOMER,
            User.Role.STORE_OWNER,
            User.Role.DELIVERY_PARTNER,
        ],
        default=User.Role.CUSTOMER
    )

    class Meta:
        model = User
        fields = ['name', 'email', 'phone', 'password', 'role', 'address']

    def validate_email(self, value):
        value = value.lower()
        if User.objects.filter(email=value).exists():
            raise serializers.ValidationError('User with this email already exists')
        return value

    def validate_phone(self, value):
        if User.objects.filter(phone=value).exists():
            raise serializers.ValidationError('User with this phone number already exists')
        return value

    def create(self, validated_data):
        password = validated_data.pop('password')
        return User.objects.create_user(password=password, **validated_data)


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField()


class ProfileUpdateSerializer(serializers.ModelSerializer):
    """Serializer for a user updating their own profile"""
    name = serializers.CharField(min_length=2, max_length=50, required=False)

    class Meta:
        model = User
        fields = ['name', 'phone', 'address', 'preferences']

    def validate_phone(self, value):
        if value and User.objects.filter(phone=value).exclude(pk=self.instance.pk).exists():
            raise serializers.ValidationError('User with this phone number already exists')
        return value

    def update(self, instance, validated_data):
        preferences = validated_data.pop('preferences', None)
        if preferences is not None:
            instance.preferences = {**(instance.preferences or {}), **preferences}
        return super().update(instance, validated_data)


class UserAdminUpdateSerializer(serializers.ModelSerializer):
    """Serializer for admins updating any account"""

    class Meta:
        model = User
        fields = ['name', 'phone', 'role', 'is_active', 'is_verified', 'address']


class ChangePasswordSerializer(serializers.Serializer):
    """Serializer for password change"""
    current_password = serializers.CharField(required=True)
    new_password = serializers.CharField(required=True, min_length=6)


class ForgotPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()


class ResetPasswordSerializer(serializers.Serializer):
    token = serializers.CharField()
    password = serializers.CharField(min_length=6)

    def validate_password(self, value):
        validate_password(value)
        return value


class DeliveryPartnerSerializer(serializers.ModelSerializer):
    distance_km = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'name', 'phone', 'email', 'current_location', 'distance_km']

    def get_distance_km(self, obj):
        distance = getattr(obj, 'distance_km', None)
        return round(distance, 2) if distance is not None else None
