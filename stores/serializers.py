import re

from rest_framework import serializers

from users.serializers import CoordinatesSerializer
from .models import Store
from .utils import WEEKDAYS

TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')


def validate_operating_hours(value):
    if not isinstance(value, dict):
        raise serializers.ValidationError('Operating hours must be an object keyed by weekday')

    unknown = set(value) - set(WEEKDAYS)
    if unknown:
        raise serializers.ValidationError(f"Unknown weekday(s): {', '.join(sorted(unknown))}")

    for day, hours in value.items():
        if not isinstance(hours, dict):
            raise serializers.ValidationError({day: 'Expected {open, close, is_open}'})
        for key in ('open', 'close'):
            if not TIME_PATTERN.match(str(hours.get(key, ''))):
                raise serializers.ValidationError({day: f'{key} must be a HH:MM time'})
        if hours['open'] > hours['close']:
            raise serializers.ValidationError({day: 'open must not be later than close'})
        hours.setdefault('is_open', True)
    return value


def validate_coordinates(value):
    coordinates = CoordinatesSerializer(data=value)
    if not isinstance(value, dict) or not coordinates.is_valid():
        raise serializers.ValidationError('Valid coordinates {lat, lng} are required')
    return dict(coordinates.validated_data)


class StoreSerializer(serializers.ModelSerializer):
    owner_name = serializers.CharField(source='owner.name', read_only=True)
    is_open = serializers.BooleanField(source='is_open_now', read_only=True)
    distance_km = serializers.SerializerMethodField()

    class Meta:
        model = Store
        fields = [
            'id', 'owner', 'owner_name', 'name', 'description', 'category',
            'address', 'coordinates', 'phone', 'email', 'logo', 'banner',
            'operating_hours', 'is_open', 'delivery_radius', 'minimum_order_amount',
            'delivery_fee', 'average_preparation_time', 'payment_methods',
            'rating', 'total_ratings', 'is_active', 'is_verified', 'distance_km',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_distance_km(self, obj):
        distance = getattr(obj, 'distance_km', None)
        return round(distance, 2) if distance is not None else None


class StoreMinimalSerializer(serializers.ModelSerializer):
    """Minimal serializer for Store (used in nested representations)"""

    class Meta:
        model = Store
        fields = ['id', 'owner', 'name', 'logo', 'phone', 'address', 'coordinates']


class StoreCreateUpdateSerializer(serializers.ModelSerializer):
    name = serializers.CharField(min_length=2, max_length=100)
    coordinates = serializers.JSONField()

    class Meta:
        model = Store
        fields = [
            'name', 'description', 'category', 'address', 'coordinates', 'phone',
            'email', 'operating_hours', 'delivery_radius', 'minimum_order_amount',
            'delivery_fee', 'average_preparation_time', 'payment_methods'
        ]

    def validate_operating_hours(self, value):
        return validate_operating_hours(value)

    def validate_coordinates(self, value):
        return validate_coordinates(value)

    def validate_address(self, value):
        if not isinstance(value, dict) or not value:
            raise serializers.ValidationError('Address is required')
        return value


class OperatingHoursSerializer(serializers.Serializer):
    operating_hours = serializers.JSONField()

    def validate_operating_hours(self, value):
        return validate_operating_hours(value)
