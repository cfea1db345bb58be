from rest_framework import serializers
from users.serializers import CoordinatesSerializer


class AcceptOrderSerializer(serializers.Serializer):
    order_id = serializers.IntegerField(min_value=1)
    current_location = CoordinatesSerializer()


class UpdateLocationSerializer(CoordinatesSerializer):
    order_id = serializers.IntegerField(min_value=1, required=False)


class DeliveryActionSerializer(serializers.Serializer):
    order_id = serializers.IntegerField(min_value=1)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True)
    signature = serializers.CharField(required=False, allow_blank=True)
