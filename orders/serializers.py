from rest_framework import serializers
from stores.serializers import StoreMinimalSerializer
from users.serializers import CoordinatesSerializer, UserMinimalSerializer
from .models import Order


class OrderSerializer(serializers.ModelSerializer):
    customer = UserMinimalSerializer(read_only=True)
    store = StoreMinimalSerializer(read_only=True)
    delivery_partner = UserMinimalSerializer(read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'customer', 'store', 'delivery_partner', 'items',
            'subtotal', 'tax', 'delivery_fee', 'discount', 'total', 'status', 'status_display',
            'payment_status', 'payment_method', 'payment_id', 'paid_at', 'delivery_address',
            'delivery_instructions', 'estimated_delivery_time', 'actual_delivery_time',
            'rating', 'review', 'cancellation_reason', 'refund_amount', 'refunded_at',
            'is_scheduled', 'scheduled_time', 'notes', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class OrderTrackingSerializer(serializers.ModelSerializer):
    """Public view of an order, looked up by its order number"""
    store = StoreMinimalSerializer(read_only=True)
    delivery_partner = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Order
        fields = [
            'order_number', 'store', 'delivery_partner', 'status', 'payment_status',
            'estimated_delivery_time', 'actual_delivery_time', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class OrderItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)


class DeliveryAddressSerializer(serializers.Serializer):
    street = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100, required=False, allow_blank=True)
    pincode = serializers.RegexField(r'^\d{6}$', error_messages={'invalid': 'Enter a valid 6-digit pincode'})
    landmark = serializers.CharField(max_length=255, required=False, allow_blank=True)
    coordinates = CoordinatesSerializer(required=False)


class OrderCreateSerializer(serializers.Serializer):
    store_id = serializers.IntegerField(min_value=1)
    items = OrderItemInputSerializer(many=True, allow_empty=False)
    delivery_address = DeliveryAddressSerializer()
    delivery_instructions = serializers.CharField(max_length=500, required=False, allow_blank=True)
    payment_method = serializers.ChoiceField(choices=Order.PaymentMethod.choices)
    is_scheduled = serializers.BooleanField(required=False, default=False)
    scheduled_time = serializers.DateTimeField(required=False, allow_null=True)
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True)

    def validate(self, data):
        if data.get('is_scheduled') and not data.get('scheduled_time'):
            raise serializers.ValidationError({'scheduled_time': 'Scheduled orders need a scheduled time'})
        if not data.get('is_scheduled'):
            data['scheduled_time'] = None
        return data


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[
        Order.Status.CONFIRMED, Order.Status.PREPARING, Order.Status.READY_FOR_PICKUP,
        Order.Status.OUT_FOR_DELIVERY, Order.Status.DELIVERED, Order.Status.CANCELLED,
    ])
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True)


class AssignDeliverySerializer(serializers.Serializer):
    delivery_partner_id = serializers.IntegerField(min_value=1)


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(min_length=10, max_length=500)


class RateOrderSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
    review = serializers.CharField(max_length=500, required=False, allow_blank=True)
