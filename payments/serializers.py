from rest_framework import serializers
from orders.models import Order


class CreatePaymentOrderSerializer(serializers.Serializer):
    order_id = serializers.IntegerField(min_value=1)
    currency = serializers.ChoiceField(choices=['INR'], default='INR')


class VerifyPaymentSerializer(serializers.Serializer):
    razorpay_order_id = serializers.CharField()
    razorpay_payment_id = serializers.CharField()
    razorpay_signature = serializers.CharField()


class RefundSerializer(serializers.Serializer):
    order_id = serializers.IntegerField(min_value=1)
    reason = serializers.CharField(max_length=500)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=1, required=False)


class PaymentHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Order
        fields = [
            'id', 'order_number', 'total', 'status', 'payment_status', 'payment_id', 'payment_method',
            'paid_at', 'refund_id', 'refund_amount', 'refunded_at', 'created_at'
        ]
        read_only_fields = fields
