from rest_framework import serializers
from .models import StockTransaction


class StockTransactionSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    store = serializers.IntegerField(source='product.store_id', read_only=True)
    performed_by_name = serializers.CharField(source='performed_by.name', read_only=True, default=None)
    transaction_type_display = serializers.CharField(source='get_transaction_type_display', read_only=True)
    reason_display = serializers.CharField(source='get_reason_display', read_only=True)

    class Meta:
        model = StockTransaction
        fields = [
            'id', 'product', 'product_name', 'product_sku', 'store',
            'transaction_type', 'transaction_type_display',
            'reason', 'reason_display', 'quantity',
            'quantity_before', 'quantity_after',
            'reference_number', 'notes',
            'performed_by', 'performed_by_name', 'created_at'
        ]
        read_only_fields = fields


class StockUpdateSerializer(serializers.Serializer):
    """Manual stock change on a single product"""
    quantity = serializers.IntegerField(min_value=0)
    operation = serializers.ChoiceField(choices=['add', 'subtract', 'set'], default='set')
    notes = serializers.CharField(required=False, allow_blank=True)
