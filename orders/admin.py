from django.contrib import admin
from .models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_number', 'customer', 'store', 'status', 'payment_status', 'total', 'created_at']
    list_filter = ['status', 'payment_status', 'payment_method', 'created_at']
    search_fields = ['order_number', 'customer__email', 'store__name']
    readonly_fields = ['order_number', 'items', 'subtotal', 'tax', 'delivery_fee', 'discount', 'total',
                       'created_at', 'updated_at']
    raw_id_fields = ['customer', 'store', 'delivery_partner']
    date_hierarchy = 'created_at'
