from django.contrib import admin
from .models import Store


@admin.register(Store)
class StoreAdmin(admin.ModelAdmin):
    list_display = ['name', 'owner', 'category', 'rating', 'delivery_fee', 'is_verified', 'is_active', 'created_at']
    list_filter = ['category', 'is_active', 'is_verified', 'created_at']
    search_fields = ['name', 'phone', 'email', 'owner__email']
    readonly_fields = ['rating', 'total_ratings', 'created_at', 'updated_at']
    raw_id_fields = ['owner']
