from django.contrib import admin
from .models import Category, Product


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'parent', 'sort_order', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name', 'slug']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['sku', 'name', 'store', 'category', 'price', 'stock_quantity',
                    'min_stock_level', 'is_available', 'is_featured', 'is_active']
    list_filter = ['category', 'is_available', 'is_featured', 'is_active', 'unit']
    search_fields = ['sku', 'name', 'barcode', 'brand']
    readonly_fields = ['stock_quantity', 'is_available', 'total_sold', 'rating', 'total_ratings',
                       'created_at', 'updated_at']
    raw_id_fields = ['store']
