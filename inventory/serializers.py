from rest_framework import serializers
from stock.services import add_stock, set_stock
from stores.models import Store
from .models import Category, Product


class CategorySerializer(serializers.ModelSerializer):
    product_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Category
        fields = ['id', 'slug', 'name', 'description', 'image_url', 'parent', 'sort_order', 'product_count']
        read_only_fields = fields


class ProductSerializer(serializers.ModelSerializer):
    store_name = serializers.CharField(source='store.name', read_only=True)
    category_display = serializers.CharField(source='get_category_display', read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)
    discounted_price = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'store', 'store_name', 'name', 'description', 'category', 'category_display',
            'subcategory', 'brand', 'sku', 'barcode', 'price', 'original_price',
            'discount_percentage', 'discounted_price', 'unit', 'weight', 'images', 'thumbnail',
            'stock_quantity', 'min_stock_level', 'is_available', 'is_low_stock', 'is_featured',
            'is_active', 'rating', 'total_ratings', 'total_sold', 'tags', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class ProductCreateUpdateSerializer(serializers.ModelSerializer):
    store = serializers.PrimaryKeyRelatedField(queryset=Store.objects.filter(is_active=True))
    name = serializers.CharField(min_length=2, max_length=200)

    class Meta:
        model = Product
        fields = [
            'store', 'name', 'description', 'category', 'subcategory', 'brand', 'sku',
            'barcode', 'price', 'original_price', 'discount_percentage', 'unit', 'weight',
            'thumbnail', 'stock_quantity', 'min_stock_level', 'is_featured', 'tags'
        ]

    def validate_tags(self, value):
        if not isinstance(value, list) or not all(isinstance(tag, str) for tag in value):
            raise serializers.ValidationError('Tags must be a list of strings')
        return value

    def validate(self, data):
        price = data.get('price', getattr(self.instance, 'price', None))
        original_price = data.get('original_price', getattr(self.instance, 'original_price', None))
        if original_price is not None and price is not None and original_price < price:
            raise serializers.ValidationError({'original_price': 'Original price cannot be lower than price'})
        return data

    def _user(self):
        request = self.context.get('request')
        return getattr(request, 'user', None)

    def create(self, validated_data):
        stock_quantity = validated_data.pop('stock_quantity', 0)
        product = super().create(validated_data)
        if stock_quantity:
            product = add_stock(product, stock_quantity, user=self._user(), notes='Initial stock')
        return product

    def update(self, instance, validated_data):
        stock_quantity = validated_data.pop('stock_quantity', None)
        product = super().update(instance, validated_data)
        if stock_quantity is not None and stock_quantity != product.stock_quantity:
            product = set_stock(product, stock_quantity, user=self._user(), notes='Product update')
        return product


class ProductRatingSerializer(serializers.Serializer):
    rating = serializers.IntegerField(min_value=1, max_value=5)
