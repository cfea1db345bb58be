import logging

from django.db import transaction
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404
from rest_framework import generics, status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from integrations.cache import get_entity_cache
from integrations.storage import save_image
from main.filters import query_params
from main.pagination import paginate
from stock.serializers import StockUpdateSerializer
from stock.services import add_stock, remove_stock, set_stock
from stock.models import StockTransaction
from users.permissions import IsStoreOwnerOrAdmin
from .models import Category, Product, ProductCategory
from .serializers import (
    CategorySerializer, ProductCreateUpdateSerializer, ProductRatingSerializer, ProductSerializer
)
from .utils import cache_product, evict_product

logger = logging.getLogger(__name__)

MAX_PRODUCT_IMAGES = 5

SORT_FIELDS = {
    'name': 'name',
    'price_low': 'price',
    'price_high': '-price',
    'rating': '-rating',
    'popular': '-total_sold',
    'newest': '-created_at',
}


def ensure_store_owner(user, store):
    if not user.is_admin and store.owner_id != user.id:
        raise PermissionDenied('You can only manage products of your own stores')


# Product Views
class ProductListCreateView(generics.ListCreateAPIView):
    """List products (public) or create a product (store owners)"""
    queryset = Product.objects.select_related('store').filter(is_active=True, store__is_active=True)

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return ProductCreateUpdateSerializer
        return ProductSerializer

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsAuthenticated(), IsStoreOwnerOrAdmin()]
        return [AllowAny()]

    def get_queryset(self):
        queryset = super().get_queryset()
        params = self.request.query_params
        filters = query_params(self.request)

        category = params.get('category')
        if category:
            queryset = queryset.filter(category=category)

        if 'store' in filters:
            queryset = queryset.filter(store_id=filters['store'])

        search = params.get('search')
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(description__icontains=search) |
                Q(brand__icontains=search)
            )

        if 'min_price' in filters:
            queryset = queryset.filter(price__gte=filters['min_price'])

        if 'max_price' in filters:
            queryset = queryset.filter(price__lte=filters['max_price'])

        if params.get('in_stock') == 'true':
            queryset = queryset.filter(is_available=True)

        if params.get('featured') == 'true':
            queryset = queryset.filter(is_featured=True)

        sort = params.get('sort')
        if sort in SORT_FIELDS:
            queryset = queryset.order_by(SORT_FIELDS[sort])

        return queryset

    def list(self, request, *args, **kwargs):
        filters = set(request.query_params) - {'page', 'limit'}
        category = request.query_params.get('category')
        if filters != {'category'} or not category:
            return super().list(request, *args, **kwargs)

        # Category-only listings are served from the cache when possible
        cache = get_entity_cache()
        cached = cache.get_products_by_category(category)
        if cached.hit:
            data, source = cached.value, 'cache'
        else:
            data = ProductSerializer(self.get_queryset(), many=True).data
            cache.cache_products_by_category(category, data)
            source = 'database'

        page = self.paginate_queryset(data)
        response = self.get_paginated_response(page)
        response.data['source'] = source
        return response

    def perform_create(self, serializer):
        ensure_store_owner(self.request.user, serializer.validated_data['store'])
        with transaction.atomic():
            product = serializer.save()
        cache_product(product)
        logger.info(f"Product {product.sku} created in store {product.store_id}")

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.perform_create(serializer)
        return Response(ProductSerializer(serializer.instance).data, status=status.HTTP_201_CREATED)


class ProductDetailView(generics.RetrieveUpdateDestroyAPIView):
    """Retrieve (public, cache-aside), update or deactivate a product"""
    queryset = Product.objects.select_related('store').filter(is_active=True)
    http_method_names = ['get', 'put', 'patch', 'delete']

    def get_serializer_class(self):
        if self.request.method in ['PUT', 'PATCH']:
            return ProductCreateUpdateSerializer
        return ProductSerializer

    def get_permissions(self):
        if self.request.method == 'GET':
            return [AllowAny()]
        return [IsAuthenticated(), IsStoreOwnerOrAdmin()]

    def retrieve(self, request, *args, **kwargs):
        cache = get_entity_cache()
        cached = cache.get_product(kwargs['pk'])
        if cached.hit:
            return Response({**cached.value, 'source': 'cache'})

        product = self.get_object()
        data = ProductSerializer(product).data
        cache.cache_product(product.pk, data, category=product.category)
        return Response({**data, 'source': 'database'})

    def update(self, request, *args, **kwargs):
        product = self.get_object()
        ensure_store_owner(request.user, product.store)
        previous_category = product.category

        serializer = self.get_serializer(product, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        if 'store' in serializer.validated_data:
            ensure_store_owner(request.user, serializer.validated_data['store'])

        with transaction.atomic():
            product = serializer.save()
        evict_product(product, previous_category)
        cache_product(product)
        return Response(ProductSerializer(product).data)

    def destroy(self, request, *args, **kwargs):
        product = self.get_object()
        ensure_store_owner(request.user, product.store)
        product.is_active = False
        product.save(update_fields=['is_active', 'updated_at'])
        evict_product(product)
        return Response({'message': 'Product deleted successfully'})


@api_view(['GET'])
@permission_classes([AllowAny])
def product_search(request):
    query = request.query_params.get('q', '').strip()
    if not query:
        return Response(
            {'error': 'Search query is required'},
            status=status.HTTP_400_BAD_REQUEST
        )

    queryset = Product.objects.select_related('store').filter(
        Q(name__icontains=query) |
        Q(description__icontains=query) |
        Q(brand__icontains=query) |
        Q(subcategory__icontains=query),
        is_active=True,
        is_available=True,
        store__is_active=True,
    )

    category = request.query_params.get('category')
    if category:
        queryset = queryset.filter(category=category)

    return paginate(request, queryset.order_by('-rating', 'name'), ProductSerializer)


@api_view(['GET'])
@permission_classes([AllowAny])
def featured_products(request):
    limit = min(query_params(request).get('limit', 10), 50)
    queryset = Product.objects.select_related('store').filter(
        is_featured=True,
        is_active=True,
        is_available=True,
        store__is_active=True,
    ).order_by('-rating', '-total_sold')[:limit]
    return Response(ProductSerializer(queryset, many=True).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def product_categories(request):
    """Every product category with the number of available products in it"""
    counts = dict(
        Product.objects.filter(is_active=True, is_available=True, store__is_active=True)
        .order_by()
        .values_list('category')
        .annotate(count=Count('id'))
    )
    categories = {category.slug: category for category in Category.objects.filter(is_active=True)}

    results = []
    for slug, label in ProductCategory.choices:
        category = categories.get(slug)
        if category is None:
            category = Category(slug=slug, name=label)
        category.product_count = counts.get(slug, 0)
        results.append(category)

    results.sort(key=lambda c: (c.sort_order, c.name))
    return Response(CategorySerializer(results, many=True).data)


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsStoreOwnerOrAdmin])
def update_product_stock(request, pk):
    """Add to, subtract from, or set a product's stock quantity"""
    product = get_object_or_404(Product.objects.select_related('store'), pk=pk, is_active=True)
    ensure_store_owner(request.user, product.store)

    serializer = StockUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    quantity = serializer.validated_data['quantity']
    operation = serializer.validated_data['operation']
    notes = serializer.validated_data.get('notes')

    with transaction.atomic():
        if operation == 'add':
            product = add_stock(product, quantity, user=request.user, notes=notes)
        elif operation == 'subtract':
            product = remove_stock(
                product, quantity, reason=StockTransaction.Reason.MANUAL,
                user=request.user, clamp=True, notes=notes
            )
        else:
            product = set_stock(product, quantity, user=request.user, notes=notes)

    evict_product(product)
    cache_product(product)
    return Response({
        'message': 'Stock updated successfully',
        'product': ProductSerializer(product).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def rate_product(request, pk):
    get_object_or_404(Product, pk=pk, is_active=True)
    serializer = ProductRatingSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    with transaction.atomic():
        product = Product.objects.select_for_update().get(pk=pk)
        product.add_rating(serializer.validated_data['rating'])
    cache_product(product)
    return Response({
        'message': 'Product rated successfully',
        'rating': product.rating,
        'total_ratings': product.total_ratings,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsStoreOwnerOrAdmin])
@parser_classes([MultiPartParser, FormParser])
def upload_product_images(request, pk):
    product = get_object_or_404(Product.objects.select_related('store'), pk=pk, is_active=True)
    ensure_store_owner(request.user, product.store)

    files = request.FILES.getlist('images')
    if not files:
        return Response(
            {'error': 'No images provided'},
            status=status.HTTP_400_BAD_REQUEST
        )
    if len(files) > MAX_PRODUCT_IMAGES:
        return Response(
            {'error': f'A maximum of {MAX_PRODUCT_IMAGES} images can be uploaded at once'},
            status=status.HTTP_400_BAD_REQUEST
        )

    urls = [save_image(image, f'products/{product.pk}') for image in files]
    product.images = list(product.images or []) + urls
    if not product.thumbnail:
        product.thumbnail = urls[0]
    product.save(update_fields=['images', 'thumbnail', 'updated_at'])
    cache_product(product)

    return Response({
        'message': 'Images uploaded successfully',
        'images': product.images,
    })
