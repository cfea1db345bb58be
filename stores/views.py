import logging

from django.utils import timezone
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from delivery.routing import haversine_km
from integrations.cache import get_entity_cache
from integrations.storage import discard_image, save_image
from inventory.serializers import ProductSerializer
from main.filters import parse_location, query_params
from users.permissions import IsOwnerOfStoreOrAdmin, IsStoreOwner, IsStoreOwnerOrAdmin
from .models import Store
from .serializers import OperatingHoursSerializer, StoreCreateUpdateSerializer, StoreSerializer
from .utils import is_open_at

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    'rating': '-rating',
    'name': 'name',
    'newest': '-created_at',
}


def within_radius(stores, origin, radius):
    nearby = []
    for store in stores:
        store.distance_km = haversine_km(origin, store.coordinates)
        if store.distance_km <= radius:
            nearby.append(store)
    return sorted(nearby, key=lambda s: s.distance_km)


class StoreViewSet(viewsets.ModelViewSet):
    """
    Public store browsing plus owner management.

    Deleting a store only deactivates it.
    """
    queryset = Store.objects.select_related('owner').filter(is_active=True)
    filter_backends = [filters.SearchFilter]
    search_fields = ['name', 'description']
    http_method_names = ['get', 'post', 'put', 'patch', 'delete']

    def get_serializer_class(self):
        if self.action in ['create', 'update', 'partial_update']:
            return StoreCreateUpdateSerializer
        return StoreSerializer

    def get_permissions(self):
        if self.action in ['list', 'retrieve', 'nearby']:
            return [AllowAny()]
        if self.action == 'create':
            return [IsAuthenticated(), IsStoreOwner()]
        if self.action == 'my_stores':
            return [IsAuthenticated(), IsStoreOwnerOrAdmin()]
        return [IsAuthenticated(), IsStoreOwnerOrAdmin(), IsOwnerOfStoreOrAdmin()]

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action != 'list':
            return queryset

        params = self.request.query_params

        category = params.get('category')
        if category:
            queryset = queryset.filter(category=category)

        min_rating = query_params(self.request).get('min_rating')
        if min_rating is not None:
            queryset = queryset.filter(rating__gte=min_rating)

        sort = params.get('sort')
        if sort in SORT_FIELDS:
            queryset = queryset.order_by(SORT_FIELDS[sort])

        return queryset

    def list(self, request, *args, **kwargs):
        params = request.query_params
        stores = list(self.filter_queryset(self.get_queryset()))

        if params.get('lat') is not None or params.get('lng') is not None:
            origin, radius = parse_location(params, radius_default=10)
            by_distance = within_radius(stores, origin, radius)
            if params.get('sort') == 'distance':
                stores = by_distance
            else:
                kept = {store.pk for store in by_distance}
                stores = [store for store in stores if store.pk in kept]

        if params.get('is_open') == 'true':
            now = timezone.localtime()
            stores = [store for store in stores if store.is_open_at(now)]

        page = self.paginate_queryset(stores)
        serializer = self.get_serializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request, *args, **kwargs):
        cache = get_entity_cache()
        cached = cache.get_store(kwargs['pk'])
        if cached.hit:
            data, source = cached.value, 'cache'
        else:
            store = self.get_object()
            data, source = StoreSerializer(store).data, 'database'
            cache.cache_store(store.pk, data)

        # Opening state depends on the current time, never on the cached copy
        data['is_open'] = is_open_at(data.get('operating_hours'), timezone.localtime())
        products = ProductSerializer(
            self.get_products(data['id']),
            many=True
        ).data
        return Response({**data, 'products': products, 'source': source})

    def get_products(self, store_id):
        from inventory.models import Product
        return Product.objects.select_related('store').filter(
            store_id=store_id,
            is_active=True,
            is_available=True
        ).order_by('-is_featured', 'name')

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        store = serializer.save(owner=request.user)
        get_entity_cache().cache_store(store.pk, StoreSerializer(store).data)
        logger.info(f"Store {store.name} created by {request.user.email}")
        return Response(StoreSerializer(store).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        store = self.get_object()
        serializer = self.get_serializer(store, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        store = serializer.save()
        get_entity_cache().cache_store(store.pk, StoreSerializer(store).data)
        return Response(StoreSerializer(store).data)

    def destroy(self, request, *args, **kwargs):
        store = self.get_object()
        store.is_active = False
        store.save(update_fields=['is_active', 'updated_at'])
        get_entity_cache().clear_store(store.pk)
        logger.info(f"Store {store.pk} deactivated by {request.user.email}")
        return Response({'message': 'Store deleted successfully'})

    @action(detail=False, methods=['get'])
    def nearby(self, request):
        origin, radius = parse_location(request.query_params, radius_default=5)
        stores = within_radius(self.get_queryset(), origin, radius)
        serializer = StoreSerializer(stores, many=True)
        return Response({'count': len(stores), 'results': serializer.data})

    @action(detail=False, methods=['get'], url_path='my-stores')
    def my_stores(self, request):
        stores = Store.objects.filter(owner=request.user).order_by('-created_at')
        return Response(StoreSerializer(stores, many=True).data)

    @action(detail=True, methods=['put'], url_path='operating-hours')
    def operating_hours(self, request, pk=None):
        store = self.get_object()
        serializer = OperatingHoursSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        store.operating_hours = {**store.operating_hours, **serializer.validated_data['operating_hours']}
        store.save(update_fields=['operating_hours', 'updated_at'])
        get_entity_cache().cache_store(store.pk, StoreSerializer(store).data)
        return Response({
            'message': 'Operating hours updated successfully',
            'operating_hours': store.operating_hours,
            'is_open': store.is_open_now,
        })

    def _upload(self, request, field):
        store = self.get_object()
        upload = request.FILES.get(field)
        if upload is None:
            return Response(
                {'error': f'No {field} file provided'},
                status=status.HTTP_400_BAD_REQUEST
            )
        previous = getattr(store, field)
        setattr(store, field, save_image(upload, f'stores/{store.pk}/{field}'))
        store.save(update_fields=[field, 'updated_at'])
        discard_image(previous)
        get_entity_cache().cache_store(store.pk, StoreSerializer(store).data)
        return Response({'message': f'Store {field} updated successfully', field: getattr(store, field)})

    @action(detail=True, methods=['post'], parser_classes=[MultiPartParser, FormParser, JSONParser])
    def logo(self, request, pk=None):
        return self._upload(request, 'logo')

    @action(detail=True, methods=['post'], parser_classes=[MultiPartParser, FormParser, JSONParser])
    def banner(self, request, pk=None):
        return self._upload(request, 'banner')
