import logging

from django.shortcuts import get_object_or_404
from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from integrations.cache import get_entity_cache
from main.filters import query_params
from users.permissions import IsCustomer, IsStoreOwnerOrAdmin
from .models import Order
from .serializers import (
    AssignDeliverySerializer, CancelOrderSerializer, OrderCreateSerializer, OrderSerializer,
    OrderStatusSerializer, OrderTrackingSerializer, RateOrderSerializer
)
from .services import assign_delivery_partner, cancel_order, change_status, place_order, rate_order
from .utils import cache_order, order_participant_ids

logger = logging.getLogger(__name__)


def orders_visible_to(user):
    """Orders a user may see: their own, their stores', their deliveries, or all for admins"""
    queryset = Order.objects.select_related('customer', 'store', 'delivery_partner')
    if user.is_admin:
        return queryset
    if user.is_store_owner:
        return queryset.filter(store__owner=user)
    if user.is_delivery_partner:
        return queryset.filter(delivery_partner=user)
    return queryset.filter(customer=user)


def get_order(pk):
    return get_object_or_404(Order.objects.select_related('customer', 'store', 'delivery_partner'), pk=pk)


# Order Views
class OrderListCreateView(generics.ListCreateAPIView):
    """List orders for the current user or place a new order (customers)"""
    serializer_class = OrderSerializer

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsAuthenticated(), IsCustomer()]
        return [IsAuthenticated()]

    def get_queryset(self):
        queryset = orders_visible_to(self.request.user)
        params = self.request.query_params

        order_status = params.get('status')
        if order_status:
            queryset = queryset.filter(status=order_status)

        filters = query_params(self.request)
        if 'store' in filters:
            queryset = queryset.filter(store_id=filters['store'])

        if 'customer' in filters and self.request.user.is_admin:
            queryset = queryset.filter(customer_id=filters['customer'])

        if 'start_date' in filters:
            queryset = queryset.filter(created_at__date__gte=filters['start_date'])
        if 'end_date' in filters:
            queryset = queryset.filter(created_at__date__lte=filters['end_date'])

        return queryset

    def create(self, request, *args, **kwargs):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order = place_order(
            customer=request.user,
            store_id=data['store_id'],
            items=data['items'],
            delivery_address=data['delivery_address'],
            payment_method=data['payment_method'],
            delivery_instructions=data.get('delivery_instructions'),
            is_scheduled=data.get('is_scheduled', False),
            scheduled_time=data.get('scheduled_time'),
            notes=data.get('notes'),
        )
        return Response(
            {'message': 'Order created successfully', 'order': OrderSerializer(order).data},
            status=status.HTTP_201_CREATED
        )


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_detail(request, pk):
    """Order details for its customer, store owner, delivery partner or an admin"""
    cache = get_entity_cache()
    cached = cache.get_order(pk)
    if cached.hit:
        data, source = cached.value, 'cache'
    else:
        data, source = cache_order(get_order(pk)), 'database'

    if not request.user.is_admin and request.user.id not in order_participant_ids(data):
        raise PermissionDenied('Access denied')

    return Response({**data, 'source': source})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_order_status(request, pk):
    order = get_order(pk)
    serializer = OrderStatusSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = change_status(
        order,
        serializer.validated_data['status'],
        request.user,
        notes=serializer.validated_data.get('notes')
    )
    return Response({
        'message': 'Order status updated successfully',
        'order': OrderSerializer(order).data,
    })


@api_view(['PUT'])
@permission_classes([IsAuthenticated, IsStoreOwnerOrAdmin])
def assign_delivery(request, pk):
    order = get_order(pk)
    serializer = AssignDeliverySerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = assign_delivery_partner(order, serializer.validated_data['delivery_partner_id'], request.user)
    return Response({
        'message': 'Delivery partner assigned successfully',
        'order': OrderSerializer(order).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel(request, pk):
    order = get_order(pk)
    serializer = CancelOrderSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = cancel_order(order, request.user, serializer.validated_data['reason'])
    return Response({
        'message': 'Order cancelled successfully',
        'order': OrderSerializer(order).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCustomer])
def rate(request, pk):
    order = get_order(pk)
    serializer = RateOrderSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = rate_order(
        order,
        request.user,
        serializer.validated_data['rating'],
        review=serializer.validated_data.get('review')
    )
    return Response({
        'message': 'Order rated successfully',
        'order': OrderSerializer(order).data,
    })


@api_view(['GET'])
@permission_classes([AllowAny])
def track_order(request, order_number):
    order = get_object_or_404(
        Order.objects.select_related('store', 'delivery_partner'),
        order_number=order_number
    )
    return Response(OrderTrackingSerializer(order).data)
