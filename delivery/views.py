from collections import defaultdict
from datetime import datetime, time, timedelta
from decimal import Decimal

from django.conf import settings
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from main.filters import parse_location, query_params
from main.pagination import paginate
from orders.lifecycle import ACTIVE_DELIVERY_STATUSES
from orders.models import Order
from orders.serializers import OrderSerializer
from orders.services import accept_delivery, change_status
from users.permissions import IsDeliveryPartner
from .routing import (
    RoutePoint, estimated_minutes, has_coordinates, haversine_km, nearest_neighbor_route, route_length_km
)
from .serializers import AcceptOrderSerializer, DeliveryActionSerializer, UpdateLocationSerializer


def assigned_order(order_id, user):
    order = get_object_or_404(Order.objects.select_related('store', 'customer'), pk=order_id)
    if order.delivery_partner_id != user.id:
        raise PermissionDenied('Access denied. This order is not assigned to you')
    return order


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDeliveryPartner])
def available_orders(request):
    """Unassigned orders ready for pickup near the delivery partner"""
    origin, radius = parse_location(request.query_params, radius_default=10)
    limit = min(query_params(request).get('limit', 20), 100)

    orders = Order.objects.select_related('store', 'customer').filter(
        status=Order.Status.READY_FOR_PICKUP,
        delivery_partner__isnull=True
    ).order_by('created_at')

    results = []
    for order in orders:
        if not has_coordinates(order.store.coordinates):
            continue
        store_distance = haversine_km(origin, order.store.coordinates)
        if store_distance > radius:
            continue

        delivery_distance = None
        if has_coordinates(order.delivery_coordinates):
            delivery_distance = haversine_km(origin, order.delivery_coordinates)

        results.append({
            **OrderSerializer(order).data,
            'store_distance': round(store_distance, 2),
            'delivery_distance': None if delivery_distance is None else round(delivery_distance, 2),
            'total_distance': round(store_distance + (delivery_distance or 0), 2),
        })

    results.sort(key=lambda o: o['total_distance'])
    return Response({'count': len(results[:limit]), 'orders': results[:limit]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDeliveryPartner])
def my_deliveries(request):
    queryset = Order.objects.select_related('customer', 'store', 'delivery_partner').filter(
        delivery_partner=request.user
    )
    order_status = request.query_params.get('status')
    if order_status:
        queryset = queryset.filter(status=order_status)
    return paginate(request, queryset.order_by('-created_at'), OrderSerializer)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDeliveryPartner])
def accept_order(request):
    serializer = AcceptOrderSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = get_object_or_404(Order.objects.select_related('store'), pk=serializer.validated_data['order_id'])
    order = accept_delivery(order, request.user, dict(serializer.validated_data['current_location']))
    return Response({
        'message': 'Order accepted successfully',
        'order': OrderSerializer(order).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDeliveryPartner])
def update_location(request):
    serializer = UpdateLocationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    location = {'lat': serializer.validated_data['lat'], 'lng': serializer.validated_data['lng']}
    request.user.current_location = location
    request.user.save(update_fields=['current_location', 'updated_at'])

    return Response({
        'message': 'Location updated successfully',
        'location': location,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDeliveryPartner])
def start_delivery(request):
    serializer = DeliveryActionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = assigned_order(serializer.validated_data['order_id'], request.user)
    if order.status != Order.Status.READY_FOR_PICKUP:
        return Response(
            {'error': 'Order is not ready for pickup'},
            status=status.HTTP_400_BAD_REQUEST
        )

    order = change_status(order, Order.Status.OUT_FOR_DELIVERY, request.user,
                          notes='Delivery partner started delivery')
    return Response({
        'message': 'Delivery started successfully',
        'order': OrderSerializer(order).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDeliveryPartner])
def complete_delivery(request):
    serializer = DeliveryActionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = assigned_order(serializer.validated_data['order_id'], request.user)
    if order.status != Order.Status.OUT_FOR_DELIVERY:
        return Response(
            {'error': 'Order is not out for delivery'},
            status=status.HTTP_400_BAD_REQUEST
        )

    notes = serializer.validated_data.get('notes')
    order = change_status(
        order,
        Order.Status.DELIVERED,
        request.user,
        notes=f'Delivery completed. {notes}' if notes else 'Delivery completed'
    )
    return Response({
        'message': 'Delivery completed successfully',
        'order': OrderSerializer(order).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDeliveryPartner])
def route_optimization(request):
    """
    Greedy visiting order over the pickups and drop-offs of the partner's
    active deliveries, starting from the current location.
    """
    origin, _ = parse_location(request.query_params, radius_default=0)

    orders = Order.objects.select_related('store', 'customer').filter(
        delivery_partner=request.user,
        status__in=ACTIVE_DELIVERY_STATUSES
    ).order_by('created_at')

    points = []
    for order in orders:
        if has_coordinates(order.store.coordinates):
            points.append(RoutePoint(
                kind='pickup',
                coordinates=order.store.coordinates,
                name=order.store.name,
                order_id=order.pk,
                order_number=order.order_number,
            ))
        if has_coordinates(order.delivery_coordinates):
            points.append(RoutePoint(
                kind='delivery',
                coordinates=order.delivery_coordinates,
                name=order.customer.name,
                order_id=order.pk,
                order_number=order.order_number,
                details={'address': order.delivery_address},
            ))

    if not points:
        return Response({'route': [], 'total_distance': 0, 'estimated_time': 0, 'order_count': 0})

    start = RoutePoint(kind='start', coordinates=origin, name='Current Location')
    route = nearest_neighbor_route(start, points)
    distance = route_length_km(route)

    return Response({
        'route': [point.as_dict() for point in route],
        'total_distance': round(distance, 2),
        'estimated_time': estimated_minutes(distance, settings.DELIVERY_SPEED_KMH),
        'order_count': len(orders),
    })


def _earnings_window(request):
    filters = query_params(request)
    start_date, end_date = filters.get('start_date'), filters.get('end_date')
    if not (start_date and end_date):
        today = timezone.localdate()
        start_date = today.replace(day=1)
        next_month = (start_date.replace(day=28) + timedelta(days=4)).replace(day=1)
        end_date = next_month - timedelta(days=1)
    return start_date, end_date


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDeliveryPartner])
def earnings(request):
    """Delivery fees earned on delivered orders, current month by default"""
    start_date, end_date = _earnings_window(request)
    tz = timezone.get_current_timezone()

    orders = Order.objects.filter(
        delivery_partner=request.user,
        status=Order.Status.DELIVERED,
        created_at__gte=timezone.make_aware(datetime.combine(start_date, time.min), tz),
        created_at__lte=timezone.make_aware(datetime.combine(end_date, time.max), tz),
    ).only('id', 'delivery_fee', 'created_at')

    by_day = defaultdict(Decimal)
    for order in orders:
        by_day[timezone.localtime(order.created_at).date().isoformat()] += order.delivery_fee

    total = sum(by_day.values(), Decimal('0.00'))
    count = len(orders)

    return Response({
        'total_earnings': float(total),
        'total_deliveries': count,
        'average_earnings': float(total / count) if count else 0,
        'earnings_by_day': {day: float(amount) for day, amount in sorted(by_day.items())},
        'period': {
            'start_date': start_date.isoformat(),
            'end_date': end_date.isoformat(),
        },
    })
