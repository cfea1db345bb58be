import json
import logging
from datetime import datetime, time

from django.conf import settings
from django.db.models import Count, Q, Sum
from django.db.models.functions import TruncDate
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from rest_framework import status
from rest_framework.decorators import (
    api_view, authentication_classes, permission_classes, throttle_classes
)
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from main.filters import query_params
from main.pagination import paginate
from orders.lifecycle import is_terminal
from orders.models import Order
from orders.services import mark_paid, mark_payment_failed, refund_order
from users.permissions import IsAdmin, IsCustomer
from .gateway import (
    GatewayNotConfigured, from_paise, get_gateway, to_paise, verify_webhook_signature
)
from .serializers import (
    CreatePaymentOrderSerializer, PaymentHistorySerializer, RefundSerializer, VerifyPaymentSerializer
)

logger = logging.getLogger(__name__)


def _owned_order(pk, user, allow_admin=False):
    order = get_object_or_404(Order.objects.select_related('store'), pk=pk)
    if order.customer_id != user.id and not (allow_admin and user.is_admin):
        raise PermissionDenied('Not authorized to access payments for this order')
    return order


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCustomer])
def create_payment_order(request):
    """Open a gateway order for the full amount of a pending order"""
    serializer = CreatePaymentOrderSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    order = _owned_order(serializer.validated_data['order_id'], request.user)
    if order.status != Order.Status.PENDING or order.payment_status == Order.PaymentStatus.PAID:
        return Response(
            {'error': 'Order is not awaiting payment'},
            status=status.HTTP_400_BAD_REQUEST
        )

    gateway = get_gateway()
    gateway_order = gateway.create_order(
        to_paise(order.total),
        currency=serializer.validated_data['currency'],
        receipt=f'order_{order.pk}',
        notes={
            'order_id': str(order.pk),
            'order_number': order.order_number,
            'customer_id': str(request.user.pk),
        }
    )

    order.gateway_order_id = gateway_order['id']
    order.save(update_fields=['gateway_order_id', 'updated_at'])
    logger.info(f"Gateway order {gateway_order['id']} opened for order {order.order_number}")

    return Response({
        'gateway_order_id': gateway_order['id'],
        'amount': gateway_order['amount'],
        'currency': gateway_order['currency'],
        'receipt': gateway_order.get('receipt'),
        'key_id': settings.RAZORPAY_KEY_ID,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def verify_payment(request):
    """Check the checkout signature and the captured payment, then mark the order paid"""
    serializer = VerifyPaymentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    gateway = get_gateway()
    if not gateway.verify_payment_signature(
        data['razorpay_order_id'],
        data['razorpay_payment_id'],
        data['razorpay_signature'],
    ):
        return Response(
            {'error': 'Invalid payment signature'},
            status=status.HTTP_400_BAD_REQUEST
        )

    payment = gateway.fetch_payment(data['razorpay_payment_id'])
    if payment.get('status') != 'captured':
        return Response(
            {'error': 'Payment not captured'},
            status=status.HTTP_400_BAD_REQUEST
        )

    order = Order.objects.filter(gateway_order_id=data['razorpay_order_id']).first()
    if order is None:
        order_id = (payment.get('notes') or {}).get('order_id')
        if not order_id:
            return Response(
                {'error': 'Order ID not found in payment'},
                status=status.HTTP_400_BAD_REQUEST
            )
        order = get_object_or_404(Order, pk=order_id)

    if order.customer_id != request.user.id:
        raise PermissionDenied('Not authorized')

    order = mark_paid(order, data['razorpay_payment_id'])
    return Response({
        'message': 'Payment verified successfully',
        'order_id': order.pk,
        'payment_id': order.payment_id,
        'amount': from_paise(payment.get('amount', 0)),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def refund_payment(request):
    serializer = RefundSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    order = _owned_order(data['order_id'], request.user, allow_admin=True)
    if not order.payment_id or order.payment_status != Order.PaymentStatus.PAID:
        return Response(
            {'error': 'Order is not paid'},
            status=status.HTTP_400_BAD_REQUEST
        )
    if is_terminal(order.status):
        return Response(
            {'error': 'Order cannot be refunded at this stage'},
            status=status.HTTP_400_BAD_REQUEST
        )

    amount = data.get('amount') or order.total
    gateway = get_gateway()
    refund = gateway.refund_payment(
        order.payment_id,
        amount=to_paise(amount),
        notes={'reason': data['reason'], 'order_id': str(order.pk)}
    )

    order = refund_order(order, request.user, refund_id=refund.get('id'), amount=amount)
    return Response({
        'message': 'Refund processed successfully',
        'refund_id': order.refund_id,
        'amount': from_paise(refund.get('amount', to_paise(amount))),
        'status': refund.get('status'),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def payment_details(request, order_id):
    order = _owned_order(order_id, request.user, allow_admin=True)
    if not order.payment_id:
        return Response(
            {'error': 'No payment found for this order'},
            status=status.HTTP_404_NOT_FOUND
        )

    payment = get_gateway().fetch_payment(order.payment_id)
    return Response({
        'order_id': order.pk,
        'payment_id': payment.get('id'),
        'amount': from_paise(payment.get('amount', 0)),
        'currency': payment.get('currency'),
        'status': payment.get('status'),
        'method': payment.get('method'),
        'bank': payment.get('bank'),
        'wallet': payment.get('wallet'),
        'vpa': payment.get('vpa'),
        'email': payment.get('email'),
        'contact': payment.get('contact'),
        'created_at': payment.get('created_at'),
        'paid_at': order.paid_at,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def payment_history(request):
    queryset = Order.objects.filter(
        customer=request.user,
        payment_status__in=[Order.PaymentStatus.PAID, Order.PaymentStatus.REFUNDED]
    )
    payment_status = request.query_params.get('status')
    if payment_status:
        queryset = queryset.filter(payment_status=payment_status)
    return paginate(request, queryset.order_by('-created_at'), PaymentHistorySerializer)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def payment_analytics(request):
    """Payment totals, method breakdown and daily trend"""
    orders = Order.objects.all()
    filters = query_params(request)
    start_date, end_date = filters.get('start_date'), filters.get('end_date')
    if start_date and end_date:
        tz = timezone.get_current_timezone()
        orders = orders.filter(
            created_at__gte=timezone.make_aware(datetime.combine(start_date, time.min), tz),
            created_at__lte=timezone.make_aware(datetime.combine(end_date, time.max), tz),
        )

    paid = Q(payment_status=Order.PaymentStatus.PAID)
    refunded = Q(payment_status=Order.PaymentStatus.REFUNDED)
    statistics = orders.aggregate(
        total_orders=Count('id'),
        total_amount=Sum('total'),
        paid_orders=Count('id', filter=paid),
        paid_amount=Sum('total', filter=paid),
        refunded_orders=Count('id', filter=refunded),
        refunded_amount=Sum('refund_amount', filter=refunded),
    )

    payment_methods = (
        orders.order_by()
        .values('payment_method')
        .annotate(count=Count('id'), amount=Sum('total'))
        .order_by('payment_method')
    )
    payment_statuses = (
        orders.order_by()
        .values('payment_status')
        .annotate(count=Count('id'), amount=Sum('total'))
        .order_by('payment_status')
    )
    daily_trends = (
        orders.order_by()
        .annotate(date=TruncDate('created_at'))
        .values('date')
        .annotate(orders=Count('id'), amount=Sum('total'))
        .order_by('date')
    )

    return Response({
        'statistics': {
            key: float(value or 0) if key.endswith('amount') else value
            for key, value in statistics.items()
        },
        'payment_methods': [
            {**row, 'amount': float(row['amount'] or 0)} for row in payment_methods
        ],
        'payment_statuses': [
            {**row, 'amount': float(row['amount'] or 0)} for row in payment_statuses
        ],
        'daily_trends': [
            {**row, 'amount': float(row['amount'] or 0)} for row in daily_trends
        ],
    })


def _order_from_entity(entity):
    order_id = (entity.get('notes') or {}).get('order_id')
    if order_id:
        return Order.objects.filter(pk=order_id).first()
    if entity.get('order_id'):
        return Order.objects.filter(gateway_order_id=entity['order_id']).first()
    return None


def handle_payment_captured(payment):
    order = _order_from_entity(payment)
    if order is not None and order.payment_status != Order.PaymentStatus.PAID:
        mark_paid(order, payment.get('id'))


def handle_payment_failed(payment):
    order = _order_from_entity(payment)
    if order is not None:
        mark_payment_failed(order)


def handle_refund_processed(refund):
    order = _order_from_entity(refund)
    if order is None and refund.get('payment_id'):
        order = Order.objects.filter(payment_id=refund['payment_id']).first()
    if order is None or order.payment_status != Order.PaymentStatus.PAID or is_terminal(order.status):
        return
    refund_order(order, None, refund_id=refund.get('id'), amount=from_paise(refund.get('amount', 0)))


WEBHOOK_HANDLERS = {
    'payment.captured': ('payment', handle_payment_captured),
    'payment.failed': ('payment', handle_payment_failed),
    'refund.processed': ('refund', handle_refund_processed),
}


@csrf_exempt
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([])
def webhook(request):
    """Gateway events, authenticated by the HMAC signature of the raw body"""
    body = request.body
    signature = request.headers.get('X-Razorpay-Signature')
    if not signature:
        return Response({'error': 'Missing signature'}, status=status.HTTP_400_BAD_REQUEST)
    if not settings.RAZORPAY_WEBHOOK_SECRET:
        raise GatewayNotConfigured()
    if not verify_webhook_signature(body, signature, settings.RAZORPAY_WEBHOOK_SECRET):
        return Response({'error': 'Invalid signature'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        event = json.loads(body)
    except ValueError:
        return Response({'error': 'Invalid payload'}, status=status.HTTP_400_BAD_REQUEST)

    name = event.get('event')
    if name not in WEBHOOK_HANDLERS:
        logger.info(f"Unhandled webhook event: {name}")
        return Response({'received': True})

    entity_key, handler = WEBHOOK_HANDLERS[name]
    entity = ((event.get('payload') or {}).get(entity_key) or {}).get('entity') or {}
    handler(entity)
    logger.info(f"Processed webhook event {name}")
    return Response({'received': True})
