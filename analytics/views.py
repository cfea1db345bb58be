# Analytics views for store owners and admins
from collections import Counter, defaultdict
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db.models import Avg, Count, F, Q, Sum
from django.db.models.functions import TruncDate, TruncMonth, TruncWeek, TruncYear
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from inventory.models import Product
from main.filters import query_params
from orders.models import Order
from stores.models import Store
from users.models import User
from users.permissions import IsAdmin, IsStoreOwnerOrAdmin

PERIOD_TRUNCS = {
    'daily': TruncDate,
    'weekly': TruncWeek,
    'monthly': TruncMonth,
    'yearly': TruncYear,
}

CUSTOMER_PERIODS = {
    '7d': timedelta(days=7),
    '30d': timedelta(days=30),
    '90d': timedelta(days=90),
    '1y': timedelta(days=365),
}

# Orders that count towards revenue
REVENUE_STATUSES = [
    Order.Status.CONFIRMED,
    Order.Status.PREPARING,
    Order.Status.READY_FOR_PICKUP,
    Order.Status.OUT_FOR_DELIVERY,
    Order.Status.DELIVERED,
]


def money(value):
    return float(value or 0)


def scoped_stores(request):
    """Stores visible to the caller, narrowed by an optional ``store`` param."""
    stores = Store.objects.all()
    if not request.user.is_admin:
        stores = stores.filter(owner=request.user)
    filters = query_params(request)
    if 'store' in filters:
        stores = stores.filter(pk=filters['store'])
    return stores


def filter_dates(queryset, request, field='created_at'):
    filters = query_params(request)
    if 'start_date' in filters:
        queryset = queryset.filter(**{f'{field}__date__gte': filters['start_date']})
    if 'end_date' in filters:
        queryset = queryset.filter(**{f'{field}__date__lte': filters['end_date']})
    return queryset


def scoped_orders(request):
    orders = Order.objects.filter(store__in=scoped_stores(request))
    return filter_dates(orders, request)


def growth(current, previous):
    if not previous:
        return 0
    return round((current - previous) / previous * 100, 2)


def period_series(orders, period, **aggregates):
    trunc = PERIOD_TRUNCS[period]
    return list(
        orders.order_by()
        .annotate(period=trunc('created_at'))
        .values('period')
        .annotate(**aggregates)
        .order_by('period')
    )


def delivery_minutes(order):
    if not order.actual_delivery_time:
        return None
    return (order.actual_delivery_time - order.created_at).total_seconds() / 60


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStoreOwnerOrAdmin])
def dashboard(request):
    """
    Overview counts, recent orders and top stores by revenue
    """
    stores = scoped_stores(request)
    orders = scoped_orders(request)

    order_stats = orders.aggregate(
        total_orders=Count('id'),
        total_revenue=Sum('total', filter=Q(status__in=REVENUE_STATUSES)),
        average_order_value=Avg('total'),
        completed_orders=Count('id', filter=Q(status=Order.Status.DELIVERED)),
        cancelled_orders=Count('id', filter=Q(status=Order.Status.CANCELLED)),
        pending_orders=Count('id', filter=Q(status=Order.Status.PENDING)),
    )

    recent_orders = orders.select_related('store', 'customer').order_by('-created_at')[:10]

    top_stores = (
        stores.annotate(
            order_count=Count('orders', filter=Q(orders__status__in=REVENUE_STATUSES)),
            total_revenue=Sum('orders__total', filter=Q(orders__status__in=REVENUE_STATUSES)),
        )
        .filter(order_count__gt=0)
        .order_by('-total_revenue')[:5]
    )

    overview = {
        'total_stores': stores.count(),
        'total_products': Product.objects.filter(store__in=stores, is_active=True).count(),
        'total_orders': order_stats['total_orders'],
        'total_revenue': money(order_stats['total_revenue']),
        'average_order_value': round(money(order_stats['average_order_value']), 2),
        'completed_orders': order_stats['completed_orders'],
        'cancelled_orders': order_stats['cancelled_orders'],
        'pending_orders': order_stats['pending_orders'],
    }
    if request.user.is_admin:
        overview['total_customers'] = User.objects.filter(role=User.Role.CUSTOMER).count()
        overview['total_delivery_partners'] = User.objects.filter(role=User.Role.DELIVERY_PARTNER).count()

    return Response({
        'overview': overview,
        'recent_orders': [{
            'id': o.id,
            'order_number': o.order_number,
            'store_name': o.store.name,
            'customer_name': o.customer.name,
            'total': str(o.total),
            'status': o.status,
            'created_at': o.created_at.isoformat(),
        } for o in recent_orders],
        'top_stores': [{
            'id': s.id,
            'name': s.name,
            'rating': float(s.rating),
            'order_count': s.order_count,
            'total_revenue': money(s.total_revenue),
            'average_order_value': round(money(s.total_revenue) / s.order_count, 2),
        } for s in top_stores],
    })


def _period_param(request):
    period = request.query_params.get('period', 'daily')
    if period not in PERIOD_TRUNCS:
        return None, Response(
            {'period': [f'Period must be one of {", ".join(PERIOD_TRUNCS)}']},
            status=status.HTTP_400_BAD_REQUEST
        )
    return period, None


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStoreOwnerOrAdmin])
def sales(request):
    """Order counts and revenue per period, with growth versus the previous period"""
    period, error = _period_param(request)
    if error:
        return error

    rows = period_series(
        scoped_orders(request),
        period,
        order_count=Count('id'),
        revenue=Sum('total', filter=Q(status__in=REVENUE_STATUSES)),
        average_order_value=Avg('total'),
        completed_orders=Count('id', filter=Q(status=Order.Status.DELIVERED)),
        cancelled_orders=Count('id', filter=Q(status=Order.Status.CANCELLED)),
    )

    series = []
    previous = None
    for row in rows:
        revenue = money(row['revenue'])
        series.append({
            'period': row['period'].isoformat() if row['period'] else None,
            'order_count': row['order_count'],
            'revenue': revenue,
            'average_order_value': round(money(row['average_order_value']), 2),
            'completed_orders': row['completed_orders'],
            'cancelled_orders': row['cancelled_orders'],
            'growth': growth(revenue, previous),
        })
        previous = revenue

    total_orders = sum(item['order_count'] for item in series)
    total_revenue = sum(item['revenue'] for item in series)
    return Response({
        'period': period,
        'sales_data': series,
        'summary': {
            'total_orders': total_orders,
            'total_revenue': total_revenue,
            'average_order_value': round(total_revenue / total_orders, 2) if total_orders else 0,
            'total_completed': sum(item['completed_orders'] for item in series),
            'total_cancelled': sum(item['cancelled_orders'] for item in series),
        },
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStoreOwnerOrAdmin])
def revenue(request):
    """Gross revenue split into platform commission and store net revenue"""
    period, error = _period_param(request)
    if error:
        return error

    commission_rate = Decimal(settings.PLATFORM_COMMISSION_RATE)
    rows = period_series(
        scoped_orders(request).filter(status__in=REVENUE_STATUSES),
        period,
        gross_revenue=Sum('total'),
        delivery_revenue=Sum('delivery_fee'),
        tax_collected=Sum('tax'),
        order_count=Count('id'),
    )

    series = []
    for row in rows:
        gross = row['gross_revenue'] or Decimal('0')
        commission = (gross * commission_rate).quantize(Decimal('0.01'))
        series.append({
            'period': row['period'].isoformat() if row['period'] else None,
            'gross_revenue': money(gross),
            'delivery_revenue': money(row['delivery_revenue']),
            'tax_collected': money(row['tax_collected']),
            'commission': money(commission),
            'net_revenue': money(gross - commission),
            'order_count': row['order_count'],
        })

    return Response({
        'period': period,
        'commission_rate': float(commission_rate),
        'revenue_data': series,
        'summary': {
            'gross_revenue': round(sum(item['gross_revenue'] for item in series), 2),
            'commission': round(sum(item['commission'] for item in series), 2),
            'net_revenue': round(sum(item['net_revenue'] for item in series), 2),
            'order_count': sum(item['order_count'] for item in series),
        },
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStoreOwnerOrAdmin])
def products(request):
    """Top sellers, low stock and per-category performance"""
    limit = min(query_params(request).get('limit', 10), 50)
    catalogue = Product.objects.select_related('store').filter(
        store__in=scoped_stores(request),
        is_active=True
    )

    top_selling = catalogue.filter(total_sold__gt=0).order_by('-total_sold', 'name')[:limit]
    low_stock = catalogue.filter(stock_quantity__lt=settings.LOW_STOCK_THRESHOLD).order_by('stock_quantity')[:10]
    categories = (
        catalogue.order_by()
        .values('category')
        .annotate(
            product_count=Count('id'),
            units_sold=Sum('total_sold'),
            average_price=Avg('price'),
            average_rating=Avg('rating'),
            sales_value=Sum(F('total_sold') * F('price')),
        )
        .order_by('-product_count')
    )

    return Response({
        'top_selling_products': [{
            'id': p.id,
            'name': p.name,
            'store_name': p.store.name,
            'price': str(p.price),
            'total_sold': p.total_sold,
            'sales_value': money(p.price * p.total_sold),
            'rating': float(p.rating),
            'stock_quantity': p.stock_quantity,
        } for p in top_selling],
        'low_stock_products': [{
            'id': p.id,
            'name': p.name,
            'store_name': p.store.name,
            'stock_quantity': p.stock_quantity,
            'min_stock_level': p.min_stock_level,
            'price': str(p.price),
        } for p in low_stock],
        'category_performance': [{
            'category': c['category'],
            'product_count': c['product_count'],
            'units_sold': c['units_sold'] or 0,
            'average_price': round(money(c['average_price']), 2),
            'average_rating': round(money(c['average_rating']), 2),
            'sales_value': money(c['sales_value']),
        } for c in categories],
    })


def customer_segment(order_count):
    if order_count == 0:
        return 'New'
    if order_count <= 5:
        return 'Regular'
    if order_count <= 20:
        return 'Frequent'
    return 'VIP'


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def customers(request):
    period = request.query_params.get('period', '30d')
    if period not in CUSTOMER_PERIODS:
        return Response(
            {'period': [f'Period must be one of {", ".join(CUSTOMER_PERIODS)}']},
            status=status.HTTP_400_BAD_REQUEST
        )
    start = timezone.now() - CUSTOMER_PERIODS[period]
    customer_qs = User.objects.filter(role=User.Role.CUSTOMER)

    trends = (
        customer_qs.filter(date_joined__gte=start)
        .annotate(date=TruncDate('date_joined'))
        .values('date')
        .annotate(new_customers=Count('id'))
        .order_by('date')
    )

    with_orders = customer_qs.annotate(
        order_count=Count('orders'),
        total_spent=Sum('orders__total'),
    )
    top_customers = with_orders.filter(order_count__gt=0).order_by('-total_spent')[:10]
    segments = Counter(customer_segment(c.order_count) for c in with_orders)

    total_customers = customer_qs.count()
    active_customers = customer_qs.filter(orders__created_at__gte=start).distinct().count()
    retention_rate = round(active_customers / total_customers * 100, 2) if total_customers else 0

    return Response({
        'period': period,
        'customer_trends': [{
            'date': row['date'].isoformat(),
            'new_customers': row['new_customers'],
        } for row in trends],
        'top_customers': [{
            'id': c.id,
            'name': c.name,
            'email': c.email,
            'order_count': c.order_count,
            'total_spent': money(c.total_spent),
            'average_order_value': round(money(c.total_spent) / c.order_count, 2),
        } for c in top_customers],
        'customer_segments': [
            {'segment': segment, 'customer_count': segments.get(segment, 0)}
            for segment in ['New', 'Regular', 'Frequent', 'VIP']
        ],
        'retention_rate': retention_rate,
        'summary': {
            'total_customers': total_customers,
            'active_customers': active_customers,
            'new_customers': sum(row['new_customers'] for row in trends),
        },
    })


def delivery_time_bucket(minutes):
    if minutes < 60:
        return 'Under 1 hour'
    if minutes < 120:
        return '1-2 hours'
    if minutes < 180:
        return '2-3 hours'
    return 'Over 3 hours'


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdmin])
def delivery(request):
    """Delivery counts by status, durations and partner leaderboard"""
    orders = filter_dates(Order.objects.all(), request)

    by_status = (
        orders.order_by()
        .values('status')
        .annotate(order_count=Count('id'), average_delivery_fee=Avg('delivery_fee'))
        .order_by('status')
    )

    delivered = list(
        orders.filter(status=Order.Status.DELIVERED, actual_delivery_time__isnull=False)
        .select_related('delivery_partner')
    )
    durations = [delivery_minutes(order) for order in delivered]

    partners = defaultdict(lambda: {'deliveries': 0, 'minutes': 0.0, 'earnings': Decimal('0')})
    for order, minutes in zip(delivered, durations):
        if order.delivery_partner is None:
            continue
        stats = partners[order.delivery_partner]
        stats['deliveries'] += 1
        stats['minutes'] += minutes
        stats['earnings'] += order.delivery_fee

    top_partners = sorted(partners.items(), key=lambda item: item[1]['deliveries'], reverse=True)[:10]
    distribution = Counter(delivery_time_bucket(minutes) for minutes in durations)

    return Response({
        'delivery_stats': [{
            'status': row['status'],
            'order_count': row['order_count'],
            'average_delivery_fee': round(money(row['average_delivery_fee']), 2),
        } for row in by_status],
        'average_delivery_minutes': round(sum(durations) / len(durations), 1) if durations else 0,
        'top_delivery_partners': [{
            'id': partner.id,
            'name': partner.name,
            'phone': partner.phone,
            'delivery_count': stats['deliveries'],
            'average_delivery_minutes': round(stats['minutes'] / stats['deliveries'], 1),
            'total_earnings': money(stats['earnings']),
        } for partner, stats in top_partners],
        'delivery_time_distribution': [
            {'time_range': bucket, 'order_count': distribution.get(bucket, 0)}
            for bucket in ['Under 1 hour', '1-2 hours', '2-3 hours', 'Over 3 hours']
        ],
    })
