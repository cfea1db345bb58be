"""
Order placement and the status changes that touch stock.

Each operation runs in one database transaction with the order and product
rows locked, so an order is never persisted without its stock decrement
and a cancellation never leaves stock unrestored.
"""
import logging
import secrets
from collections import OrderedDict
from datetime import timedelta
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied

from delivery.routing import haversine_km, has_coordinates
from inventory.models import Product
from inventory.utils import evict_product
from stock.models import StockTransaction
from stock.services import StockError, add_stock, remove_stock
from stores.models import Store
from users.models import User
from .exceptions import (
    DeliveryAssignmentError, InsufficientStock, MinimumOrderNotMet, OrderError,
    ProductUnavailable, StoreClosed, StoreUnavailable
)
from .lifecycle import CANCELLABLE_STATUSES, check_transition, is_terminal, may_drive
from .models import Order
from .utils import cache_order

logger = logging.getLogger(__name__)

CENTS = Decimal('0.01')
ORDER_NUMBER_PREFIX = 'BBSR'


def generate_order_number(now=None):
    """``BBSR<yymmdd><4 random digits>``, retried until unused."""
    now = now or timezone.localtime()
    while True:
        number = f"{ORDER_NUMBER_PREFIX}{now:%y%m%d}{secrets.randbelow(10000):04d}"
        if not Order.objects.filter(order_number=number).exists():
            return number


def calculate_totals(lines, delivery_fee, discount=Decimal('0.00')):
    """
    Order money from ``(unit_price, quantity)`` pairs.

    Tax is a fixed rate on the subtotal; the delivery fee is added after tax.
    """
    subtotal = sum((Decimal(price) * quantity for price, quantity in lines), Decimal('0.00'))
    tax = (subtotal * Decimal(settings.ORDER_TAX_RATE)).quantize(CENTS)
    total = subtotal + tax + Decimal(delivery_fee) - Decimal(discount)
    return {
        'subtotal': subtotal.quantize(CENTS),
        'tax': tax,
        'delivery_fee': Decimal(delivery_fee).quantize(CENTS),
        'discount': Decimal(discount).quantize(CENTS),
        'total': max(total, Decimal('0.00')).quantize(CENTS),
    }


def _merge_quantities(items):
    merged = OrderedDict()
    for item in items:
        merged[item['product_id']] = merged.get(item['product_id'], 0) + item['quantity']
    return merged


def _refresh_caches(order, product_ids):
    for product in Product.objects.filter(pk__in=product_ids):
        evict_product(product)
    return cache_order(order)


def place_order(customer, store_id, items, delivery_address, payment_method,
                delivery_instructions=None, is_scheduled=False, scheduled_time=None, notes=None):
    store = Store.objects.filter(pk=store_id, is_active=True).first()
    if store is None:
        raise StoreUnavailable()

    now = timezone.localtime()
    if not store.is_open_at(now):
        raise StoreClosed()

    quantities = _merge_quantities(items)

    with transaction.atomic():
        products = Product.objects.select_for_update().in_bulk(sorted(quantities))

        snapshot = []
        for product_id, quantity in quantities.items():
            product = products.get(product_id)
            if product is None or not product.is_active or not product.is_available:
                raise ProductUnavailable(f'Product {product_id} not found or unavailable')
            if product.store_id != store.pk:
                raise ProductUnavailable(f'Product {product.name} does not belong to the selected store')
            if product.stock_quantity < quantity:
                raise InsufficientStock(f'Insufficient stock for {product.name}')
            snapshot.append((product, quantity))

        totals = calculate_totals(
            [(product.price, quantity) for product, quantity in snapshot],
            store.delivery_fee
        )
        if totals['subtotal'] < store.minimum_order_amount:
            raise MinimumOrderNotMet(store.minimum_order_amount)

        order_number = generate_order_number(now)
        for product, quantity in snapshot:
            try:
                remove_stock(product, quantity, user=customer, reference=order_number)
            except StockError as e:
                raise InsufficientStock(str(e))

        order = Order.objects.create(
            order_number=order_number,
            customer=customer,
            store=store,
            items=[
                {
                    'product_id': product.pk,
                    'name': product.name,
                    'price': float(product.price),
                    'quantity': quantity,
                    'total': float(product.price * quantity),
                    'unit': product.unit,
                }
                for product, quantity in snapshot
            ],
            payment_method=payment_method,
            delivery_address=delivery_address,
            delivery_instructions=delivery_instructions,
            estimated_delivery_time=now + timedelta(
                minutes=store.average_preparation_time + settings.DELIVERY_BUFFER_MINUTES
            ),
            is_scheduled=is_scheduled,
            scheduled_time=scheduled_time if is_scheduled else None,
            notes=notes,
            **totals
        )

    logger.info(f"Order {order.order_number} placed by {customer.email} at store {store.pk} for {order.total}")
    _refresh_caches(order, list(quantities))
    return order


def _lock_order(order):
    return Order.objects.select_for_update().select_related('store').get(pk=order.pk)


def _restore_stock(order, reason, user=None):
    """Put every line item of ``order`` back into stock. Returns the product ids touched."""
    product_ids = [item['product_id'] for item in order.items]
    products = Product.objects.in_bulk(product_ids)
    for item in order.items:
        product = products.get(item['product_id'])
        if product is None:
            logger.warning(f"Product {item['product_id']} of order {order.order_number} no longer exists")
            continue
        add_stock(product, item['quantity'], reason=reason, user=user, reference=order.order_number)
    return product_ids


def _mark_cancelled(order, reason, user):
    order.status = Order.Status.CANCELLED
    order.cancellation_reason = reason
    order.save(update_fields=['status', 'cancellation_reason', 'updated_at'])
    return _restore_stock(order, StockTransaction.Reason.CANCELLATION, user=user)


def change_status(order, target, user, notes=None):
    """
    Move ``order`` into ``target`` following the transition table.

    Store owners drive preparation and cancellation, the assigned delivery
    partner drives dispatch and delivery, admins may do either.
    """
    if not may_drive(user, order, target):
        raise PermissionDenied('You are not allowed to move this order to that status')

    product_ids = []
    with transaction.atomic():
        order = _lock_order(order)
        check_transition(order.status, target)

        if target == Order.Status.OUT_FOR_DELIVERY and not order.delivery_partner_id:
            raise DeliveryAssignmentError('Assign a delivery partner before dispatching the order')

        if target == Order.Status.CANCELLED:
            product_ids = _mark_cancelled(order, notes or 'Cancelled by store', user)
        else:
            order.status = target
            update_fields = ['status', 'updated_at']
            if notes:
                order.notes = notes
                update_fields.append('notes')
            if target == Order.Status.DELIVERED:
                order.actual_delivery_time = timezone.now()
                update_fields.append('actual_delivery_time')
            order.save(update_fields=update_fields)

    logger.info(f"Order {order.order_number} moved to {target} by {user.email}")
    _refresh_caches(order, product_ids)
    return order


def cancel_order(order, user, reason):
    """Cancel an order that has not left the store yet and restore its stock."""
    if user.is_customer and order.customer_id != user.id:
        raise PermissionDenied('Access denied')
    if user.is_store_owner and order.store.owner_id != user.id:
        raise PermissionDenied('Access denied')
    if user.is_delivery_partner:
        raise PermissionDenied('Delivery partners cannot cancel orders')

    with transaction.atomic():
        order = _lock_order(order)
        if order.status not in CANCELLABLE_STATUSES:
            raise OrderError('Order cannot be cancelled at this stage')
        check_transition(order.status, Order.Status.CANCELLED)
        product_ids = _mark_cancelled(order, reason, user)

    logger.info(f"Order {order.order_number} cancelled by {user.email}")
    _refresh_caches(order, product_ids)
    return order


def refund_order(order, user, refund_id=None, amount=None):
    """
    Mark a paid, still running order as refunded and restore its stock.

    Refunds sit outside the status transition table; they are only reachable
    through a successful gateway refund.
    """
    with transaction.atomic():
        order = _lock_order(order)
        if order.payment_status != Order.PaymentStatus.PAID:
            raise OrderError('Only paid orders can be refunded')
        if is_terminal(order.status):
            raise OrderError(f'Order is already {order.status}')

        order.status = Order.Status.REFUNDED
        order.payment_status = Order.PaymentStatus.REFUNDED
        order.refund_id = refund_id
        order.refund_amount = order.total if amount is None else amount
        order.refunded_at = timezone.now()
        order.save(update_fields=[
            'status', 'payment_status', 'refund_id', 'refund_amount', 'refunded_at', 'updated_at'
        ])
        product_ids = _restore_stock(order, StockTransaction.Reason.REFUND, user=user)

    logger.info(f"Order {order.order_number} refunded ({order.refund_amount})")
    _refresh_caches(order, product_ids)
    return order


def assign_delivery_partner(order, partner_id, user):
    if not user.is_admin and order.store.owner_id != user.id:
        raise PermissionDenied('You can only assign delivery to orders from your stores')

    partner = User.objects.filter(
        pk=partner_id, role=User.Role.DELIVERY_PARTNER, is_active=True
    ).first()
    if partner is None:
        raise NotFound('Delivery partner not found or inactive')

    with transaction.atomic():
        order = _lock_order(order)
        if is_terminal(order.status) or order.status == Order.Status.OUT_FOR_DELIVERY:
            raise DeliveryAssignmentError(f'Cannot assign a delivery partner to an order that is {order.status}')
        order.delivery_partner = partner
        order.save(update_fields=['delivery_partner', 'updated_at'])

    logger.info(f"Order {order.order_number} assigned to delivery partner {partner.pk}")
    cache_order(order)
    return order


def accept_delivery(order, partner, location):
    """A delivery partner claims an unassigned order that is ready for pickup."""
    with transaction.atomic():
        order = _lock_order(order)
        if order.delivery_partner_id:
            raise DeliveryAssignmentError('Order is already assigned to another delivery partner')
        if order.status != Order.Status.READY_FOR_PICKUP:
            raise DeliveryAssignmentError('Order is not ready for delivery')
        if has_coordinates(order.store.coordinates):
            distance = haversine_km(location, order.store.coordinates)
            if distance > settings.MAX_PICKUP_DISTANCE_KM:
                raise DeliveryAssignmentError('You are too far from the store to accept this delivery')

        order.delivery_partner = partner
        order.save(update_fields=['delivery_partner', 'updated_at'])

    partner.current_location = location
    partner.save(update_fields=['current_location', 'updated_at'])
    logger.info(f"Order {order.order_number} accepted by delivery partner {partner.pk}")
    cache_order(order)
    return order


def rate_order(order, user, rating, review=None):
    if order.customer_id != user.id:
        raise PermissionDenied('Access denied')
    if order.status != Order.Status.DELIVERED:
        raise OrderError('You can only rate delivered orders')
    if order.rating is not None:
        raise OrderError('Order has already been rated')

    with transaction.atomic():
        order.rating = rating
        order.review = review
        order.save(update_fields=['rating', 'review', 'updated_at'])
        store = Store.objects.select_for_update().get(pk=order.store_id)
        store.add_rating(rating)

    cache_order(order)
    return order


def mark_paid(order, payment_id):
    """Record a captured payment; a pending order is confirmed by it."""
    with transaction.atomic():
        order = _lock_order(order)
        order.payment_status = Order.PaymentStatus.PAID
        order.payment_id = payment_id
        order.paid_at = timezone.now()
        update_fields = ['payment_status', 'payment_id', 'paid_at', 'updated_at']
        if order.status == Order.Status.PENDING:
            order.status = Order.Status.CONFIRMED
            update_fields.append('status')
        order.save(update_fields=update_fields)

    cache_order(order)
    return order


def mark_payment_failed(order):
    if order.payment_status == Order.PaymentStatus.PAID:
        return order
    order.payment_status = Order.PaymentStatus.FAILED
    order.save(update_fields=['payment_status', 'updated_at'])
    cache_order(order)
    return order
