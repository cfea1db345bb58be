"""
Tests for the Orders module.
Covers: totals, order numbers, the status lifecycle, placement, cancellation, delivery assignment,
rating, order caching and public tracking.
"""
import re
from datetime import datetime
import pytest
from decimal import Decimal
from django.utils import timezone
from rest_framework import status

from conftest import always_closed, client_for, move_order
from integrations.cache import get_entity_cache
from notifications.models import Notification
from orders import lifecycle
from orders.exceptions import InvalidStatusTransition, OrderError
from orders.models import Order
from orders.services import (
    calculate_totals, cancel_order, change_status, generate_order_number, mark_paid, place_order,
    refund_order
)
from stock.models import StockTransaction

Status = Order.Status


def order_payload(store, *lines, **overrides):
    return {
        'store_id': store.pk,
        'items': [{'product_id': product.pk, 'quantity': quantity} for product, quantity in lines],
        'delivery_address': {
            'street': 'Unit 4, Nayapalli',
            'city': 'Bhubaneswar',
            'pincode': '751012',
            'coordinates': {'lat': 20.2899, 'lng': 85.8106},
        },
        'payment_method': 'cash',
        **overrides,
    }


# ============== Totals and Numbering Tests ==============

class TestCalculateTotals:

    def test_tax_on_subtotal_and_fee_after_tax(self):
        totals = calculate_totals([(Decimal('50.00'), 2)], Decimal('20.00'))
        assert totals['subtotal'] == Decimal('100.00')
        assert totals['tax'] == Decimal('5.00')
        assert totals['delivery_fee'] == Decimal('20.00')
        assert totals['total'] == Decimal('125.00')

    def test_tax_is_rounded_to_paise(self):
        totals = calculate_totals([(Decimal('33.33'), 1)], Decimal('0.00'))
        assert totals['tax'] == Decimal('1.67')
        assert totals['total'] == Decimal('35.00')

    def test_discount_never_makes_total_negative(self):
        totals = calculate_totals([(Decimal('10.00'), 1)], Decimal('0.00'), discount=Decimal('50.00'))
        assert totals['total'] == Decimal('0.00')


@pytest.mark.django_db
class TestOrderNumber:

    def test_format(self):
        assert re.fullmatch(r'BBSR\d{6}\d{4}', generate_order_number())

    def test_skips_numbers_in_use(self, order, monkeypatch):
        placed_on = datetime.strptime(order.order_number[4:10], '%y%m%d')
        suffix = int(order.order_number[-4:])
        draws = iter([suffix, (suffix + 1) % 10000])
        monkeypatch.setattr('orders.services.secrets.randbelow', lambda n: next(draws))
        number = generate_order_number(placed_on)
        assert number == f"{order.order_number[:10]}{(suffix + 1) % 10000:04d}"


# ============== Lifecycle Tests ==============

class TestLifecycle:

    @pytest.mark.parametrize('current,target', [
        (Status.PENDING, Status.CONFIRMED),
        (Status.CONFIRMED, Status.PREPARING),
        (Status.PREPARING, Status.READY_FOR_PICKUP),
        (Status.READY_FOR_PICKUP, Status.OUT_FOR_DELIVERY),
        (Status.OUT_FOR_DELIVERY, Status.DELIVERED),
        (Status.PENDING, Status.CANCELLED),
        (Status.OUT_FOR_DELIVERY, Status.CANCELLED),
    ])
    def test_allowed(self, current, target):
        assert lifecycle.can_transition(current, target)

    @pytest.mark.parametrize('current,target', [
        (Status.PENDING, Status.DELIVERED),
        (Status.CONFIRMED, Status.PENDING),
        (Status.PREPARING, Status.OUT_FOR_DELIVERY),
        (Status.DELIVERED, Status.CANCELLED),
        (Status.CANCELLED, Status.CONFIRMED),
        (Status.REFUNDED, Status.PENDING),
    ])
    def test_rejected(self, current, target):
        assert not lifecycle.can_transition(current, target)
        with pytest.raises(InvalidStatusTransition):
            lifecycle.check_transition(current, target)

    def test_terminal_statuses(self):
        assert lifecycle.TERMINAL_STATUSES == {Status.DELIVERED, Status.CANCELLED, Status.REFUNDED}

    def test_refunded_is_not_reachable_through_the_table(self):
        assert all(Status.REFUNDED not in targets for targets in lifecycle.TRANSITIONS.values())


# ============== Order Placement Tests ==============

@pytest.mark.django_db
class TestPlaceOrder:

    def test_place_order(self, customer_client, customer, store, product, store_owner):
        response = customer_client.post('/api/orders/', order_payload(store, (product, 2)), format='json')
        assert response.status_code == status.HTTP_201_CREATED

        data = response.data['order']
        assert Decimal(data['subtotal']) == Decimal('100.00')
        assert Decimal(data['tax']) == Decimal('5.00')
        assert Decimal(data['total']) == Decimal('125.00')
        assert data['status'] == Status.PENDING
        assert data['items'] == [{
            'product_id': product.pk,
            'name': 'Tomato',
            'price': 50.0,
            'quantity': 2,
            'total': 100.0,
            'unit': 'kg',
        }]

        product.refresh_from_db()
        assert product.stock_quantity == 8
        transaction = StockTransaction.objects.get(product=product)
        assert transaction.reference_number == data['order_number']

        assert Notification.objects.filter(user=customer, type=Notification.Type.ORDER_PLACED).exists()
        assert Notification.objects.filter(user=store_owner, type=Notification.Type.NEW_ORDER).exists()

    def test_duplicate_lines_are_merged(self, customer, store, product):
        order = place_order(
            customer, store.pk,
            [{'product_id': product.pk, 'quantity': 1}, {'product_id': product.pk, 'quantity': 2}],
            {'street': 'x', 'city': 'y', 'pincode': '751012'}, 'cash'
        )
        assert order.items[0]['quantity'] == 3
        product.refresh_from_db()
        assert product.stock_quantity == 7

    def test_only_customers_place_orders(self, owner_client, store, product):
        response = owner_client.post('/api/orders/', order_payload(store, (product, 1)), format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_empty_items_rejected(self, customer_client, store):
        response = customer_client.post('/api/orders/', order_payload(store), format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'items' in response.data

    def test_invalid_pincode(self, customer_client, store, product):
        payload = order_payload(store, (product, 1))
        payload['delivery_address']['pincode'] = '12AB'
        response = customer_client.post('/api/orders/', payload, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_inactive_store(self, customer_client, store, product):
        store.is_active = False
        store.save()
        response = customer_client.post('/api/orders/', order_payload(store, (product, 1)), format='json')
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['error'] == 'Store not found or inactive'

    def test_closed_store(self, customer_client, store, product):
        store.operating_hours = always_closed()
        store.save()
        response = customer_client.post('/api/orders/', order_payload(store, (product, 1)), format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Store is currently closed'

    def test_product_from_another_store(self, customer_client, store, other_store_product):
        response = customer_client.post(
            '/api/orders/', order_payload(store, (other_store_product, 1)), format='json'
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'does not belong' in response.data['error']

    def test_insufficient_stock_leaves_everything_untouched(self, customer_client, store, product, product2):
        response = customer_client.post(
            '/api/orders/', order_payload(store, (product2, 5), (product, 11)), format='json'
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Insufficient stock for Tomato'

        product2.refresh_from_db()
        assert product2.stock_quantity == 20
        assert not Order.objects.exists()
        assert not StockTransaction.objects.exists()

    def test_minimum_order_amount(self, customer_client, store, product):
        store.minimum_order_amount = Decimal('199.00')
        store.save()
        response = customer_client.post('/api/orders/', order_payload(store, (product, 2)), format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Minimum order amount is ₹199.00'

    def test_scheduled_order_needs_time(self, customer_client, store, product):
        response = customer_client.post(
            '/api/orders/', order_payload(store, (product, 1), is_scheduled=True), format='json'
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'scheduled_time' in response.data

    def test_placement_evicts_product_cache(self, api_client, customer_client, store, product):
        api_client.get(f'/api/products/{product.pk}/')
        customer_client.post('/api/orders/', order_payload(store, (product, 2)), format='json')
        response = api_client.get(f'/api/products/{product.pk}/')
        assert response.data['source'] == 'database'
        assert response.data['stock_quantity'] == 8


# ============== Order Listing and Detail Tests ==============

@pytest.mark.django_db
class TestOrderVisibility:

    def test_customer_sees_own_orders(self, customer_client, other_customer_client, order):
        assert customer_client.get('/api/orders/').data['count'] == 1
        assert other_customer_client.get('/api/orders/').data['count'] == 0

    def test_store_owner_sees_store_orders(self, owner_client, other_owner_client, order):
        assert owner_client.get('/api/orders/').data['count'] == 1
        assert other_owner_client.get('/api/orders/').data['count'] == 0

    def test_status_filter(self, admin_client, order):
        assert admin_client.get('/api/orders/', {'status': 'pending'}).data['count'] == 1
        assert admin_client.get('/api/orders/', {'status': 'delivered'}).data['count'] == 0

    def test_store_filter_must_be_an_id(self, admin_client, order):
        response = admin_client.get('/api/orders/', {'store': 'abc'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'store' in response.data

    def test_date_filters(self, admin_client, order):
        today = timezone.localdate(order.created_at).isoformat()
        assert admin_client.get('/api/orders/', {'start_date': today}).data['count'] == 1

        response = admin_client.get('/api/orders/', {'end_date': 'last week'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'end_date' in response.data

    def test_detail_comes_from_cache(self, customer_client, order):
        response = customer_client.get(f'/api/orders/{order.pk}/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['source'] == 'cache'
        assert response.data['order_number'] == order.order_number

    def test_detail_falls_back_to_database(self, customer_client, order):
        get_entity_cache().clear_order(order.pk)
        first = customer_client.get(f'/api/orders/{order.pk}/')
        second = customer_client.get(f'/api/orders/{order.pk}/')
        assert first.data['source'] == 'database'
        assert second.data['source'] == 'cache'

    def test_cache_write_is_idempotent(self, customer_client, order):
        from orders.utils import cache_order
        cache_order(order)
        cache_order(order)
        response = customer_client.get(f'/api/orders/{order.pk}/')
        assert response.data['id'] == order.pk

    def test_detail_hidden_from_strangers(self, other_customer_client, other_owner_client, order):
        assert other_customer_client.get(f'/api/orders/{order.pk}/').status_code == status.HTTP_403_FORBIDDEN
        assert other_owner_client.get(f'/api/orders/{order.pk}/').status_code == status.HTTP_403_FORBIDDEN

    def test_store_owner_and_admin_see_detail(self, owner_client, admin_client, order):
        assert owner_client.get(f'/api/orders/{order.pk}/').status_code == status.HTTP_200_OK
        assert admin_client.get(f'/api/orders/{order.pk}/').status_code == status.HTTP_200_OK

    def test_missing_order(self, customer_client, db):
        assert customer_client.get('/api/orders/9999/').status_code == status.HTTP_404_NOT_FOUND

    def test_public_tracking(self, api_client, order):
        response = api_client.get(f'/api/orders/tracking/{order.order_number}/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == Status.PENDING
        assert 'customer' not in response.data
        assert 'delivery_address' not in response.data


# ============== Status Change Tests ==============

@pytest.mark.django_db
class TestStatusChanges:

    def test_store_owner_walks_order_to_pickup(self, owner_client, order, customer):
        for target in ['confirmed', 'preparing', 'ready_for_pickup']:
            response = owner_client.put(f'/api/orders/{order.pk}/status/', {'status': target}, format='json')
            assert response.status_code == status.HTTP_200_OK
            assert response.data['order']['status'] == target

        messages = Notification.objects.filter(user=customer, type=Notification.Type.ORDER_STATUS)
        assert messages.count() == 3

    def test_skipping_a_step_is_rejected(self, owner_client, order):
        response = owner_client.put(f'/api/orders/{order.pk}/status/', {'status': 'ready_for_pickup'}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Cannot change order status from pending to ready_for_pickup'

    def test_customer_cannot_drive_status(self, customer_client, order):
        response = customer_client.put(f'/api/orders/{order.pk}/status/', {'status': 'confirmed'}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_other_owner_cannot_drive_status(self, other_owner_client, order):
        response = other_owner_client.put(f'/api/orders/{order.pk}/status/', {'status': 'confirmed'}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_dispatch_requires_assigned_partner(self, admin_client, order):
        move_order(order, Status.READY_FOR_PICKUP)
        response = admin_client.put(f'/api/orders/{order.pk}/status/', {'status': 'out_for_delivery'}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_store_owner_cannot_mark_delivered(self, owner_client, order, delivery_partner):
        Order.objects.filter(pk=order.pk).update(delivery_partner=delivery_partner)
        move_order(order, Status.OUT_FOR_DELIVERY)
        response = owner_client.put(f'/api/orders/{order.pk}/status/', {'status': 'delivered'}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_status_change_refreshes_cached_order(self, owner_client, customer_client, order):
        owner_client.put(f'/api/orders/{order.pk}/status/', {'status': 'confirmed'}, format='json')
        response = customer_client.get(f'/api/orders/{order.pk}/')
        assert response.data['source'] == 'cache'
        assert response.data['status'] == Status.CONFIRMED

    def test_cancel_through_status_restores_stock(self, owner_client, order, product):
        move_order(order, Status.READY_FOR_PICKUP)
        response = owner_client.put(f'/api/orders/{order.pk}/status/', {'status': 'cancelled'}, format='json')
        assert response.status_code == status.HTTP_200_OK
        product.refresh_from_db()
        assert product.stock_quantity == 10

    def test_delivered_stamps_delivery_time(self, order, delivery_partner):
        Order.objects.filter(pk=order.pk).update(delivery_partner=delivery_partner)
        move_order(order, Status.OUT_FOR_DELIVERY)
        order = change_status(order, Status.DELIVERED, delivery_partner)
        assert order.actual_delivery_time is not None


# ============== Cancellation Tests ==============

@pytest.mark.django_db
class TestCancellation:

    REASON = {'reason': 'Ordered the wrong items by mistake'}

    def test_cancel_preparing_order_restores_stock(self, customer_client, order, product):
        move_order(order, Status.CONFIRMED, Status.PREPARING)
        response = customer_client.post(f'/api/orders/{order.pk}/cancel/', self.REASON, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['order']['status'] == Status.CANCELLED
        assert response.data['order']['cancellation_reason'] == self.REASON['reason']

        product.refresh_from_db()
        assert product.stock_quantity == 10
        assert product.total_sold == 0
        restock = StockTransaction.objects.get(product=product, reason=StockTransaction.Reason.CANCELLATION)
        assert restock.quantity == 2
        assert restock.reference_number == order.order_number

    def test_cannot_cancel_delivered_order(self, customer_client, order, product):
        move_order(order, Status.DELIVERED)
        response = customer_client.post(f'/api/orders/{order.pk}/cancel/', self.REASON, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Order cannot be cancelled at this stage'
        product.refresh_from_db()
        assert product.stock_quantity == 8

    def test_cannot_cancel_after_pickup_is_ready(self, customer_client, order):
        move_order(order, Status.READY_FOR_PICKUP)
        response = customer_client.post(f'/api/orders/{order.pk}/cancel/', self.REASON, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_cancelling_twice_restores_stock_once(self, customer, order, product):
        cancel_order(order, customer, self.REASON['reason'])
        with pytest.raises(OrderError):
            cancel_order(order, customer, self.REASON['reason'])
        product.refresh_from_db()
        assert product.stock_quantity == 10

    def test_reason_is_required(self, customer_client, order):
        response = customer_client.post(f'/api/orders/{order.pk}/cancel/', {'reason': 'short'}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_other_customer_cannot_cancel(self, other_customer_client, order):
        response = other_customer_client.post(f'/api/orders/{order.pk}/cancel/', self.REASON, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_delivery_partner_cannot_cancel(self, partner_client, order):
        response = partner_client.post(f'/api/orders/{order.pk}/cancel/', self.REASON, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_customer_gets_cancellation_notice(self, customer_client, customer, order):
        customer_client.post(f'/api/orders/{order.pk}/cancel/', self.REASON, format='json')
        assert Notification.objects.filter(user=customer, type=Notification.Type.ORDER_CANCELLED).exists()


# ============== Payment State Tests ==============

@pytest.mark.django_db
class TestPaymentState:

    def test_mark_paid_confirms_pending_order(self, order, customer):
        order = mark_paid(order, 'pay_123')
        assert order.payment_status == Order.PaymentStatus.PAID
        assert order.status == Status.CONFIRMED
        assert Notification.objects.filter(user=customer, type=Notification.Type.PAYMENT).exists()

    def test_refund_restores_stock(self, order, product, admin_user):
        order = mark_paid(order, 'pay_123')
        order = refund_order(order, admin_user, refund_id='rfnd_1')
        assert order.status == Status.REFUNDED
        assert order.payment_status == Order.PaymentStatus.REFUNDED
        assert order.refund_amount == order.total
        product.refresh_from_db()
        assert product.stock_quantity == 10

    def test_unpaid_order_cannot_be_refunded(self, order, admin_user):
        with pytest.raises(OrderError) as exc_info:
            refund_order(order, admin_user)
        assert 'Only paid orders' in str(exc_info.value)


# ============== Delivery Assignment Tests ==============

@pytest.mark.django_db
class TestAssignDelivery:

    def test_owner_assigns_partner(self, owner_client, order, delivery_partner):
        response = owner_client.put(f'/api/orders/{order.pk}/assign-delivery/', {
            'delivery_partner_id': delivery_partner.pk
        }, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['order']['delivery_partner']['id'] == delivery_partner.pk
        assert Notification.objects.filter(
            user=delivery_partner, type=Notification.Type.DELIVERY_ASSIGNED
        ).exists()

    def test_unknown_partner(self, owner_client, order, customer):
        response = owner_client.put(f'/api/orders/{order.pk}/assign-delivery/', {
            'delivery_partner_id': customer.pk
        }, format='json')
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data['error'] == 'Delivery partner not found or inactive'

    def test_other_owner_cannot_assign(self, other_owner_client, order, delivery_partner):
        response = other_owner_client.put(f'/api/orders/{order.pk}/assign-delivery/', {
            'delivery_partner_id': delivery_partner.pk
        }, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_cannot_assign_to_finished_order(self, owner_client, order, delivery_partner):
        move_order(order, Status.CANCELLED)
        response = owner_client.put(f'/api/orders/{order.pk}/assign-delivery/', {
            'delivery_partner_id': delivery_partner.pk
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST


# ============== Rating Tests ==============

@pytest.mark.django_db
class TestRateOrder:

    def test_rate_delivered_order_updates_store_rating(self, customer_client, order, store):
        move_order(order, Status.DELIVERED)
        response = customer_client.post(f'/api/orders/{order.pk}/rate/', {
            'rating': 4, 'review': 'Fresh tomatoes'
        }, format='json')
        assert response.status_code == status.HTTP_200_OK
        store.refresh_from_db()
        assert store.rating == Decimal('4.00')
        assert store.total_ratings == 1

    def test_only_delivered_orders_can_be_rated(self, customer_client, order):
        response = customer_client.post(f'/api/orders/{order.pk}/rate/', {'rating': 5}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_order_is_rated_once(self, customer_client, order):
        move_order(order, Status.DELIVERED)
        customer_client.post(f'/api/orders/{order.pk}/rate/', {'rating': 5}, format='json')
        response = customer_client.post(f'/api/orders/{order.pk}/rate/', {'rating': 1}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Order has already been rated'

    def test_rating_range(self, customer_client, order):
        move_order(order, Status.DELIVERED)
        response = customer_client.post(f'/api/orders/{order.pk}/rate/', {'rating': 6}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_other_customer_cannot_rate(self, other_customer, order):
        move_order(order, Status.DELIVERED)
        response = client_for(other_customer).post(f'/api/orders/{order.pk}/rate/', {'rating': 5}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN
