"""
Tests for the Analytics module.
Covers: dashboard, sales and revenue series, product performance, customers and delivery statistics.
"""
import pytest
from datetime import timedelta
from rest_framework import status

from analytics.views import customer_segment, delivery_time_bucket, growth
from conftest import move_order
from orders.models import Order
from stock.services import remove_stock

Status = Order.Status


# ============== Helper Tests ==============

class TestHelpers:

    def test_growth(self):
        assert growth(150, 100) == 50.0
        assert growth(50, 100) == -50.0
        assert growth(10, None) == 0
        assert growth(10, 0) == 0

    @pytest.mark.parametrize('count,segment', [(0, 'New'), (1, 'Regular'), (5, 'Regular'), (6, 'Frequent'),
                                               (20, 'Frequent'), (21, 'VIP')])
    def test_customer_segment(self, count, segment):
        assert customer_segment(count) == segment

    @pytest.mark.parametrize('minutes,bucket', [(30, 'Under 1 hour'), (60, '1-2 hours'), (150, '2-3 hours'),
                                                (200, 'Over 3 hours')])
    def test_delivery_time_bucket(self, minutes, bucket):
        assert delivery_time_bucket(minutes) == bucket


# ============== Dashboard Tests ==============

@pytest.mark.django_db
class TestDashboard:

    def test_owner_dashboard(self, owner_client, order, store, product, product2):
        move_order(order, Status.DELIVERED)
        response = owner_client.get('/api/analytics/dashboard/')
        assert response.status_code == status.HTTP_200_OK

        overview = response.data['overview']
        assert overview['total_stores'] == 1
        assert overview['total_products'] == 2
        assert overview['total_orders'] == 1
        assert overview['total_revenue'] == 125.0
        assert overview['completed_orders'] == 1
        assert 'total_customers' not in overview

        assert response.data['recent_orders'][0]['order_number'] == order.order_number
        assert response.data['top_stores'][0]['id'] == store.pk

    def test_pending_orders_are_not_revenue(self, owner_client, order):
        response = owner_client.get('/api/analytics/dashboard/')
        assert response.data['overview']['total_revenue'] == 0
        assert response.data['overview']['pending_orders'] == 1
        assert response.data['top_stores'] == []

    def test_other_owner_sees_nothing(self, other_owner_client, order, other_store):
        response = other_owner_client.get('/api/analytics/dashboard/')
        assert response.data['overview']['total_orders'] == 0

    def test_admin_gets_user_counts(self, admin_client, customer, other_customer, delivery_partner):
        response = admin_client.get('/api/analytics/dashboard/')
        assert response.data['overview']['total_customers'] == 2
        assert response.data['overview']['total_delivery_partners'] == 1

    def test_customers_are_forbidden(self, customer_client):
        response = customer_client.get('/api/analytics/dashboard/')
        assert response.status_code == status.HTTP_403_FORBIDDEN


# ============== Sales and Revenue Tests ==============

@pytest.mark.django_db
class TestSalesAndRevenue:

    def test_daily_sales(self, owner_client, order):
        move_order(order, Status.CONFIRMED)
        response = owner_client.get('/api/analytics/sales/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['period'] == 'daily'
        assert len(response.data['sales_data']) == 1
        assert response.data['sales_data'][0]['revenue'] == 125.0
        assert response.data['summary'] == {
            'total_orders': 1,
            'total_revenue': 125.0,
            'average_order_value': 125.0,
            'total_completed': 0,
            'total_cancelled': 0,
        }

    def test_unknown_period(self, owner_client, db):
        response = owner_client.get('/api/analytics/sales/', {'period': 'hourly'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_revenue_splits_commission(self, owner_client, order):
        move_order(order, Status.DELIVERED)
        response = owner_client.get('/api/analytics/revenue/', {'period': 'monthly'})
        assert response.status_code == status.HTTP_200_OK
        assert response.data['commission_rate'] == 0.1

        row = response.data['revenue_data'][0]
        assert row['gross_revenue'] == 125.0
        assert row['commission'] == 12.5
        assert row['net_revenue'] == 112.5
        assert row['delivery_revenue'] == 20.0
        assert row['tax_collected'] == 5.0

    def test_cancelled_orders_excluded_from_revenue(self, owner_client, order):
        move_order(order, Status.CANCELLED)
        response = owner_client.get('/api/analytics/revenue/')
        assert response.data['revenue_data'] == []
        assert response.data['summary']['gross_revenue'] == 0

    def test_date_filter(self, owner_client, order):
        move_order(order, Status.DELIVERED)
        tomorrow = (order.created_at + timedelta(days=2)).date().isoformat()
        response = owner_client.get('/api/analytics/sales/', {'start_date': tomorrow})
        assert response.data['sales_data'] == []

    def test_date_filter_must_be_a_date(self, owner_client, order):
        response = owner_client.get('/api/analytics/sales/', {'start_date': '2024-13-45'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'start_date' in response.data


# ============== Product Analytics Tests ==============

@pytest.mark.django_db
class TestProductAnalytics:

    def test_top_sellers_low_stock_and_categories(self, owner_client, product, product2):
        remove_stock(product, 8)
        remove_stock(product2, 1)

        response = owner_client.get('/api/analytics/products/')
        assert response.status_code == status.HTTP_200_OK
        assert [p['id'] for p in response.data['top_selling_products']] == [product.pk, product2.pk]
        assert response.data['top_selling_products'][0]['sales_value'] == 400.0
        assert [p['id'] for p in response.data['low_stock_products']] == [product.pk]

        categories = {c['category']: c for c in response.data['category_performance']}
        assert categories['fruits-vegetables']['units_sold'] == 8
        assert categories['dairy-bakery']['sales_value'] == 27.0

    def test_scoped_to_owner(self, other_owner_client, product, other_store_product):
        remove_stock(product, 1)
        response = other_owner_client.get('/api/analytics/products/')
        assert response.data['top_selling_products'] == []

    def test_limit_must_be_a_number(self, owner_client, product):
        response = owner_client.get('/api/analytics/products/', {'limit': 'ten'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'limit' in response.data

    def test_store_filter_must_be_an_id(self, owner_client, product):
        response = owner_client.get('/api/analytics/dashboard/', {'store': 'abc'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'store' in response.data


# ============== Customer and Delivery Analytics Tests ==============

@pytest.mark.django_db
class TestCustomerAnalytics:

    def test_customers(self, admin_client, order, other_customer):
        response = admin_client.get('/api/analytics/customers/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['summary']['total_customers'] == 2
        assert response.data['summary']['active_customers'] == 1
        assert response.data['retention_rate'] == 50.0
        assert response.data['top_customers'][0]['total_spent'] == 125.0

        segments = {s['segment']: s['customer_count'] for s in response.data['customer_segments']}
        assert segments == {'New': 1, 'Regular': 1, 'Frequent': 0, 'VIP': 0}

    def test_owner_forbidden(self, owner_client):
        response = owner_client.get('/api/analytics/customers/')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_period(self, admin_client, db):
        response = admin_client.get('/api/analytics/customers/', {'period': '2w'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestDeliveryAnalytics:

    def test_delivery_stats(self, admin_client, order, delivery_partner):
        Order.objects.filter(pk=order.pk).update(
            status=Status.DELIVERED,
            delivery_partner=delivery_partner,
            actual_delivery_time=order.created_at + timedelta(minutes=45),
        )
        response = admin_client.get('/api/analytics/delivery/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['average_delivery_minutes'] == 45.0

        partner = response.data['top_delivery_partners'][0]
        assert partner['id'] == delivery_partner.pk
        assert partner['delivery_count'] == 1
        assert partner['total_earnings'] == 20.0

        distribution = {d['time_range']: d['order_count'] for d in response.data['delivery_time_distribution']}
        assert distribution['Under 1 hour'] == 1

    def test_no_deliveries(self, admin_client, db):
        response = admin_client.get('/api/analytics/delivery/')
        assert response.data['average_delivery_minutes'] == 0
        assert response.data['top_delivery_partners'] == []
