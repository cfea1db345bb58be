"""
Pytest fixtures for the marketplace API tests.
Provides accounts for every role, authenticated clients, stores and products.
"""
import pytest
from decimal import Decimal
from django.core.cache import cache
from rest_framework.test import APIClient

from stores.utils import WEEKDAYS
from users.models import User
from users.tokens import create_access_token


@pytest.fixture(autouse=True)
def clear_caches():
    """Entity cache entries and throttle counters live in the default cache"""
    cache.clear()
    yield
    cache.clear()


# ============== User Fixtures ==============

@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email='admin@test.com',
        password='testpass123',
        name='Admin User',
        phone='9000000001',
        role=User.Role.ADMIN
    )


@pytest.fixture
def store_owner(db):
    return User.objects.create_user(
        email='owner@test.com',
        password='testpass123',
        name='Store Owner',
        phone='9000000002',
        role=User.Role.STORE_OWNER
    )


@pytest.fixture
def other_store_owner(db):
    return User.objects.create_user(
        email='owner2@test.com',
        password='testpass123',
        name='Other Owner',
        phone='9000000003',
        role=User.Role.STORE_OWNER
    )


@pytest.fixture
def delivery_partner(db):
    return User.objects.create_user(
        email='rider@test.com',
        password='testpass123',
        name='Delivery Partner',
        phone='9000000004',
        role=User.Role.DELIVERY_PARTNER,
        current_location={'lat': 20.2961, 'lng': 85.8245}
    )


@pytest.fixture
def customer(db):
    return User.objects.create_user(
        email='customer@test.com',
        password='testpass123',
        name='Test Customer',
        phone='9000000005',
        role=User.Role.CUSTOMER
    )


@pytest.fixture
def other_customer(db):
    return User.objects.create_user(
        email='customer2@test.com',
        password='testpass123',
        name='Other Customer',
        phone='9000000006',
        role=User.Role.CUSTOMER
    )


# ============== API Client Fixtures ==============

def client_for(user):
    """API client sending a bearer token for ``user``"""
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {create_access_token(user)}')
    return client


@pytest.fixture
def api_client():
    """Anonymous API client"""
    return APIClient()


@pytest.fixture
def admin_client(admin_user):
    return client_for(admin_user)


@pytest.fixture
def owner_client(store_owner):
    return client_for(store_owner)


@pytest.fixture
def other_owner_client(other_store_owner):
    return client_for(other_store_owner)


@pytest.fixture
def partner_client(delivery_partner):
    return client_for(delivery_partner)


@pytest.fixture
def customer_client(customer):
    return client_for(customer)


@pytest.fixture
def other_customer_client(other_customer):
    return client_for(other_customer)


# ============== Store Fixtures ==============

def always_open():
    return {day: {'open': '00:00', 'close': '23:59', 'is_open': True} for day in WEEKDAYS}


def always_closed():
    return {day: {'open': '08:00', 'close': '22:00', 'is_open': False} for day in WEEKDAYS}


@pytest.fixture
def store(db, store_owner):
    from stores.models import Store
    return Store.objects.create(
        owner=store_owner,
        name='Fresh Basket',
        description='Neighbourhood grocery',
        address={'street': 'Saheed Nagar', 'city': 'Bhubaneswar', 'pincode': '751007'},
        coordinates={'lat': 20.2961, 'lng': 85.8245},
        phone='9437000001',
        operating_hours=always_open(),
        delivery_fee=Decimal('20.00'),
        minimum_order_amount=Decimal('0.00'),
    )


@pytest.fixture
def other_store(db, other_store_owner):
    from stores.models import Store
    return Store.objects.create(
        owner=other_store_owner,
        name='Patia Daily Needs',
        address={'street': 'KIIT Road', 'city': 'Bhubaneswar', 'pincode': '751024'},
        coordinates={'lat': 20.3538, 'lng': 85.8192},
        phone='9437000002',
        operating_hours=always_open(),
        delivery_fee=Decimal('15.00'),
    )


# ============== Product Fixtures ==============

@pytest.fixture
def product(db, store):
    from inventory.models import Product
    return Product.objects.create(
        store=store,
        name='Tomato',
        category='fruits-vegetables',
        sku='FB-TOMATO',
        price=Decimal('50.00'),
        unit='kg',
        stock_quantity=10,
        min_stock_level=3,
    )


@pytest.fixture
def product2(db, store):
    from inventory.models import Product
    return Product.objects.create(
        store=store,
        name='Toned Milk',
        category='dairy-bakery',
        sku='FB-MILK',
        price=Decimal('27.00'),
        unit='pack',
        stock_quantity=20,
    )


@pytest.fixture
def other_store_product(db, other_store):
    from inventory.models import Product
    return Product.objects.create(
        store=other_store,
        name='Potato Chips',
        category='snacks',
        sku='PD-CHIPS',
        price=Decimal('20.00'),
        stock_quantity=50,
    )


# ============== Order Fixtures ==============

DELIVERY_ADDRESS = {
    'street': 'Unit 4, Nayapalli',
    'city': 'Bhubaneswar',
    'pincode': '751012',
    'coordinates': {'lat': 20.2899, 'lng': 85.8106},
}


@pytest.fixture
def delivery_address():
    return dict(DELIVERY_ADDRESS)


@pytest.fixture
def order(db, customer, store, product):
    """Pending order for two units of ``product`` placed through the order service"""
    from orders.services import place_order
    return place_order(
        customer=customer,
        store_id=store.pk,
        items=[{'product_id': product.pk, 'quantity': 2}],
        delivery_address=dict(DELIVERY_ADDRESS),
        payment_method='cash',
    )


def move_order(order, *statuses):
    """Walk ``order`` through ``statuses`` with direct updates, bypassing the lifecycle checks"""
    from orders.models import Order
    for status in statuses:
        Order.objects.filter(pk=order.pk).update(status=status)
    order.refresh_from_db()
    return order
