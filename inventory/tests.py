"""
Tests for the Inventory module.
Covers: Product model, catalogue browsing, product caching, owner management and manual stock updates.
"""
import pytest
from decimal import Decimal
from unittest.mock import patch
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework import status

from integrations.cache import get_entity_cache
from inventory.models import Category, Product
from stock.models import StockTransaction


# ============== Product Model Tests ==============

@pytest.mark.django_db
class TestProductModel:

    def test_available_only_when_active_and_in_stock(self, product):
        assert product.is_available is True

        product.stock_quantity = 0
        product.save(update_fields=['stock_quantity'])
        product.refresh_from_db()
        assert product.is_available is False

    def test_inactive_product_is_unavailable(self, product):
        product.is_active = False
        product.save()
        assert product.is_available is False

    def test_low_stock(self, product):
        product.stock_quantity = product.min_stock_level
        assert product.is_low_stock is True

    def test_discounted_price(self, product):
        product.discount_percentage = Decimal('10.00')
        assert product.discounted_price == Decimal('45.00')

    def test_str(self, product):
        assert str(product) == 'FB-TOMATO - Tomato'


# ============== Product Browsing Tests ==============

@pytest.mark.django_db
class TestProductBrowsing:

    def test_list_is_public(self, api_client, product, product2):
        response = api_client.get('/api/products/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 2

    def test_filters(self, api_client, product, product2, other_store_product):
        response = api_client.get('/api/products/', {'store': product.store_id, 'max_price': '30'})
        assert [p['id'] for p in response.data['results']] == [product2.pk]

    def test_in_stock_filter(self, api_client, product, product2):
        Product.objects.filter(pk=product2.pk).update(stock_quantity=0, is_available=False)
        response = api_client.get('/api/products/', {'in_stock': 'true'})
        assert [p['id'] for p in response.data['results']] == [product.pk]

    def test_sort_by_price(self, api_client, product, product2):
        response = api_client.get('/api/products/', {'sort': 'price_high'})
        assert [p['id'] for p in response.data['results']] == [product.pk, product2.pk]

    def test_category_listing_is_cached(self, api_client, product):
        first = api_client.get('/api/products/', {'category': 'fruits-vegetables'})
        second = api_client.get('/api/products/', {'category': 'fruits-vegetables'})
        assert first.data['source'] == 'database'
        assert second.data['source'] == 'cache'
        assert second.data['count'] == 1

    def test_retrieve_is_cached(self, api_client, product):
        first = api_client.get(f'/api/products/{product.pk}/')
        second = api_client.get(f'/api/products/{product.pk}/')
        assert first.data['source'] == 'database'
        assert second.data['source'] == 'cache'
        assert second.data['sku'] == product.sku

    def test_search(self, api_client, product, product2):
        response = api_client.get('/api/products/search/', {'q': 'milk'})
        assert response.status_code == status.HTTP_200_OK
        assert [p['id'] for p in response.data['results']] == [product2.pk]

    def test_search_requires_query(self, api_client, db):
        response = api_client.get('/api/products/search/')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Search query is required'

    def test_featured(self, api_client, product, product2):
        product2.is_featured = True
        product2.save()
        response = api_client.get('/api/products/featured/')
        assert [p['id'] for p in response.data] == [product2.pk]

    def test_featured_limit_must_be_a_number(self, api_client, product):
        response = api_client.get('/api/products/featured/', {'limit': 'abc'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'limit' in response.data

    def test_price_filter_must_be_numeric(self, api_client, product):
        response = api_client.get('/api/products/', {'min_price': 'cheap'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'min_price' in response.data

    def test_store_filter_must_be_an_id(self, api_client, product):
        response = api_client.get('/api/products/', {'store': 'abc'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'store' in response.data

    def test_blank_filters_are_ignored(self, api_client, product, product2):
        response = api_client.get('/api/products/', {'store': '', 'min_price': ''})
        assert response.data['count'] == 2

    def test_categories_with_counts(self, api_client, product, product2):
        Category.objects.create(slug='dairy-bakery', name='Milk & Bread', sort_order=-1)
        response = api_client.get('/api/products/categories/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data[0]['name'] == 'Milk & Bread'
        assert response.data[0]['product_count'] == 1
        counts = {c['slug']: c['product_count'] for c in response.data}
        assert counts['fruits-vegetables'] == 1
        assert counts['snacks'] == 0


# ============== Product Management Tests ==============

@pytest.mark.django_db
class TestProductManagement:

    def payload(self, store, **overrides):
        return {
            'store': store.pk,
            'name': 'Basmati Rice',
            'category': 'pantry-staples',
            'sku': 'FB-RICE',
            'price': '130.00',
            'unit': 'pack',
            'stock_quantity': 25,
            **overrides,
        }

    def test_owner_creates_product_with_initial_stock(self, owner_client, store, store_owner):
        response = owner_client.post('/api/products/', self.payload(store), format='json')
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['stock_quantity'] == 25
        assert response.data['is_available'] is True

        transaction = StockTransaction.objects.get(product_id=response.data['id'])
        assert transaction.transaction_type == StockTransaction.Type.IN
        assert transaction.quantity_after == 25
        assert transaction.performed_by == store_owner

    def test_owner_cannot_add_to_foreign_store(self, owner_client, other_store):
        response = owner_client.post('/api/products/', self.payload(other_store), format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_customer_cannot_create(self, customer_client, store):
        response = customer_client.post('/api/products/', self.payload(store), format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_original_price_not_below_price(self, owner_client, store):
        response = owner_client.post('/api/products/', self.payload(store, original_price='100.00'), format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'original_price' in response.data

    def test_duplicate_sku(self, owner_client, store, product):
        response = owner_client.post('/api/products/', self.payload(store, sku=product.sku), format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_update_refreshes_cache(self, owner_client, api_client, product):
        api_client.get(f'/api/products/{product.pk}/')
        response = owner_client.patch(f'/api/products/{product.pk}/', {'price': '55.00'}, format='json')
        assert response.status_code == status.HTTP_200_OK

        cached = get_entity_cache().get_product(product.pk)
        assert cached.hit
        assert cached.value['price'] == '55.00'

    def test_update_stock_quantity_records_adjustment(self, owner_client, product):
        response = owner_client.patch(f'/api/products/{product.pk}/', {'stock_quantity': 4}, format='json')
        assert response.status_code == status.HTTP_200_OK
        transaction = StockTransaction.objects.get(product=product)
        assert transaction.transaction_type == StockTransaction.Type.ADJUSTMENT
        assert (transaction.quantity_before, transaction.quantity_after) == (10, 4)

    def test_other_owner_cannot_update(self, other_owner_client, product):
        response = other_owner_client.patch(f'/api/products/{product.pk}/', {'price': '1.00'}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_delete_deactivates(self, owner_client, product):
        response = owner_client.delete(f'/api/products/{product.pk}/')
        assert response.status_code == status.HTTP_200_OK
        product.refresh_from_db()
        assert product.is_active is False
        assert product.is_available is False

    def test_rate_product(self, customer_client, product):
        customer_client.post(f'/api/products/{product.pk}/rate/', {'rating': 5}, format='json')
        response = customer_client.post(f'/api/products/{product.pk}/rate/', {'rating': 4}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['total_ratings'] == 2
        assert Decimal(str(response.data['rating'])) == Decimal('4.50')

    def test_rating_locks_the_product_row(self, customer_client, product):
        with patch.object(Product.objects, 'select_for_update', wraps=Product.objects.select_for_update) as lock:
            response = customer_client.post(f'/api/products/{product.pk}/rate/', {'rating': 3}, format='json')
        assert response.status_code == status.HTTP_200_OK
        lock.assert_called_once_with()

        product.refresh_from_db()
        assert product.total_ratings == 1
        assert product.rating == Decimal('3.00')

    def test_upload_images(self, owner_client, product):
        images = [
            SimpleUploadedFile('a.jpg', b'first', content_type='image/jpeg'),
            SimpleUploadedFile('b.jpg', b'second', content_type='image/jpeg'),
        ]
        response = owner_client.post(f'/api/products/{product.pk}/images/', {'images': images}, format='multipart')
        assert response.status_code == status.HTTP_200_OK
        assert len(response.data['images']) == 2
        product.refresh_from_db()
        assert product.thumbnail == product.images[0]

    def test_upload_too_many_images(self, owner_client, product):
        images = [SimpleUploadedFile(f'{i}.jpg', b'x', content_type='image/jpeg') for i in range(6)]
        response = owner_client.post(f'/api/products/{product.pk}/images/', {'images': images}, format='multipart')
        assert response.status_code == status.HTTP_400_BAD_REQUEST


# ============== Manual Stock Update Tests ==============

@pytest.mark.django_db
class TestProductStockUpdate:

    def test_add(self, owner_client, product):
        response = owner_client.put(f'/api/products/{product.pk}/stock/', {
            'quantity': 5, 'operation': 'add'
        }, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['product']['stock_quantity'] == 15

    def test_subtract_bottoms_out_at_zero(self, owner_client, product):
        response = owner_client.put(f'/api/products/{product.pk}/stock/', {
            'quantity': 50, 'operation': 'subtract'
        }, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['product']['stock_quantity'] == 0
        assert response.data['product']['is_available'] is False

        transaction = StockTransaction.objects.get(product=product)
        assert transaction.quantity == 10
        assert transaction.reason == StockTransaction.Reason.MANUAL

    def test_set(self, owner_client, product):
        response = owner_client.put(f'/api/products/{product.pk}/stock/', {'quantity': 3}, format='json')
        assert response.data['product']['stock_quantity'] == 3

    def test_negative_quantity_rejected(self, owner_client, product):
        response = owner_client.put(f'/api/products/{product.pk}/stock/', {
            'quantity': -1, 'operation': 'set'
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_other_owner_forbidden(self, other_owner_client, product):
        response = other_owner_client.put(f'/api/products/{product.pk}/stock/', {'quantity': 3}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_stock_update_evicts_category_listing(self, owner_client, api_client, product):
        api_client.get('/api/products/', {'category': product.category})
        owner_client.put(f'/api/products/{product.pk}/stock/', {'quantity': 0}, format='json')
        response = api_client.get('/api/products/', {'category': product.category})
        assert response.data['source'] == 'database'
