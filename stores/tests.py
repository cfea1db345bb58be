"""
Tests for the Stores module.
Covers: opening hours, rating averages, browsing, geo search, caching and owner management.
"""
import pytest
from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock, patch
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework import status

from conftest import always_closed, always_open
from integrations.cache import get_entity_cache
from integrations.storage import S3BlobStore
from stores.models import Store
from stores.utils import default_operating_hours, is_open_at, running_average


STORE_PAYLOAD = {
    'name': 'Corner Mart',
    'category': 'convenience',
    'address': {'street': 'Jaydev Vihar', 'city': 'Bhubaneswar', 'pincode': '751013'},
    'coordinates': {'lat': 20.2986, 'lng': 85.8181},
    'phone': '9437000099',
    'delivery_fee': '10.00',
}


# ============== Store Utility Tests ==============

class TestOperatingHours:

    def test_open_inside_hours(self):
        monday_noon = datetime(2024, 1, 1, 12, 0)
        assert is_open_at(default_operating_hours(), monday_noon) is True

    def test_closing_minute_is_inclusive(self):
        monday_close = datetime(2024, 1, 1, 22, 0)
        assert is_open_at(default_operating_hours(), monday_close) is True

    def test_closed_after_hours(self):
        monday_late = datetime(2024, 1, 1, 22, 1)
        assert is_open_at(default_operating_hours(), monday_late) is False

    def test_closed_day(self):
        assert is_open_at(always_closed(), datetime(2024, 1, 1, 12, 0)) is False

    def test_missing_day_is_closed(self):
        assert is_open_at({}, datetime(2024, 1, 1, 12, 0)) is False


class TestRunningAverage:

    def test_first_rating(self):
        assert running_average(Decimal('0.00'), 0, 4) == Decimal('4.00')

    def test_folds_into_average(self):
        assert running_average(Decimal('4.00'), 2, 5) == Decimal('4.33')


# ============== Store Browsing Tests ==============

@pytest.mark.django_db
class TestStoreBrowsing:

    def test_list_is_public(self, api_client, store, other_store):
        response = api_client.get('/api/stores/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 2

    def test_inactive_stores_are_hidden(self, api_client, store, other_store):
        other_store.is_active = False
        other_store.save()
        response = api_client.get('/api/stores/')
        assert [s['id'] for s in response.data['results']] == [store.pk]

    def test_filter_by_radius_sorted_by_distance(self, api_client, store, other_store):
        response = api_client.get('/api/stores/', {
            'lat': 20.3538, 'lng': 85.8192, 'radius': 20, 'sort': 'distance'
        })
        ids = [s['id'] for s in response.data['results']]
        assert ids == [other_store.pk, store.pk]

    def test_radius_excludes_far_stores(self, api_client, store, other_store):
        response = api_client.get('/api/stores/', {'lat': 20.2961, 'lng': 85.8245, 'radius': 1})
        assert [s['id'] for s in response.data['results']] == [store.pk]

    def test_invalid_coordinates(self, api_client, store):
        response = api_client.get('/api/stores/', {'lat': 200, 'lng': 85.8})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_min_rating_must_be_a_number(self, api_client, store):
        response = api_client.get('/api/stores/', {'min_rating': 'high'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'min_rating' in response.data

    def test_is_open_filter(self, api_client, store, other_store):
        other_store.operating_hours = always_closed()
        other_store.save()
        response = api_client.get('/api/stores/', {'is_open': 'true'})
        assert [s['id'] for s in response.data['results']] == [store.pk]

    def test_nearby(self, api_client, store, other_store):
        response = api_client.get('/api/stores/nearby/', {'lat': 20.2961, 'lng': 85.8245})
        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        assert response.data['results'][0]['distance_km'] == 0

    def test_retrieve_includes_available_products(self, api_client, store, product, product2):
        product2.is_active = False
        product2.save()
        response = api_client.get(f'/api/stores/{store.pk}/')
        assert response.status_code == status.HTTP_200_OK
        assert [p['id'] for p in response.data['products']] == [product.pk]
        assert response.data['is_open'] is True

    def test_retrieve_is_served_from_cache_the_second_time(self, api_client, store):
        first = api_client.get(f'/api/stores/{store.pk}/')
        second = api_client.get(f'/api/stores/{store.pk}/')
        assert first.data['source'] == 'database'
        assert second.data['source'] == 'cache'
        assert second.data['name'] == first.data['name']

    def test_retrieve_missing_store(self, api_client, db):
        response = api_client.get('/api/stores/9999/')
        assert response.status_code == status.HTTP_404_NOT_FOUND


# ============== Store Management Tests ==============

@pytest.mark.django_db
class TestStoreManagement:

    def test_store_owner_creates_store(self, owner_client, store_owner):
        response = owner_client.post('/api/stores/', STORE_PAYLOAD, format='json')
        assert response.status_code == status.HTTP_201_CREATED
        store = Store.objects.get(pk=response.data['id'])
        assert store.owner == store_owner
        assert get_entity_cache().get_store(store.pk).hit

    def test_customer_cannot_create_store(self, customer_client):
        response = customer_client.post('/api/stores/', STORE_PAYLOAD, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_create_requires_valid_coordinates(self, owner_client):
        payload = {**STORE_PAYLOAD, 'coordinates': {'lat': 95, 'lng': 10}}
        response = owner_client.post('/api/stores/', payload, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'coordinates' in response.data

    def test_owner_updates_store_and_cache(self, owner_client, api_client, store):
        api_client.get(f'/api/stores/{store.pk}/')
        response = owner_client.patch(f'/api/stores/{store.pk}/', {'name': 'Fresh Basket Plus'}, format='json')
        assert response.status_code == status.HTTP_200_OK

        cached = api_client.get(f'/api/stores/{store.pk}/')
        assert cached.data['source'] == 'cache'
        assert cached.data['name'] == 'Fresh Basket Plus'

    def test_other_owner_cannot_update(self, other_owner_client, store):
        response = other_owner_client.patch(f'/api/stores/{store.pk}/', {'name': 'Hijacked'}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_can_update_any_store(self, admin_client, store):
        response = admin_client.patch(f'/api/stores/{store.pk}/', {'description': 'Reviewed'}, format='json')
        assert response.status_code == status.HTTP_200_OK

    def test_delete_deactivates(self, owner_client, store):
        response = owner_client.delete(f'/api/stores/{store.pk}/')
        assert response.status_code == status.HTTP_200_OK
        store.refresh_from_db()
        assert store.is_active is False
        assert not get_entity_cache().get_store(store.pk).hit

    def test_my_stores(self, owner_client, store, other_store):
        response = owner_client.get('/api/stores/my-stores/')
        assert response.status_code == status.HTTP_200_OK
        assert [s['id'] for s in response.data] == [store.pk]

    def test_update_operating_hours(self, owner_client, store):
        response = owner_client.put(f'/api/stores/{store.pk}/operating-hours/', {
            'operating_hours': {'sunday': {'open': '10:00', 'close': '14:00', 'is_open': True}}
        }, format='json')
        assert response.status_code == status.HTTP_200_OK
        store.refresh_from_db()
        assert store.operating_hours['sunday']['open'] == '10:00'
        assert store.operating_hours['monday'] == always_open()['monday']

    def test_operating_hours_validation(self, owner_client, store):
        response = owner_client.put(f'/api/stores/{store.pk}/operating-hours/', {
            'operating_hours': {'funday': {'open': '10:00', 'close': '14:00'}}
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_logo_upload_falls_back_to_data_uri(self, owner_client, store):
        logo = SimpleUploadedFile('logo.png', b'\x89PNG fake', content_type='image/png')
        response = owner_client.post(f'/api/stores/{store.pk}/logo/', {'logo': logo}, format='multipart')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['logo'].startswith('data:image/png;base64,')

    def test_replacing_banner_removes_old_s3_object(self, owner_client, store):
        client = MagicMock()
        blob_store = S3BlobStore('grocery-images', 'ap-south-1', client=client)
        store.banner = blob_store.public_url(f'stores/{store.pk}/banner/old.png')
        store.save()

        banner = SimpleUploadedFile('banner.png', b'\x89PNG fake', content_type='image/png')
        with patch('integrations.storage.get_blob_store', return_value=blob_store):
            response = owner_client.post(f'/api/stores/{store.pk}/banner/', {'banner': banner}, format='multipart')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['banner'].startswith(f'https://grocery-images.s3.amazonaws.com/stores/{store.pk}/banner/')
        client.delete_object.assert_called_once_with(Bucket='grocery-images', Key=f'stores/{store.pk}/banner/old.png')

    def test_logo_upload_requires_file(self, owner_client, store):
        response = owner_client.post(f'/api/stores/{store.pk}/logo/', {}, format='multipart')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
