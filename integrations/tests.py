"""
Tests for the Integrations module.
Covers: advisory results, the entity cache backends, S3 image storage and the health endpoints.
"""
import json
import time
import pytest
from datetime import timedelta
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework import status

from integrations.cache import DjangoCacheBackend, DynamoDBCacheBackend, EntityCache
from integrations.results import AdvisoryResult
from integrations.storage import S3BlobStore, discard_image, save_image


def client_error(operation='GetItem'):
    return ClientError({'Error': {'Code': 'ResourceNotFoundException', 'Message': 'missing'}}, operation)


# ============== Advisory Result Tests ==============

class TestAdvisoryResult:

    def test_success_with_value_is_a_hit(self):
        result = AdvisoryResult.success({'id': 1})
        assert result.ok and result.hit
        assert result.value_or('fallback') == {'id': 1}

    def test_success_without_value_is_a_miss(self):
        result = AdvisoryResult.success(None)
        assert result.ok and not result.hit

    def test_failure(self):
        error = RuntimeError('down')
        result = AdvisoryResult.failure(error)
        assert not result.ok and not result.hit
        assert result.error is error
        assert result.value_or('fallback') == 'fallback'


# ============== Entity Cache Tests ==============

class TestDjangoCacheBackend:

    def test_round_trip_through_entity_cache(self):
        cache = EntityCache(DjangoCacheBackend())
        assert cache.cache_store(7, {'id': 7, 'name': 'Fresh Basket'}).ok
        assert cache.get_store(7).value == {'id': 7, 'name': 'Fresh Basket'}

        cache.clear_store(7)
        assert not cache.get_store(7).hit

    def test_namespaces_do_not_collide(self):
        cache = EntityCache(DjangoCacheBackend())
        cache.cache_product(1, {'kind': 'product'})
        cache.cache_order(1, {'kind': 'order'})
        assert cache.get_product(1).value == {'kind': 'product'}
        assert cache.get_order(1).value == {'kind': 'order'}

    def test_category_listing_key(self):
        cache = EntityCache(DjangoCacheBackend())
        cache.cache_products_by_category('snacks', [{'id': 3}])
        assert cache.get_products_by_category('snacks').value == [{'id': 3}]
        assert not cache.get_product(3).hit

    def test_read_failure_is_reported_not_raised(self):
        backend = DjangoCacheBackend()
        with patch('integrations.cache.caches') as caches:
            caches.__getitem__.return_value.get.side_effect = ConnectionError('redis down')
            result = backend.get('product', 1)
        assert not result.ok
        assert isinstance(result.error, ConnectionError)

    def test_corrupt_entry_is_reported_not_raised(self):
        cache.set('entity:product:1', '{"id": 1')
        result = DjangoCacheBackend().get('product', 1)
        assert not result.ok
        assert isinstance(result.error, ValueError)

    @pytest.mark.django_db
    def test_corrupt_entry_falls_back_to_database(self, api_client, product):
        cache.set(f'entity:product:{product.pk}', 'not json')
        response = api_client.get(f'/api/products/{product.pk}/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['source'] == 'database'
        assert response.data['sku'] == product.sku

    def test_ping(self):
        assert DjangoCacheBackend().ping().value == {'backend': 'django'}


class TestDynamoDBCacheBackend:

    TABLES = {'product': 'products-table', 'order': 'orders-table'}

    def backend(self):
        resource = MagicMock()
        return DynamoDBCacheBackend(self.TABLES, 'ap-south-1', resource=resource), resource

    def test_set_writes_item_with_ttl(self):
        backend, resource = self.backend()
        before = int(time.time())
        result = backend.set('product', 5, {'id': 5}, timedelta(hours=24), category='snacks')
        assert result.ok

        resource.Table.assert_called_with('products-table')
        item = resource.Table.return_value.put_item.call_args.kwargs['Item']
        assert item['id'] == '5'
        assert item['category'] == 'snacks'
        assert json.loads(item['data']) == {'id': 5}
        assert item['ttl'] >= before + 24 * 3600

    def test_get_hit(self):
        backend, resource = self.backend()
        resource.Table.return_value.get_item.return_value = {
            'Item': {'id': '5', 'data': '{"id": 5}', 'ttl': int(time.time()) + 60}
        }
        assert backend.get('product', 5).value == {'id': 5}
        resource.Table.return_value.get_item.assert_called_with(Key={'id': '5'})

    def test_expired_item_is_a_miss(self):
        backend, resource = self.backend()
        resource.Table.return_value.get_item.return_value = {
            'Item': {'id': '5', 'data': '{"id": 5}', 'ttl': int(time.time()) - 1}
        }
        result = backend.get('product', 5)
        assert result.ok and not result.hit

    def test_missing_item_is_a_miss(self):
        backend, resource = self.backend()
        resource.Table.return_value.get_item.return_value = {}
        assert not backend.get('order', 1).hit

    def test_unreadable_items_become_failures(self):
        backend, resource = self.backend()
        get_item = resource.Table.return_value.get_item
        fresh = int(time.time()) + 60

        get_item.return_value = {'Item': {'id': '5', 'ttl': fresh}}
        assert isinstance(backend.get('product', 5).error, KeyError)

        get_item.return_value = {'Item': {'id': '5', 'data': '{"id"', 'ttl': fresh}}
        assert isinstance(backend.get('product', 5).error, ValueError)

    def test_client_errors_become_failures(self):
        backend, resource = self.backend()
        table = resource.Table.return_value
        table.get_item.side_effect = client_error('GetItem')
        table.put_item.side_effect = client_error('PutItem')
        table.delete_item.side_effect = client_error('DeleteItem')

        assert not backend.get('product', 1).ok
        assert not backend.set('product', 1, {}, timedelta(hours=1)).ok
        assert not backend.delete('product', 1).ok

    def test_ping_reports_table_status(self):
        backend, resource = self.backend()
        resource.Table.return_value.table_status = 'ACTIVE'
        result = backend.ping()
        assert result.value == {'backend': 'dynamodb', 'tables': {'product': 'ACTIVE', 'order': 'ACTIVE'}}


# ============== Blob Storage Tests ==============

class TestS3BlobStore:

    def test_upload(self):
        client = MagicMock()
        store = S3BlobStore('grocery-images', 'ap-south-1', client=client)
        result = store.upload('products/a.jpg', b'bytes', 'image/jpeg')

        assert result.value == 'https://grocery-images.s3.amazonaws.com/products/a.jpg'
        client.put_object.assert_called_once_with(
            Bucket='grocery-images', Key='products/a.jpg', Body=b'bytes',
            ContentType='image/jpeg', ACL='public-read'
        )

    def test_without_bucket_nothing_is_attempted(self):
        client = MagicMock()
        store = S3BlobStore('', 'ap-south-1', client=client)
        assert not store.upload('k', b'x').ok
        assert not store.ping().ok
        client.put_object.assert_not_called()

    def test_discard_image_deletes_own_objects_only(self):
        client = MagicMock()
        store = S3BlobStore('grocery-images', 'ap-south-1', client=client)

        assert discard_image('https://grocery-images.s3.amazonaws.com/stores/1.png', blob_store=store).ok
        client.delete_object.assert_called_once_with(Bucket='grocery-images', Key='stores/1.png')

        client.reset_mock()
        assert discard_image('data:image/png;base64,cmVk', blob_store=store).value is False
        assert discard_image('https://cdn.example.com/stores/1.png', blob_store=store).value is False
        assert discard_image(None, blob_store=store).value is False
        client.delete_object.assert_not_called()

    def test_save_image_uses_s3_url(self):
        client = MagicMock()
        store = S3BlobStore('grocery-images', 'ap-south-1', client=client)
        upload = SimpleUploadedFile('tomato.jpg', b'red', content_type='image/jpeg')

        url = save_image(upload, 'products', blob_store=store)
        assert url.startswith('https://grocery-images.s3.amazonaws.com/products/')
        assert url.endswith('-tomato.jpg')

    def test_save_image_falls_back_to_data_uri(self):
        client = MagicMock()
        client.put_object.side_effect = client_error('PutObject')
        store = S3BlobStore('grocery-images', 'ap-south-1', client=client)
        upload = SimpleUploadedFile('tomato.jpg', b'red', content_type='image/jpeg')

        assert save_image(upload, 'products', blob_store=store) == 'data:image/jpeg;base64,cmVk'


# ============== Health Endpoint Tests ==============

@pytest.mark.django_db
class TestHealthEndpoints:

    def test_health_check(self, api_client):
        response = api_client.get('/health')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'healthy'
        assert response.data['database']['connected'] is True
        assert response.data['aws']['cache']['connected'] is True
        assert response.data['aws']['s3']['connected'] is False

    def test_health_check_without_database(self, api_client):
        with patch('main.views.database_status', return_value={'connected': False, 'vendor': 'sqlite'}):
            response = api_client.get('/health')
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.data['status'] == 'unhealthy'

    def test_api_status(self, api_client, settings):
        response = api_client.get('/api/status')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['service'] == 'grocery-marketplace-api'
        assert response.data['version'] == settings.API_VERSION
