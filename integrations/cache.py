"""
Advisory entity cache for products, stores, orders and user sessions.

The database is always the source of truth. Every call returns an
``AdvisoryResult``; failures are logged and reported, never raised.
"""
import json
import logging
import time
from datetime import timedelta
from functools import lru_cache

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings
from django.core.cache import caches
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

from .results import AdvisoryResult

logger = logging.getLogger(__name__)

PRODUCT = 'product'
STORE = 'store'
ORDER = 'order'
SESSION = 'session'

TTLS = {
    PRODUCT: timedelta(hours=24),
    STORE: timedelta(hours=24),
    ORDER: timedelta(hours=12),
    SESSION: timedelta(hours=2),
}


def _encode(data):
    return json.dumps(data, cls=DjangoJSONEncoder)


class CacheBackend:
    """Key/value storage for cached entities, grouped by namespace."""
    name = 'base'

    def get(self, namespace, key):
        raise NotImplementedError

    def set(self, namespace, key, data, ttl, category=None):
        raise NotImplementedError

    def delete(self, namespace, key):
        raise NotImplementedError

    def ping(self):
        raise NotImplementedError


class DjangoCacheBackend(CacheBackend):
    """Entity cache stored in one of Django's configured caches."""
    name = 'django'

    def __init__(self, alias='default'):
        self.alias = alias

    @property
    def _cache(self):
        return caches[self.alias]

    def _key(self, namespace, key):
        return f'entity:{namespace}:{key}'

    def get(self, namespace, key):
        try:
            payload = self._cache.get(self._key(namespace, key))
            data = None if payload is None else json.loads(payload)
        except Exception as e:
            logger.warning(f"Cache read failed for {namespace}:{key}: {e}")
            return AdvisoryResult.failure(e)
        return AdvisoryResult.success(data)

    def set(self, namespace, key, data, ttl, category=None):
        try:
            self._cache.set(self._key(namespace, key), _encode(data), timeout=int(ttl.total_seconds()))
        except Exception as e:
            logger.warning(f"Cache write failed for {namespace}:{key}: {e}")
            return AdvisoryResult.failure(e)
        return AdvisoryResult.success(True)

    def delete(self, namespace, key):
        try:
            self._cache.delete(self._key(namespace, key))
        except Exception as e:
            logger.warning(f"Cache delete failed for {namespace}:{key}: {e}")
            return AdvisoryResult.failure(e)
        return AdvisoryResult.success(True)

    def ping(self):
        try:
            self._cache.get('entity:ping')
        except Exception as e:
            return AdvisoryResult.failure(e)
        return AdvisoryResult.success({'backend': self.name})


class DynamoDBCacheBackend(CacheBackend):
    """
    Entity cache stored in DynamoDB, one table per namespace.

    Items are ``{id, category, data, createdAt, ttl}`` with ``ttl`` in epoch
    seconds. DynamoDB removes expired items lazily, so reads also check it.
    """
    name = 'dynamodb'

    def __init__(self, tables, region_name, resource=None, **credentials):
        self.tables = tables
        self._resource = resource or boto3.resource(
            'dynamodb',
            region_name=region_name,
            **{k: v for k, v in credentials.items() if v},
        )

    def _table(self, namespace):
        return self._resource.Table(self.tables[namespace])

    def get(self, namespace, key):
        try:
            response = self._table(namespace).get_item(Key={'id': str(key)})
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"DynamoDB read failed for {namespace}:{key}: {e}")
            return AdvisoryResult.failure(e)

        item = response.get('Item')
        if not item:
            return AdvisoryResult.success(None)
        try:
            if int(item.get('ttl', 0)) <= int(time.time()):
                return AdvisoryResult.success(None)
            data = json.loads(item['data'])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Unreadable DynamoDB item for {namespace}:{key}: {e}")
            return AdvisoryResult.failure(e)
        return AdvisoryResult.success(data)

    def set(self, namespace, key, data, ttl, category=None):
        item = {
            'id': str(key),
            'category': category or 'general',
            'data': _encode(data),
            'createdAt': timezone.now().isoformat(),
            'ttl': int(time.time() + ttl.total_seconds()),
        }
        try:
            self._table(namespace).put_item(Item=item)
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"DynamoDB write failed for {namespace}:{key}: {e}")
            return AdvisoryResult.failure(e)
        return AdvisoryResult.success(True)

    def delete(self, namespace, key):
        try:
            self._table(namespace).delete_item(Key={'id': str(key)})
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"DynamoDB delete failed for {namespace}:{key}: {e}")
            return AdvisoryResult.failure(e)
        return AdvisoryResult.success(True)

    def ping(self):
        statuses = {}
        try:
            for namespace in self.tables:
                statuses[namespace] = self._table(namespace).table_status
        except (BotoCoreError, ClientError) as e:
            return AdvisoryResult.failure(e)
        return AdvisoryResult.success({'backend': self.name, 'tables': statuses})


class EntityCache:
    """Typed cache operations per entity on top of a ``CacheBackend``."""

    def __init__(self, backend):
        self.backend = backend

    # Products
    def get_product(self, product_id):
        return self.backend.get(PRODUCT, product_id)

    def cache_product(self, product_id, data, category=None):
        return self.backend.set(PRODUCT, product_id, data, TTLS[PRODUCT], category=category)

    def clear_product(self, product_id):
        return self.backend.delete(PRODUCT, product_id)

    def get_products_by_category(self, category):
        return self.backend.get(PRODUCT, f'category:{category}')

    def cache_products_by_category(self, category, data):
        return self.backend.set(PRODUCT, f'category:{category}', data, TTLS[PRODUCT], category=category)

    def clear_products_by_category(self, category):
        return self.backend.delete(PRODUCT, f'category:{category}')

    # Stores
    def get_store(self, store_id):
        return self.backend.get(STORE, store_id)

    def cache_store(self, store_id, data):
        return self.backend.set(STORE, store_id, data, TTLS[STORE])

    def clear_store(self, store_id):
        return self.backend.delete(STORE, store_id)

    # Orders
    def get_order(self, order_id):
        return self.backend.get(ORDER, order_id)

    def cache_order(self, order_id, data):
        return self.backend.set(ORDER, order_id, data, TTLS[ORDER])

    def clear_order(self, order_id):
        return self.backend.delete(ORDER, order_id)

    # Sessions
    def get_session(self, user_id):
        return self.backend.get(SESSION, user_id)

    def cache_session(self, user_id, data):
        return self.backend.set(SESSION, user_id, data, TTLS[SESSION])

    def clear_session(self, user_id):
        return self.backend.delete(SESSION, user_id)

    def ping(self):
        return self.backend.ping()


def build_cache_backend():
    if settings.ENTITY_CACHE_BACKEND == 'dynamodb':
        return DynamoDBCacheBackend(
            tables=settings.DYNAMODB_TABLES,
            region_name=settings.AWS_REGION,
            aws_access_key_id=settings.AWS_ACCESS_KEY_ID,
            aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
        )
    return DjangoCacheBackend()


@lru_cache()
def get_entity_cache():
    """Process-wide entity cache, built once from settings."""
    backend = build_cache_backend()
    logger.info(f"Entity cache using {backend.name} backend")
    return EntityCache(backend)
