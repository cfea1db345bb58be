import logging

from django.db import DatabaseError, connection

from .cache import get_entity_cache
from .storage import get_blob_store

logger = logging.getLogger(__name__)


def database_status():
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
            cursor.fetchone()
    except DatabaseError as e:
        logger.error(f"Database health check failed: {e}")
        return {'connected': False, 'vendor': connection.vendor, 'error': str(e)}
    return {'connected': True, 'vendor': connection.vendor}


def aws_status():
    """Connectivity of the optional AWS services. Never affects overall health."""
    cache_result = get_entity_cache().ping()
    blob_result = get_blob_store().ping()
    return {
        'cache': {
            'connected': cache_result.ok,
            **(cache_result.value or {}),
            **({'error': str(cache_result.error)} if cache_result.error else {}),
        },
        's3': {
            'connected': blob_result.ok,
            **(blob_result.value or {}),
            **({'error': str(blob_result.error)} if blob_result.error else {}),
        },
    }
