from integrations.cache import get_entity_cache
from .serializers import OrderSerializer


def cache_order(order):
    """Write the fresh order through to the cache and return its serialized form."""
    data = OrderSerializer(order).data
    get_entity_cache().cache_order(order.pk, data)
    return data


def order_participant_ids(data):
    """Customer, store owner and delivery partner ids of a serialized order."""
    partner = data.get('delivery_partner') or {}
    return {data['customer']['id'], data['store']['owner'], partner.get('id')}
