from integrations.cache import get_entity_cache
from .serializers import ProductSerializer


def cache_product(product):
    """Write-through after a product change. Advisory; the result is ignored."""
    cache = get_entity_cache()
    cache.cache_product(product.pk, ProductSerializer(product).data, category=product.category)
    cache.clear_products_by_category(product.category)


def evict_product(product, *categories):
    cache = get_entity_cache()
    cache.clear_product(product.pk)
    for category in {product.category, *categories}:
        cache.clear_products_by_category(category)
