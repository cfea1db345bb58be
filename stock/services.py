"""
Every change to a product's stock goes through these functions so that the
quantity never drops below zero and each movement is recorded.

Each call locks the product row for the rest of the enclosing transaction.
"""
from django.db import transaction

from inventory.models import Product
from .models import StockTransaction


class StockError(Exception):
    def __init__(self, product, requested):
        self.product = product
        self.requested = requested
        super().__init__(
            f'Insufficient stock for {product.name}. '
            f'Available: {product.stock_quantity}, requested: {requested}'
        )


def lock_product(product_id):
    return Product.objects.select_for_update().get(pk=product_id)


def _record(product, transaction_type, reason, quantity, before, user=None, reference=None, notes=None):
    return StockTransaction.objects.create(
        product=product,
        transaction_type=transaction_type,
        reason=reason,
        quantity=quantity,
        quantity_before=before,
        quantity_after=product.stock_quantity,
        reference_number=reference,
        notes=notes,
        performed_by=user,
    )


@transaction.atomic
def remove_stock(product, quantity, reason=StockTransaction.Reason.ORDER, user=None, reference=None,
                 clamp=False, notes=None):
    """
    Take ``quantity`` units out of stock.

    Raises ``StockError`` when not enough is available, unless ``clamp`` is
    set, in which case the quantity bottoms out at zero.
    """
    product = lock_product(product.pk)
    before = product.stock_quantity
    if quantity > before and not clamp:
        raise StockError(product, quantity)

    product.stock_quantity = max(0, before - quantity)
    if reason == StockTransaction.Reason.ORDER:
        product.total_sold += quantity
        product.save(update_fields=['stock_quantity', 'total_sold', 'updated_at'])
    else:
        product.save(update_fields=['stock_quantity', 'updated_at'])

    _record(product, StockTransaction.Type.OUT, reason, before - product.stock_quantity, before,
            user=user, reference=reference, notes=notes)
    return product


@transaction.atomic
def add_stock(product, quantity, reason=StockTransaction.Reason.RESTOCK, user=None, reference=None, notes=None):
    product = lock_product(product.pk)
    before = product.stock_quantity
    product.stock_quantity = before + quantity
    if reason in (StockTransaction.Reason.CANCELLATION, StockTransaction.Reason.REFUND):
        product.total_sold = max(0, product.total_sold - quantity)
        product.save(update_fields=['stock_quantity', 'total_sold', 'updated_at'])
    else:
        product.save(update_fields=['stock_quantity', 'updated_at'])

    _record(product, StockTransaction.Type.IN, reason, quantity, before,
            user=user, reference=reference, notes=notes)
    return product


@transaction.atomic
def set_stock(product, quantity, user=None, notes=None):
    product = lock_product(product.pk)
    before = product.stock_quantity
    product.stock_quantity = max(0, quantity)
    product.save(update_fields=['stock_quantity', 'updated_at'])

    _record(product, StockTransaction.Type.ADJUSTMENT, StockTransaction.Reason.MANUAL,
            abs(product.stock_quantity - before), before, user=user, notes=notes)
    return product
