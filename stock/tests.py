"""
Tests for the Stock module.
Covers: stock services (remove/add/set with ledger entries) and the stock transaction history endpoint.
"""
import pytest
from rest_framework import status

from inventory.models import Product
from stock.models import StockTransaction
from stock.services import StockError, add_stock, remove_stock, set_stock


# ============== Stock Service Tests ==============

@pytest.mark.django_db
class TestStockServices:

    def test_remove_stock_records_sale(self, product, customer):
        updated = remove_stock(product, 4, user=customer, reference='BBSR2401010001')
        assert updated.stock_quantity == 6
        assert updated.total_sold == 4

        transaction = StockTransaction.objects.get(product=product)
        assert transaction.transaction_type == StockTransaction.Type.OUT
        assert transaction.reason == StockTransaction.Reason.ORDER
        assert (transaction.quantity_before, transaction.quantity_after) == (10, 6)
        assert transaction.reference_number == 'BBSR2401010001'

    def test_remove_more_than_available_raises(self, product):
        with pytest.raises(StockError) as exc_info:
            remove_stock(product, 11)
        assert exc_info.value.requested == 11
        product.refresh_from_db()
        assert product.stock_quantity == 10
        assert not StockTransaction.objects.exists()

    def test_remove_exact_stock_makes_product_unavailable(self, product):
        updated = remove_stock(product, 10)
        assert updated.stock_quantity == 0
        assert updated.is_available is False

    def test_clamped_removal(self, product):
        updated = remove_stock(product, 25, reason=StockTransaction.Reason.MANUAL, clamp=True)
        assert updated.stock_quantity == 0
        assert updated.total_sold == 0

    def test_add_stock_for_cancellation_reverses_sales(self, product):
        remove_stock(product, 3)
        updated = add_stock(product, 3, reason=StockTransaction.Reason.CANCELLATION)
        assert updated.stock_quantity == 10
        assert updated.total_sold == 0

    def test_restock_makes_product_available_again(self, product):
        remove_stock(product, 10)
        updated = add_stock(product, 5)
        assert updated.is_available is True
        assert updated.total_sold == 10

    def test_set_stock(self, product, store_owner):
        updated = set_stock(product, 2, user=store_owner, notes='Count')
        assert updated.stock_quantity == 2
        transaction = StockTransaction.objects.get(product=product)
        assert transaction.transaction_type == StockTransaction.Type.ADJUSTMENT
        assert transaction.quantity == 8

    def test_set_stock_never_negative(self, product):
        assert set_stock(product, -5).stock_quantity == 0

    def test_database_rejects_negative_stock(self, product):
        from django.db import IntegrityError, transaction
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Product.objects.filter(pk=product.pk).update(stock_quantity=-1)


# ============== Stock Transaction View Tests ==============

@pytest.mark.django_db
class TestStockTransactionView:

    def test_owner_sees_only_own_store_movements(self, owner_client, product, other_store_product):
        remove_stock(product, 1)
        remove_stock(other_store_product, 1)

        response = owner_client.get('/api/stock/transactions/')
        assert response.status_code == status.HTTP_200_OK
        assert [t['product'] for t in response.data['results']] == [product.pk]

    def test_admin_sees_everything(self, admin_client, product, other_store_product):
        remove_stock(product, 1)
        remove_stock(other_store_product, 1)
        response = admin_client.get('/api/stock/transactions/')
        assert response.data['count'] == 2

    def test_filter_by_type(self, owner_client, product):
        remove_stock(product, 1)
        add_stock(product, 1)
        response = owner_client.get('/api/stock/transactions/', {'type': 'in'})
        assert [t['transaction_type'] for t in response.data['results']] == ['IN']

    def test_product_filter_must_be_an_id(self, owner_client, product):
        response = owner_client.get('/api/stock/transactions/', {'product': 'milk'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'product' in response.data

    def test_customer_forbidden(self, customer_client):
        response = customer_client.get('/api/stock/transactions/')
        assert response.status_code == status.HTTP_403_FORBIDDEN
