from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from inventory.models import Product


class StockTransaction(models.Model):
    """Stock movement history"""

    class Type(models.TextChoices):
        IN = 'IN', 'Stock In'
        OUT = 'OUT', 'Stock Out'
        ADJUSTMENT = 'ADJUSTMENT', 'Adjustment'

    class Reason(models.TextChoices):
        ORDER = 'ORDER', 'Customer Order'
        CANCELLATION = 'CANCELLATION', 'Order Cancellation'
        REFUND = 'REFUND', 'Order Refund'
        RESTOCK = 'RESTOCK', 'Restock'
        MANUAL = 'MANUAL', 'Manual Adjustment'

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='stock_transactions')
    transaction_type = models.CharField(max_length=20, choices=Type.choices)
    reason = models.CharField(max_length=30, choices=Reason.choices)
    quantity = models.IntegerField(validators=[MinValueValidator(0)])
    quantity_before = models.IntegerField()
    quantity_after = models.IntegerField()
    reference_number = models.CharField(
        max_length=100,
        blank=True,
        null=True,
        help_text='Order number or other reference'
    )
    notes = models.TextField(blank=True, null=True)
    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stock_transactions'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'stock_transactions'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['product'], name='stock_trans_product_3d9a1e_idx'),
            models.Index(fields=['-created_at'], name='stock_trans_created_8b2f4c_idx'),
            models.Index(fields=['transaction_type'], name='stock_trans_transac_5e7c0b_idx'),
        ]

    def __str__(self):
        return f"{self.get_transaction_type_display()} - {self.product.name} ({self.quantity})"
