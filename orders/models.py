from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Order(models.Model):
    """
    A customer order placed with a single store.

    ``items`` is a snapshot of each ordered product at the time of ordering,
    so later catalogue changes never alter a historical order. Totals are
    computed once at creation and never re-derived.
    """

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        CONFIRMED = 'confirmed', 'Confirmed'
        PREPARING = 'preparing', 'Preparing'
        READY_FOR_PICKUP = 'ready_for_pickup', 'Ready for pickup'
        OUT_FOR_DELIVERY = 'out_for_delivery', 'Out for delivery'
        DELIVERED = 'delivered', 'Delivered'
        CANCELLED = 'cancelled', 'Cancelled'
        REFUNDED = 'refunded', 'Refunded'

    class PaymentStatus(models.TextChoices):
        PENDING = 'pending', 'Pending'
        PAID = 'paid', 'Paid'
        FAILED = 'failed', 'Failed'
        REFUNDED = 'refunded', 'Refunded'

    class PaymentMethod(models.TextChoices):
        CASH = 'cash', 'Cash on delivery'
        CARD = 'card', 'Card'
        UPI = 'upi', 'UPI'
        WALLET = 'wallet', 'Wallet'
        NET_BANKING = 'net_banking', 'Net banking'

    order_number = models.CharField(max_length=20, unique=True)
    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='orders'
    )
    store = models.ForeignKey('stores.Store', on_delete=models.PROTECT, related_name='orders')
    delivery_partner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name='deliveries',
        null=True,
        blank=True
    )
    items = models.JSONField(help_text='Snapshot of ordered products')
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    tax = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    delivery_fee = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    discount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    total = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0.00'))])
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices, default=PaymentMethod.CASH)
    payment_id = models.CharField(max_length=100, blank=True, null=True)
    gateway_order_id = models.CharField(max_length=100, blank=True, null=True)
    paid_at = models.DateTimeField(blank=True, null=True)
    delivery_address = models.JSONField(help_text='Street, city, pincode and coordinates {lat, lng}')
    delivery_instructions = models.TextField(blank=True, null=True)
    estimated_delivery_time = models.DateTimeField(blank=True, null=True)
    actual_delivery_time = models.DateTimeField(blank=True, null=True)
    rating = models.PositiveSmallIntegerField(
        blank=True,
        null=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    review = models.TextField(blank=True, null=True)
    cancellation_reason = models.TextField(blank=True, null=True)
    refund_amount = models.DecimalField(max_digits=10, decimal_places=2, blank=True, null=True)
    refund_id = models.CharField(max_length=100, blank=True, null=True)
    refunded_at = models.DateTimeField(blank=True, null=True)
    is_scheduled = models.BooleanField(default=False)
    scheduled_time = models.DateTimeField(blank=True, null=True)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['customer'], name='orders_custome_2c7e9a_idx'),
            models.Index(fields=['store'], name='orders_store_i_6b1d4f_idx'),
            models.Index(fields=['delivery_partner'], name='orders_deliver_9f3a2e_idx'),
            models.Index(fields=['status'], name='orders_status_4d8c1b_idx'),
            models.Index(fields=['-created_at'], name='orders_created_7e5b0a_idx'),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(total__gte=0), name='order_total_non_negative'),
            models.CheckConstraint(condition=models.Q(subtotal__gte=0), name='order_subtotal_non_negative'),
        ]

    def __str__(self):
        return f"{self.order_number} - {self.total}"

    @property
    def is_terminal(self):
        from .lifecycle import is_terminal
        return is_terminal(self.status)

    def is_participant(self, user):
        """Customer, store owner or assigned delivery partner of this order."""
        return user.id in (self.customer_id, self.store.owner_id, self.delivery_partner_id)

    @property
    def delivery_coordinates(self):
        return (self.delivery_address or {}).get('coordinates')
