from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from .utils import default_operating_hours, is_open_at, running_average


class Store(models.Model):
    """A grocery store listed on the marketplace, owned by one store owner."""

    class Category(models.TextChoices):
        GROCERY = 'grocery', 'Grocery'
        SUPERMARKET = 'supermarket', 'Supermarket'
        CONVENIENCE = 'convenience', 'Convenience'
        SPECIALTY = 'specialty', 'Specialty'

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='stores',
        help_text='Store owner account'
    )
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, null=True)
    category = models.CharField(max_length=20, choices=Category.choices, default=Category.GROCERY)
    address = models.JSONField(default=dict, help_text='Street, city, state, pincode')
    coordinates = models.JSONField(help_text='Store location {lat, lng}')
    phone = models.CharField(max_length=20)
    email = models.EmailField(blank=True, null=True)
    logo = models.TextField(blank=True, null=True)
    banner = models.TextField(blank=True, null=True)
    operating_hours = models.JSONField(
        default=default_operating_hours,
        help_text='Per weekday {open: "HH:MM", close: "HH:MM", is_open: bool}'
    )
    delivery_radius = models.PositiveIntegerField(
        default=10,
        validators=[MinValueValidator(1), MaxValueValidator(50)],
        help_text='Delivery radius in km'
    )
    minimum_order_amount = models.DecimalField(
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
    average_preparation_time = models.PositiveIntegerField(
        default=30,
        help_text='Average order preparation time in minutes'
    )
    payment_methods = models.JSONField(default=list, blank=True)
    rating = models.DecimalField(
        max_digits=3,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00')), MaxValueValidator(Decimal('5.00'))]
    )
    total_ratings = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    is_verified = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'stores'
        ordering = ['name']
        indexes = [
            models.Index(fields=['owner'], name='stores_owner_i_5a1e2b_idx'),
            models.Index(fields=['is_active'], name='stores_is_acti_8d4c0f_idx'),
            models.Index(fields=['category'], name='stores_categor_2b9e7a_idx'),
            models.Index(fields=['-rating'], name='stores_rating_6f3a1d_idx'),
        ]

    def __str__(self):
        return self.name

    def is_open_at(self, moment):
        return is_open_at(self.operating_hours, moment)

    @property
    def is_open_now(self):
        from django.utils import timezone
        return self.is_open_at(timezone.localtime())

    def add_rating(self, value):
        """Fold a new 1-5 rating into the running average."""
        self.rating = running_average(self.rating, self.total_ratings, value)
        self.total_ratings += 1
        self.save(update_fields=['rating', 'total_ratings', 'updated_at'])
