from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from stores.utils import running_average


class ProductCategory(models.TextChoices):
    FRUITS_VEGETABLES = 'fruits-vegetables', 'Fruits & Vegetables'
    DAIRY_BAKERY = 'dairy-bakery', 'Dairy & Bakery'
    MEAT_FISH = 'meat-fish', 'Meat & Fish'
    PANTRY_STAPLES = 'pantry-staples', 'Pantry Staples'
    BEVERAGES = 'beverages', 'Beverages'
    SNACKS = 'snacks', 'Snacks'
    HOUSEHOLD = 'household', 'Household'
    PERSONAL_CARE = 'personal-care', 'Personal Care'
    BABY_CARE = 'baby-care', 'Baby Care'
    PET_SUPPLIES = 'pet-supplies', 'Pet Supplies'
    FROZEN_FOODS = 'frozen-foods', 'Frozen Foods'
    ORGANIC = 'organic', 'Organic'
    IMPORTED = 'imported', 'Imported'


class Category(models.Model):
    """Display metadata for a product category slug (name, image, ordering)."""

    slug = models.CharField(max_length=30, choices=ProductCategory.choices, unique=True)
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True, null=True)
    image_url = models.TextField(blank=True, null=True)
    parent = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='children'
    )
    is_active = models.BooleanField(default=True)
    sort_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'categories'
        ordering = ['sort_order', 'name']
        verbose_name_plural = 'Categories'

    def __str__(self):
        return self.name


class Product(models.Model):
    """A product sold by one store"""

    UNIT_CHOICES = [
        ('piece', 'Piece'),
        ('kg', 'Kilogram'),
        ('g', 'Gram'),
        ('l', 'Liter'),
        ('ml', 'Milliliter'),
        ('pack', 'Pack'),
        ('dozen', 'Dozen'),
        ('box', 'Box'),
    ]

    store = models.ForeignKey('stores.Store', on_delete=models.CASCADE, related_name='products')
    name = models.CharField(max_length=200)
    description = models.TextField(blank=True, null=True)
    category = models.CharField(max_length=30, choices=ProductCategory.choices)
    subcategory = models.CharField(max_length=100, blank=True, null=True)
    brand = models.CharField(max_length=100, blank=True, null=True)
    sku = models.CharField(max_length=100, unique=True, help_text='Stock Keeping Unit')
    barcode = models.CharField(max_length=100, blank=True, null=True)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    original_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))],
        blank=True,
        null=True,
        help_text='Price before discount'
    )
    discount_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00')), MaxValueValidator(Decimal('100.00'))]
    )
    unit = models.CharField(max_length=10, choices=UNIT_CHOICES, default='piece')
    weight = models.DecimalField(max_digits=10, decimal_places=3, blank=True, null=True)
    images = models.JSONField(default=list, blank=True)
    thumbnail = models.TextField(blank=True, null=True)
    stock_quantity = models.IntegerField(
        default=0,
        validators=[MinValueValidator(0)],
        help_text='Current available stock quantity'
    )
    min_stock_level = models.IntegerField(
        default=5,
        validators=[MinValueValidator(0)],
        help_text='Alert when stock falls to this level'
    )
    is_available = models.BooleanField(default=False, editable=False)
    is_featured = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)
    rating = models.DecimalField(
        max_digits=3,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00')), MaxValueValidator(Decimal('5.00'))]
    )
    total_ratings = models.PositiveIntegerField(default=0)
    total_sold = models.PositiveIntegerField(default=0)
    tags = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'products'
        ordering = ['name']
        indexes = [
            models.Index(fields=['store'], name='products_store_i_4e8b2c_idx'),
            models.Index(fields=['category'], name='products_categor_7a1d3e_idx'),
            models.Index(fields=['is_available'], name='products_is_avai_9c5f0a_idx'),
            models.Index(fields=['is_featured'], name='products_is_feat_1b6e4d_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(stock_quantity__gte=0),
                name='product_stock_non_negative'
            ),
        ]

    def __str__(self):
        return f"{self.sku} - {self.name}"

    def save(self, *args, **kwargs):
        self.is_available = self.is_active and self.stock_quantity > 0
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'is_available' not in update_fields:
            kwargs['update_fields'] = list(update_fields) + ['is_available']
        super().save(*args, **kwargs)

    @property
    def is_low_stock(self):
        """Check if product is at or below its minimum stock level"""
        return self.stock_quantity <= self.min_stock_level

    @property
    def discounted_price(self):
        if self.discount_percentage:
            return (self.price * (100 - self.discount_percentage) / 100).quantize(Decimal('0.01'))
        return self.price

    def add_rating(self, value):
        self.rating = running_average(self.rating, self.total_ratings, value)
        self.total_ratings += 1
        self.save(update_fields=['rating', 'total_ratings', 'updated_at'])
