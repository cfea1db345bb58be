import django.core.validators
import django.db.models.deletion
from decimal import Decimal
from django.db import migrations, models

CATEGORY_CHOICES = [
    ('fruits-vegetables', 'Fruits & Vegetables'),
    ('dairy-bakery', 'Dairy & Bakery'),
    ('meat-fish', 'Meat & Fish'),
    ('pantry-staples', 'Pantry Staples'),
    ('beverages', 'Beverages'),
    ('snacks', 'Snacks'),
    ('household', 'Household'),
    ('personal-care', 'Personal Care'),
    ('baby-care', 'Baby Care'),
    ('pet-supplies', 'Pet Supplies'),
    ('frozen-foods', 'Frozen Foods'),
    ('organic', 'Organic'),
    ('imported', 'Imported'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('stores', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Category',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('slug', models.CharField(choices=CATEGORY_CHOICES, max_length=30, unique=True)),
                ('name', models.CharField(max_length=100)),
                ('description', models.TextField(blank=True, null=True)),
                ('image_url', models.TextField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('sort_order', models.IntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='children', to='inventory.category')),
            ],
            options={
                'verbose_name_plural': 'Categories',
                'db_table': 'categories',
                'ordering': ['sort_order', 'name'],
            },
        ),
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True, null=True)),
                ('category', models.CharField(choices=CATEGORY_CHOICES, max_length=30)),
                ('subcategory', models.CharField(blank=True, max_length=100, null=True)),
                ('brand', models.CharField(blank=True, max_length=100, null=True)),
                ('sku', models.CharField(help_text='Stock Keeping Unit', max_length=100, unique=True)),
                ('barcode', models.CharField(blank=True, max_length=100, null=True)),
                ('price', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('original_price', models.DecimalField(blank=True, decimal_places=2, help_text='Price before discount', max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('discount_percentage', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal('0.00')), django.core.validators.MaxValueValidator(Decimal('100.00'))])),
                ('unit', models.CharField(choices=[('piece', 'Piece'), ('kg', 'Kilogram'), ('g', 'Gram'), ('l', 'Liter'), ('ml', 'Milliliter'), ('pack', 'Pack'), ('dozen', 'Dozen'), ('box', 'Box')], default='piece', max_length=10)),
                ('weight', models.DecimalField(blank=True, decimal_places=3, max_digits=10, null=True)),
                ('images', models.JSONField(blank=True, default=list)),
                ('thumbnail', models.TextField(blank=True, null=True)),
                ('stock_quantity', models.IntegerField(default=0, help_text='Current available stock quantity', validators=[django.core.validators.MinValueValidator(0)])),
                ('min_stock_level', models.IntegerField(default=5, help_text='Alert when stock falls to this level', validators=[django.core.validators.MinValueValidator(0)])),
                ('is_available', models.BooleanField(default=False, editable=False)),
                ('is_featured', models.BooleanField(default=False)),
                ('is_active', models.BooleanField(default=True)),
                ('rating', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=3, validators=[django.core.validators.MinValueValidator(Decimal('0.00')), django.core.validators.MaxValueValidator(Decimal('5.00'))])),
                ('total_ratings', models.PositiveIntegerField(default=0)),
                ('total_sold', models.PositiveIntegerField(default=0)),
                ('tags', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('store', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='products', to='stores.store')),
            ],
            options={
                'db_table': 'products',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['store'], name='products_store_i_4e8b2c_idx'),
                    models.Index(fields=['category'], name='products_categor_7a1d3e_idx'),
                    models.Index(fields=['is_available'], name='products_is_avai_9c5f0a_idx'),
                    models.Index(fields=['is_featured'], name='products_is_feat_1b6e4d_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('stock_quantity__gte', 0)), name='product_stock_non_negative'),
                ],
            },
        ),
    ]
