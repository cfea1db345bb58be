import django.core.validators
import django.db.models.deletion
import stores.utils
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Store',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('description', models.TextField(blank=True, null=True)),
                ('category', models.CharField(choices=[('grocery', 'Grocery'), ('supermarket', 'Supermarket'), ('convenience', 'Convenience'), ('specialty', 'Specialty')], default='grocery', max_length=20)),
                ('address', models.JSONField(default=dict, help_text='Street, city, state, pincode')),
                ('coordinates', models.JSONField(help_text='Store location {lat, lng}')),
                ('phone', models.CharField(max_length=20)),
                ('email', models.EmailField(blank=True, max_length=254, null=True)),
                ('logo', models.TextField(blank=True, null=True)),
                ('banner', models.TextField(blank=True, null=True)),
                ('operating_hours', models.JSONField(default=stores.utils.default_operating_hours, help_text='Per weekday {open: "HH:MM", close: "HH:MM", is_open: bool}')),
                ('delivery_radius', models.PositiveIntegerField(default=10, help_text='Delivery radius in km', validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(50)])),
                ('minimum_order_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('delivery_fee', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('average_preparation_time', models.PositiveIntegerField(default=30, help_text='Average order preparation time in minutes')),
                ('payment_methods', models.JSONField(blank=True, default=list)),
                ('rating', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=3, validators=[django.core.validators.MinValueValidator(Decimal('0.00')), django.core.validators.MaxValueValidator(Decimal('5.00'))])),
                ('total_ratings', models.PositiveIntegerField(default=0)),
                ('is_active', models.BooleanField(default=True)),
                ('is_verified', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(help_text='Store owner account', on_delete=django.db.models.deletion.PROTECT, related_name='stores', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'stores',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['owner'], name='stores_owner_i_5a1e2b_idx'),
                    models.Index(fields=['is_active'], name='stores_is_acti_8d4c0f_idx'),
                    models.Index(fields=['category'], name='stores_categor_2b9e7a_idx'),
                    models.Index(fields=['-rating'], name='stores_rating_6f3a1d_idx'),
                ],
            },
        ),
    ]
