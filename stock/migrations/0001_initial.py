import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('inventory', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='StockTransaction',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('transaction_type', models.CharField(choices=[('IN', 'Stock In'), ('OUT', 'Stock Out'), ('ADJUSTMENT', 'Adjustment')], max_length=20)),
                ('reason', models.CharField(choices=[('ORDER', 'Customer Order'), ('CANCELLATION', 'Order Cancellation'), ('REFUND', 'Order Refund'), ('RESTOCK', 'Restock'), ('MANUAL', 'Manual Adjustment')], max_length=30)),
                ('quantity', models.IntegerField(validators=[django.core.validators.MinValueValidator(0)])),
                ('quantity_before', models.IntegerField()),
                ('quantity_after', models.IntegerField()),
                ('reference_number', models.CharField(blank=True, help_text='Order number or other reference', max_length=100, null=True)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('performed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stock_transactions', to=settings.AUTH_USER_MODEL)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stock_transactions', to='inventory.product')),
            ],
            options={
                'db_table': 'stock_transactions',
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['product'], name='stock_trans_product_3d9a1e_idx'),
                    models.Index(fields=['-created_at'], name='stock_trans_created_8b2f4c_idx'),
                    models.Index(fields=['transaction_type'], name='stock_trans_transac_5e7c0b_idx'),
                ],
            },
        ),
    ]
