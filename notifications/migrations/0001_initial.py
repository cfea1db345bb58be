import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(choices=[('ORDER_PLACED', 'Order Placed'), ('NEW_ORDER', 'New Order'), ('ORDER_STATUS', 'Order Status'), ('ORDER_CANCELLED', 'Order Cancelled'), ('DELIVERY_ASSIGNED', 'Delivery Assigned'), ('PAYMENT', 'Payment'), ('LOW_STOCK_ALERT', 'Low Stock Alert'), ('OUT_OF_STOCK_ALERT', 'Out of Stock Alert'), ('PASSWORD_RESET', 'Password Reset'), ('GENERAL', 'General')], default='GENERAL', max_length=30)),
                ('title', models.CharField(max_length=255)),
                ('message', models.TextField()),
                ('data', models.JSONField(blank=True, help_text='Optional JSON data for notification context', null=True)),
                ('is_read', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('read_at', models.DateTimeField(blank=True, null=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'notifications',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'is_read', '-created_at'], name='notificatio_user_id_1a4e7c_idx'),
                    models.Index(fields=['user', 'type'], name='notificatio_user_id_8d2b5f_idx'),
                ],
            },
        ),
    ]
