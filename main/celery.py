"""
Celery configuration for the grocery marketplace API.
"""
import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'main.settings')

app = Celery('grocery_marketplace')

# Load config from Django settings, using CELERY_ namespace
app.config_from_object('django.conf:settings', namespace='CELERY')

# Auto-discover tasks in all registered Django apps
app.autodiscover_tasks()

app.conf.beat_schedule = {
    'check-stock-levels-daily': {
        'task': 'notifications.tasks.check_stock_levels',
        'schedule': crontab(hour=8, minute=0),  # Run daily at 8 AM
    },
    'purge-expired-reset-tokens-daily': {
        'task': 'notifications.tasks.purge_expired_reset_tokens',
        'schedule': crontab(hour=3, minute=0),
    },
}
