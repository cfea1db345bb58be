"""
Celery tasks for notifications app.
"""
from celery import shared_task
from django.conf import settings
from django.utils import timezone
import logging

logger = logging.getLogger(__name__)


@shared_task
def send_password_reset_email(user_id, token):
    """Email the reset link for a freshly issued password reset token."""
    from users.models import User
    from notifications.utils import send_password_reset_email as send_email

    user = User.objects.filter(pk=user_id, is_active=True).first()
    if user is None:
        logger.warning(f"Password reset requested for missing or inactive user {user_id}")
        return False

    reset_url = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?token={token}"
    return send_email(user, reset_url)


@shared_task
def check_stock_levels():
    """
    Check stock levels and create notifications for low/out of stock items.
    Runs daily via Celery Beat.
    """
    from django.db.models import F
    from inventory.models import Product
    from notifications.utils import create_stock_alert_notifications

    logger.info("Running stock level check...")

    products = Product.objects.select_related('store__owner').filter(
        is_active=True,
        store__is_active=True
    )

    # Find low stock products
    low_stock_products = products.filter(
        stock_quantity__gt=0,
        stock_quantity__lte=F('min_stock_level')
    )
    for product in low_stock_products:
        create_stock_alert_notifications(product, alert_type='low')

    # Find out of stock products
    out_of_stock_products = products.filter(stock_quantity=0)
    for product in out_of_stock_products:
        create_stock_alert_notifications(product, alert_type='out')

    low, out = low_stock_products.count(), out_of_stock_products.count()
    logger.info(f"Stock check complete. Low: {low}, Out: {out}")
    return {'low': low, 'out': out}


@shared_task
def purge_expired_reset_tokens():
    """
    Delete password reset tokens that expired or were used.
    Runs daily via Celery Beat.
    """
    from django.db.models import Q
    from users.models import PasswordResetToken

    deleted, _ = PasswordResetToken.objects.filter(
        Q(expires_at__lt=timezone.now()) | Q(used_at__isnull=False)
    ).delete()
    logger.info(f"Purged {deleted} password reset tokens")
    return deleted
