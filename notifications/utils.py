"""
Utility functions for notifications.
"""
from django.core.mail import send_mail
from django.conf import settings
import logging

logger = logging.getLogger(__name__)


def _send(subject, message, recipient):
    try:
        send_mail(
            subject=subject,
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient],
            fail_silently=False,
        )
    except Exception as e:
        logger.error(f"Failed to send '{subject}' email to {recipient}: {e}")
        return False
    logger.info(f"'{subject}' email sent to {recipient}")
    return True


def send_password_reset_email(user, reset_url):
    """Email a password reset link. Returns whether the mail went out."""
    if not user.email:
        return False

    message = f"""
Hello {user.name},

We received a request to reset your password. Use the link below to choose a new one:

{reset_url}

The link expires in {settings.PASSWORD_RESET_TIMEOUT_SECONDS // 60} minutes. If you did not ask for a reset, you can ignore this email.

Best regards,
Grocery Marketplace Team
"""
    return _send('Reset your password', message, user.email)


def send_stock_alert_email(user, product, alert_type):
    """Send email notification for stock alerts."""
    if not user.email:
        return False

    if alert_type == 'low':
        subject = f'Low Stock Alert: {product.name}'
        state = 'running low on stock'
    else:
        subject = f'Out of Stock Alert: {product.name}'
        state = 'out of stock'

    message = f"""
Hello {user.name},

The following product in {product.store.name} is {state}:

Product: {product.name}
SKU: {product.sku}
Current Quantity: {product.stock_quantity}
Minimum Level: {product.min_stock_level}

Please restock soon to avoid missed orders.

Best regards,
Grocery Marketplace Team
"""
    return _send(subject, message, user.email)


def create_notification(user, notification_type, title, message, data=None):
    """Helper function to create a notification."""
    from notifications.models import Notification

    return Notification.objects.create(
        user=user,
        type=notification_type,
        title=title,
        message=message,
        data=data
    )


def create_stock_alert_notifications(product, alert_type='low'):
    """
    Notify the owner of the product's store when stock is low or out.
    """
    from notifications.models import Notification

    notification_type = (
        Notification.Type.LOW_STOCK_ALERT
        if alert_type == 'low'
        else Notification.Type.OUT_OF_STOCK_ALERT
    )

    title = f'{"Low" if alert_type == "low" else "Out of"} Stock: {product.name}'
    message = (
        f'{product.name} (SKU: {product.sku}) is '
        f'{"running low" if alert_type == "low" else "out of stock"}. '
        f'Current quantity: {product.stock_quantity}'
    )

    owner = product.store.owner
    if not owner.is_active:
        return None

    notification = create_notification(
        user=owner,
        notification_type=notification_type,
        title=title,
        message=message,
        data={
            'product_id': product.id,
            'product_name': product.name,
            'product_sku': product.sku,
            'stock_quantity': product.stock_quantity,
            'store_id': product.store_id,
        }
    )
    send_stock_alert_email(owner, product, alert_type)
    return notification
