"""
Signals for notifications app.
Listens for order events and creates notifications.
"""
from django.db.models.signals import pre_save, post_save
from django.dispatch import receiver

ORDER_STATUS_MESSAGES = {
    'confirmed': 'Your order {number} has been confirmed by {store}.',
    'preparing': '{store} is preparing your order {number}.',
    'ready_for_pickup': 'Your order {number} is packed and waiting for pickup.',
    'out_for_delivery': 'Your order {number} is on its way.',
    'delivered': 'Your order {number} has been delivered. Enjoy!',
    'cancelled': 'Your order {number} has been cancelled.',
    'refunded': 'Your order {number} has been refunded.',
}


@receiver(pre_save, sender='orders.Order')
def track_order_changes(sender, instance, **kwargs):
    """Remember the stored status, partner and payment state before a save."""
    instance._old_status = None
    instance._old_delivery_partner_id = None
    instance._old_payment_status = None
    if instance.pk:
        previous = sender.objects.filter(pk=instance.pk).values(
            'status', 'delivery_partner_id', 'payment_status'
        ).first()
        if previous:
            instance._old_status = previous['status']
            instance._old_delivery_partner_id = previous['delivery_partner_id']
            instance._old_payment_status = previous['payment_status']


@receiver(post_save, sender='orders.Order')
def create_order_notifications(sender, instance, created, **kwargs):
    """Notify the people involved in an order about what just changed."""
    from notifications.models import Notification
    from notifications.utils import create_notification

    order = instance
    data = {'order_id': order.id, 'order_number': order.order_number, 'status': order.status}

    if created:
        create_notification(
            user=order.customer,
            notification_type=Notification.Type.ORDER_PLACED,
            title='Order Placed',
            message=f'Your order {order.order_number} for ₹{order.total} has been placed.',
            data=data
        )
        create_notification(
            user=order.store.owner,
            notification_type=Notification.Type.NEW_ORDER,
            title='New Order',
            message=f'New order {order.order_number} received at {order.store.name}.',
            data=data
        )
        return

    old_status = getattr(instance, '_old_status', None)
    if old_status and old_status != order.status:
        template = ORDER_STATUS_MESSAGES.get(order.status)
        if template:
            notification_type = (
                Notification.Type.ORDER_CANCELLED
                if order.status == 'cancelled'
                else Notification.Type.ORDER_STATUS
            )
            create_notification(
                user=order.customer,
                notification_type=notification_type,
                title=f'Order {order.get_status_display()}',
                message=template.format(number=order.order_number, store=order.store.name),
                data=data
            )

    old_partner_id = getattr(instance, '_old_delivery_partner_id', None)
    if order.delivery_partner_id and order.delivery_partner_id != old_partner_id:
        create_notification(
            user=order.delivery_partner,
            notification_type=Notification.Type.DELIVERY_ASSIGNED,
            title='Delivery Assigned',
            message=f'Order {order.order_number} from {order.store.name} is assigned to you.',
            data=data
        )

    old_payment_status = getattr(instance, '_old_payment_status', None)
    if order.payment_status == 'paid' and old_payment_status != 'paid':
        create_notification(
            user=order.customer,
            notification_type=Notification.Type.PAYMENT,
            title='Payment Received',
            message=f'We received your payment of ₹{order.total} for order {order.order_number}.',
            data=data
        )
