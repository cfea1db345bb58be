"""
Tests for the Notifications module.
Covers: order event notifications, scheduled tasks and the notification endpoints.
"""
import pytest
from datetime import timedelta
from rest_framework import status

from inventory.models import Product
from notifications.models import Notification
from notifications.tasks import check_stock_levels, purge_expired_reset_tokens, send_password_reset_email
from notifications.utils import create_notification
from orders.models import Order
from users.models import PasswordResetToken


# ============== Order Event Tests ==============

@pytest.mark.django_db
class TestOrderEventNotifications:

    def test_new_order_notifies_customer_and_owner(self, order, customer, store_owner):
        placed = Notification.objects.get(user=customer)
        assert placed.type == Notification.Type.ORDER_PLACED
        assert placed.data['order_number'] == order.order_number

        new_order = Notification.objects.get(user=store_owner)
        assert new_order.type == Notification.Type.NEW_ORDER
        assert 'Fresh Basket' in new_order.message

    def test_status_change_notifies_customer(self, order, customer):
        order.status = Order.Status.CONFIRMED
        order.save()
        latest = Notification.objects.get(user=customer, type=Notification.Type.ORDER_STATUS)
        assert latest.data['status'] == Order.Status.CONFIRMED

    def test_save_without_status_change_is_quiet(self, order, customer):
        order.notes = 'Ring the bell'
        order.save()
        assert Notification.objects.filter(user=customer).count() == 1

    def test_assignment_notifies_partner_once(self, order, delivery_partner):
        order.delivery_partner = delivery_partner
        order.save()
        order.save()
        assert Notification.objects.filter(
            user=delivery_partner, type=Notification.Type.DELIVERY_ASSIGNED
        ).count() == 1


# ============== Task Tests ==============

@pytest.mark.django_db
class TestTasks:

    def test_check_stock_levels(self, product, product2, store_owner, mailoutbox):
        Product.objects.filter(pk=product.pk).update(stock_quantity=2)
        Product.objects.filter(pk=product2.pk).update(stock_quantity=0, is_available=False)

        assert check_stock_levels() == {'low': 1, 'out': 1}

        types = set(Notification.objects.filter(user=store_owner).values_list('type', flat=True))
        assert types == {Notification.Type.LOW_STOCK_ALERT, Notification.Type.OUT_OF_STOCK_ALERT}
        assert len(mailoutbox) == 2
        assert mailoutbox[0].to == [store_owner.email]

    def test_check_stock_levels_ignores_inactive_stores(self, store, product):
        Product.objects.filter(pk=product.pk).update(stock_quantity=0)
        store.is_active = False
        store.save()
        assert check_stock_levels() == {'low': 0, 'out': 0}

    def test_send_password_reset_email(self, customer, mailoutbox, settings):
        settings.FRONTEND_URL = 'https://shop.example/'
        assert send_password_reset_email(customer.pk, 'abc123') is True
        assert 'https://shop.example/reset-password?token=abc123' in mailoutbox[0].body

    def test_send_password_reset_email_skips_inactive_user(self, customer, mailoutbox):
        customer.deactivate()
        assert send_password_reset_email(customer.pk, 'abc123') is False
        assert mailoutbox == []

    def test_purge_expired_reset_tokens(self, customer):
        live = PasswordResetToken.issue(customer, timedelta(hours=1))
        PasswordResetToken.issue(customer, timedelta(seconds=-1))
        assert purge_expired_reset_tokens() == 1
        assert list(PasswordResetToken.objects.all()) == [live]


# ============== Notification View Tests ==============

@pytest.mark.django_db
class TestNotificationViews:

    @pytest.fixture
    def notifications(self, customer, other_customer):
        return [
            create_notification(customer, Notification.Type.GENERAL, 'Welcome', 'Hello there'),
            create_notification(customer, Notification.Type.PAYMENT, 'Paid', 'Payment received'),
            create_notification(other_customer, Notification.Type.GENERAL, 'Welcome', 'Hello there'),
        ]

    def test_list_own_notifications(self, customer_client, notifications):
        response = customer_client.get('/api/notifications/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 2

    def test_filter_by_type(self, customer_client, notifications):
        response = customer_client.get('/api/notifications/', {'type': 'PAYMENT'})
        assert [n['title'] for n in response.data['results']] == ['Paid']

    def test_unread_count_and_mark_read(self, customer_client, notifications):
        assert customer_client.get('/api/notifications/unread-count/').data['unread_count'] == 2

        response = customer_client.patch(f'/api/notifications/{notifications[0].pk}/read/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['notification']['is_read'] is True
        assert response.data['unread_count'] == 1

        assert customer_client.get('/api/notifications/unread-count/').data['unread_count'] == 1
        response = customer_client.get('/api/notifications/', {'is_read': 'false'})
        assert [n['id'] for n in response.data['results']] == [notifications[1].pk]

    def test_mark_all_read(self, customer_client, notifications):
        response = customer_client.post('/api/notifications/mark-all-read/')
        assert response.data['updated_count'] == 2
        assert not Notification.objects.filter(user=notifications[0].user, is_read=False).exists()
        assert Notification.objects.filter(user=notifications[2].user, is_read=False).exists()

    def test_cannot_touch_someone_elses_notification(self, customer_client, notifications):
        response = customer_client.patch(f'/api/notifications/{notifications[2].pk}/read/')
        assert response.status_code == status.HTTP_404_NOT_FOUND
        response = customer_client.delete(f'/api/notifications/{notifications[2].pk}/')
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_delete(self, customer_client, notifications):
        response = customer_client.delete(f'/api/notifications/{notifications[0].pk}/')
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not Notification.objects.filter(pk=notifications[0].pk).exists()

    def test_requires_authentication(self, api_client):
        response = api_client.get('/api/notifications/')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_clear_read(self, customer_client, notifications):
        notifications[0].mark_as_read()
        response = customer_client.delete('/api/notifications/clear-read/')
        assert response.data['deleted_count'] == 1
        assert list(Notification.objects.filter(user=notifications[0].user)) == [notifications[1]]

    def test_filter_by_order_number(self, customer_client, order, notifications):
        response = customer_client.get('/api/notifications/', {'order_number': order.order_number})
        assert [n['type'] for n in response.data['results']] == [Notification.Type.ORDER_PLACED]
