"""
Tests for the Payments module.
Covers: amount conversion, signature checks, the gateway wrapper and the payment endpoints.
"""
import hashlib
import hmac
import json
import pytest
from decimal import Decimal
from unittest.mock import MagicMock, patch

import razorpay
import requests
from razorpay.errors import BadRequestError, ServerError
from rest_framework import status

from orders.models import Order
from orders.services import mark_paid
from payments.gateway import (
    GatewayNotConfigured, PaymentGatewayError, RazorpayGateway, from_paise, get_gateway, to_paise,
    verify_webhook_signature
)
from stock.models import StockTransaction

KEY_ID = 'rzp_test_key'
KEY_SECRET = 'test_key_secret'
WEBHOOK_SECRET = 'test_webhook_secret'


def sign(secret, message):
    if isinstance(message, str):
        message = message.encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def sdk_client():
    """A real SDK client whose network-facing resources are mocks."""
    client = razorpay.Client(auth=(KEY_ID, KEY_SECRET))
    client.order = MagicMock()
    client.payment = MagicMock()
    return client


@pytest.fixture
def gateway_settings(settings):
    settings.RAZORPAY_KEY_ID = KEY_ID
    settings.RAZORPAY_KEY_SECRET = KEY_SECRET
    settings.RAZORPAY_WEBHOOK_SECRET = WEBHOOK_SECRET
    settings.PAYMENT_GATEWAY_TIMEOUT = 15
    return settings


@pytest.fixture
def razorpay_client(gateway_settings):
    client = sdk_client()
    with patch('payments.gateway.razorpay.Client', return_value=client):
        yield client


# ============== Gateway Helper Tests ==============

class TestAmounts:

    def test_to_paise(self):
        assert to_paise(Decimal('125.00')) == 12500
        assert to_paise('0.1') == 10

    def test_from_paise(self):
        assert from_paise(12550) == 125.5


class TestSignatures:

    def test_payment_signature(self):
        gateway = RazorpayGateway(sdk_client())
        signature = sign(KEY_SECRET, 'order_abc|pay_xyz')
        assert gateway.verify_payment_signature('order_abc', 'pay_xyz', signature)
        assert not gateway.verify_payment_signature('order_abc', 'pay_other', signature)

    def test_payment_signature_missing(self):
        assert not RazorpayGateway(sdk_client()).verify_payment_signature('order_abc', 'pay_xyz', '')

    def test_webhook_signature(self):
        body = b'{"event": "payment.captured"}'
        assert verify_webhook_signature(body, sign(WEBHOOK_SECRET, body), WEBHOOK_SECRET)
        assert not verify_webhook_signature(body + b' ', sign(WEBHOOK_SECRET, body), WEBHOOK_SECRET)

    def test_webhook_signature_without_secret(self):
        assert not verify_webhook_signature(b'{}', 'anything', '')


class TestRazorpayGateway:

    def gateway(self):
        client = sdk_client()
        return RazorpayGateway(client, timeout=5), client

    def test_create_order(self):
        gateway, client = self.gateway()
        client.order.create.return_value = {'id': 'order_1', 'amount': 12500, 'currency': 'INR'}
        result = gateway.create_order(12500, receipt='order_7', notes={'order_id': '7'})

        assert result['id'] == 'order_1'
        client.order.create.assert_called_once_with(data={
            'amount': 12500, 'currency': 'INR', 'receipt': 'order_7', 'notes': {'order_id': '7'}
        }, timeout=5)

    def test_refund_payment(self):
        gateway, client = self.gateway()
        gateway.refund_payment('pay_1', amount=500)
        client.payment.refund.assert_called_once_with('pay_1', {'notes': {}, 'amount': 500}, timeout=5)

    def test_sdk_error(self):
        gateway, client = self.gateway()
        client.payment.fetch.side_effect = BadRequestError('Bad amount')
        with pytest.raises(PaymentGatewayError) as exc_info:
            gateway.fetch_payment('pay_1')
        assert str(exc_info.value.detail) == 'Bad amount'

    def test_network_error(self):
        gateway, client = self.gateway()
        client.payment.fetch.side_effect = requests.ConnectionError('down')
        with pytest.raises(PaymentGatewayError):
            gateway.fetch_payment('pay_1')

    def test_get_gateway_requires_keys(self, settings):
        settings.RAZORPAY_KEY_ID = ''
        with pytest.raises(GatewayNotConfigured):
            get_gateway()

    def test_get_gateway_uses_configured_keys(self, gateway_settings):
        gateway = get_gateway()
        assert gateway.client.auth == (KEY_ID, KEY_SECRET)
        assert gateway.timeout == 15


# ============== Create Payment Order Tests ==============

@pytest.mark.django_db
class TestCreatePaymentOrder:

    def test_creates_gateway_order_for_total(self, customer_client, order, razorpay_client):
        razorpay_client.order.create.return_value = {
            'id': 'order_gw1', 'amount': 12500, 'currency': 'INR', 'receipt': f'order_{order.pk}'
        }
        response = customer_client.post('/api/payments/create-order/', {'order_id': order.pk}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['gateway_order_id'] == 'order_gw1'
        assert response.data['key_id'] == 'rzp_test_key'

        data = razorpay_client.order.create.call_args.kwargs['data']
        assert data['amount'] == 12500
        assert data['notes']['order_number'] == order.order_number

        order.refresh_from_db()
        assert order.gateway_order_id == 'order_gw1'

    def test_paid_order_is_not_awaiting_payment(self, customer_client, order, razorpay_client):
        mark_paid(order, 'pay_1')
        response = customer_client.post('/api/payments/create-order/', {'order_id': order.pk}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Order is not awaiting payment'
        razorpay_client.order.create.assert_not_called()

    def test_other_customer_is_rejected(self, other_customer_client, order, razorpay_client):
        response = other_customer_client.post('/api/payments/create-order/', {'order_id': order.pk}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_gateway_failure_is_reported(self, customer_client, order, razorpay_client):
        razorpay_client.order.create.side_effect = ServerError('Gateway unavailable')
        response = customer_client.post('/api/payments/create-order/', {'order_id': order.pk}, format='json')
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data['error'] == 'Gateway unavailable'

        order.refresh_from_db()
        assert order.gateway_order_id is None

    def test_unconfigured_gateway(self, customer_client, order, settings):
        settings.RAZORPAY_KEY_ID = ''
        response = customer_client.post('/api/payments/create-order/', {'order_id': order.pk}, format='json')
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


# ============== Verify Payment Tests ==============

@pytest.mark.django_db
class TestVerifyPayment:

    def payload(self, signature=None):
        return {
            'razorpay_order_id': 'order_gw1',
            'razorpay_payment_id': 'pay_1',
            'razorpay_signature': signature or sign(KEY_SECRET, 'order_gw1|pay_1'),
        }

    def test_valid_payment_confirms_order(self, customer_client, order, razorpay_client):
        Order.objects.filter(pk=order.pk).update(gateway_order_id='order_gw1')
        razorpay_client.payment.fetch.return_value = {'id': 'pay_1', 'status': 'captured', 'amount': 12500}

        response = customer_client.post('/api/payments/verify/', self.payload(), format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['amount'] == 125.0

        order.refresh_from_db()
        assert order.payment_status == Order.PaymentStatus.PAID
        assert order.payment_id == 'pay_1'
        assert order.status == Order.Status.CONFIRMED

    def test_invalid_signature(self, customer_client, order, razorpay_client):
        response = customer_client.post('/api/payments/verify/', self.payload('bad'), format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Invalid payment signature'
        razorpay_client.payment.fetch.assert_not_called()

    def test_payment_not_captured(self, customer_client, order, razorpay_client):
        razorpay_client.payment.fetch.return_value = {'id': 'pay_1', 'status': 'authorized'}
        response = customer_client.post('/api/payments/verify/', self.payload(), format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Payment not captured'

    def test_order_found_through_payment_notes(self, customer_client, order, razorpay_client):
        razorpay_client.payment.fetch.return_value = {
            'id': 'pay_1', 'status': 'captured', 'amount': 12500, 'notes': {'order_id': str(order.pk)}
        }
        response = customer_client.post('/api/payments/verify/', self.payload(), format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['order_id'] == order.pk

    def test_someone_elses_order(self, other_customer_client, order, razorpay_client):
        Order.objects.filter(pk=order.pk).update(gateway_order_id='order_gw1')
        razorpay_client.payment.fetch.return_value = {'id': 'pay_1', 'status': 'captured', 'amount': 12500}
        response = other_customer_client.post('/api/payments/verify/', self.payload(), format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN


# ============== Refund and History Tests ==============

@pytest.mark.django_db
class TestRefund:

    def test_refund_paid_order(self, customer_client, order, product, razorpay_client):
        mark_paid(order, 'pay_1')
        razorpay_client.payment.refund.return_value = {'id': 'rfnd_1', 'amount': 12500, 'status': 'processed'}

        response = customer_client.post('/api/payments/refund/', {
            'order_id': order.pk, 'reason': 'Changed my mind'
        }, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['refund_id'] == 'rfnd_1'
        assert response.data['amount'] == 125.0

        order.refresh_from_db()
        assert order.status == Order.Status.REFUNDED
        assert order.payment_status == Order.PaymentStatus.REFUNDED
        product.refresh_from_db()
        assert product.stock_quantity == 10
        assert StockTransaction.objects.filter(reason=StockTransaction.Reason.REFUND).count() == 1

    def test_unpaid_order(self, customer_client, order, razorpay_client):
        response = customer_client.post('/api/payments/refund/', {
            'order_id': order.pk, 'reason': 'Changed my mind'
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Order is not paid'

    def test_delivered_order_cannot_be_refunded(self, customer_client, order, razorpay_client):
        mark_paid(order, 'pay_1')
        Order.objects.filter(pk=order.pk).update(status=Order.Status.DELIVERED)
        response = customer_client.post('/api/payments/refund/', {
            'order_id': order.pk, 'reason': 'Changed my mind'
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        razorpay_client.payment.refund.assert_not_called()


@pytest.mark.django_db
class TestPaymentQueries:

    def test_history_lists_paid_orders_only(self, customer_client, customer, order, store, product):
        from orders.services import place_order
        unpaid = place_order(customer, store.pk, [{'product_id': product.pk, 'quantity': 1}],
                             {'street': 'x', 'city': 'y', 'pincode': '751012'}, 'upi')
        mark_paid(order, 'pay_1')

        response = customer_client.get('/api/payments/history/')
        assert response.status_code == status.HTTP_200_OK
        ids = [o['id'] for o in response.data['results']]
        assert ids == [order.pk]
        assert unpaid.pk not in ids

    def test_payment_details(self, customer_client, order, razorpay_client):
        mark_paid(order, 'pay_1')
        razorpay_client.payment.fetch.return_value = {
            'id': 'pay_1', 'amount': 12500, 'currency': 'INR', 'status': 'captured', 'method': 'upi'
        }
        response = customer_client.get(f'/api/payments/order/{order.pk}/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['method'] == 'upi'
        assert response.data['amount'] == 125.0

    def test_payment_details_without_payment(self, customer_client, order, razorpay_client):
        response = customer_client.get(f'/api/payments/order/{order.pk}/')
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_analytics_is_admin_only(self, admin_client, customer_client, order):
        mark_paid(order, 'pay_1')
        assert customer_client.get('/api/payments/analytics/').status_code == status.HTTP_403_FORBIDDEN

        response = admin_client.get('/api/payments/analytics/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['statistics']['paid_orders'] == 1
        assert response.data['statistics']['paid_amount'] == 125.0
        assert response.data['payment_methods'][0]['payment_method'] == 'cash'

    def test_analytics_date_must_be_a_date(self, admin_client, db):
        response = admin_client.get('/api/payments/analytics/', {'start_date': 'monday', 'end_date': '2024-01-31'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'start_date' in response.data


# ============== Webhook Tests ==============

@pytest.mark.django_db
class TestWebhook:

    def post(self, api_client, event, signature=None):
        body = json.dumps(event)
        headers = {}
        if signature is not False:
            headers['HTTP_X_RAZORPAY_SIGNATURE'] = signature or sign(WEBHOOK_SECRET, body)
        return api_client.post('/api/payments/webhook/', body, content_type='application/json', **headers)

    def test_payment_captured_marks_order_paid(self, api_client, order, gateway_settings):
        response = self.post(api_client, {
            'event': 'payment.captured',
            'payload': {'payment': {'entity': {'id': 'pay_9', 'notes': {'order_id': str(order.pk)}}}},
        })
        assert response.status_code == status.HTTP_200_OK
        assert response.data == {'received': True}
        order.refresh_from_db()
        assert order.payment_status == Order.PaymentStatus.PAID
        assert order.payment_id == 'pay_9'

    def test_payment_failed(self, api_client, order, gateway_settings):
        Order.objects.filter(pk=order.pk).update(gateway_order_id='order_gw1')
        self.post(api_client, {
            'event': 'payment.failed',
            'payload': {'payment': {'entity': {'id': 'pay_9', 'order_id': 'order_gw1'}}},
        })
        order.refresh_from_db()
        assert order.payment_status == Order.PaymentStatus.FAILED

    def test_refund_processed(self, api_client, order, gateway_settings):
        mark_paid(order, 'pay_9')
        self.post(api_client, {
            'event': 'refund.processed',
            'payload': {'refund': {'entity': {'id': 'rfnd_9', 'payment_id': 'pay_9', 'amount': 12500}}},
        })
        order.refresh_from_db()
        assert order.status == Order.Status.REFUNDED
        assert order.refund_id == 'rfnd_9'

    def test_unknown_event_is_acknowledged(self, api_client, gateway_settings, db):
        response = self.post(api_client, {'event': 'order.paid', 'payload': {}})
        assert response.status_code == status.HTTP_200_OK

    def test_missing_signature(self, api_client, gateway_settings, db):
        response = self.post(api_client, {'event': 'payment.captured'}, signature=False)
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Missing signature'

    def test_invalid_signature(self, api_client, order, gateway_settings):
        response = self.post(api_client, {'event': 'payment.captured'}, signature='forged')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Invalid signature'

    def test_webhook_secret_not_configured(self, api_client, settings, db):
        settings.RAZORPAY_WEBHOOK_SECRET = ''
        response = self.post(api_client, {'event': 'payment.captured'}, signature='anything')
        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
