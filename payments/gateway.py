"""
Razorpay gateway access.

Only the handful of gateway calls the marketplace needs are wrapped here:
creating a gateway order, fetching a payment, refunding it and checking
checkout and webhook signatures. SDK and transport errors surface as
``PaymentGatewayError`` so views can report them like any other API error.
"""
import logging
from decimal import Decimal

import razorpay
import requests
from django.conf import settings
from razorpay.errors import BadRequestError, GatewayError, ServerError, SignatureVerificationError
from rest_framework import status
from rest_framework.exceptions import APIException

logger = logging.getLogger(__name__)

GATEWAY_ERRORS = (BadRequestError, GatewayError, ServerError, requests.RequestException)


class GatewayNotConfigured(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Payment service is not configured'
    default_code = 'payment_gateway_not_configured'


class PaymentGatewayError(APIException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Payment gateway request failed'
    default_code = 'payment_gateway_error'


def to_paise(amount):
    return int((Decimal(str(amount)) * 100).quantize(Decimal('1')))


def from_paise(amount):
    return float(Decimal(amount) / 100)


def verify_webhook_signature(body, signature, secret):
    """Webhook signature: HMAC-SHA256 of the raw request body with the webhook secret."""
    if not (secret and signature):
        return False
    if isinstance(body, bytes):
        body = body.decode('utf-8')
    try:
        return razorpay.Client().utility.verify_webhook_signature(body, signature, secret)
    except SignatureVerificationError:
        return False


class RazorpayGateway:
    def __init__(self, client, timeout=15):
        self.client = client
        self.timeout = timeout

    def _call(self, action, method, *args, **kwargs):
        try:
            return method(*args, timeout=self.timeout, **kwargs)
        except GATEWAY_ERRORS as e:
            logger.error(f"Payment gateway {action} failed: {e}")
            raise PaymentGatewayError(str(e) or PaymentGatewayError.default_detail)

    def create_order(self, amount, currency='INR', receipt=None, notes=None):
        return self._call('order create', self.client.order.create, data={
            'amount': amount,
            'currency': currency,
            'receipt': receipt,
            'notes': notes or {},
        })

    def fetch_payment(self, payment_id):
        return self._call(f'payment fetch {payment_id}', self.client.payment.fetch, payment_id)

    def refund_payment(self, payment_id, amount=None, notes=None):
        data = {'notes': notes or {}}
        if amount is not None:
            data['amount'] = amount
        return self._call(f'refund {payment_id}', self.client.payment.refund, payment_id, data)

    def verify_payment_signature(self, gateway_order_id, payment_id, signature):
        """Checkout signature: HMAC-SHA256 of ``<order_id>|<payment_id>`` with the key secret."""
        if not signature:
            return False
        try:
            return self.client.utility.verify_payment_signature({
                'razorpay_order_id': gateway_order_id,
                'razorpay_payment_id': payment_id,
                'razorpay_signature': signature,
            })
        except SignatureVerificationError:
            return False


def get_gateway():
    if not (settings.RAZORPAY_KEY_ID and settings.RAZORPAY_KEY_SECRET):
        raise GatewayNotConfigured()
    client = razorpay.Client(auth=(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET))
    return RazorpayGateway(client, timeout=settings.PAYMENT_GATEWAY_TIMEOUT)
