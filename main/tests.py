"""
Tests for the project-wide API plumbing.
Covers: error rendering, per-client rate limiting and pagination.
"""
from datetime import date
from decimal import Decimal

import pytest
from rest_framework import status
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.request import Request
from rest_framework.test import APIRequestFactory

from main.exceptions import api_exception_handler
from main.filters import query_params
from main.throttling import ClientIPRateThrottle


# ============== Error Handler Tests ==============

class TestExceptionHandler:

    def test_validation_errors_keep_field_shape(self):
        response = api_exception_handler(ValidationError({'email': ['This field is required.']}), {})
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data == {'email': ['This field is required.']}

    def test_api_errors_become_error_message(self):
        response = api_exception_handler(NotFound('Store not found'), {})
        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data == {'error': 'Store not found'}

    def test_unexpected_errors_are_hidden(self, settings):
        settings.DEBUG = False
        response = api_exception_handler(RuntimeError('database password is hunter2'), {})
        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data == {'error': 'Internal server error'}


# ============== Throttling Tests ==============

class TestClientIPRateThrottle:

    @pytest.mark.parametrize('rate,expected', [
        ('100/15m', (100, 900)),
        ('10/s', (10, 1)),
        ('5/2h', (5, 7200)),
        ('1000/day', (1000, 86400)),
    ])
    def test_parse_rate(self, rate, expected):
        assert ClientIPRateThrottle().parse_rate(rate) == expected

    @pytest.mark.django_db
    def test_requests_over_budget_are_rejected(self, api_client, monkeypatch):
        monkeypatch.setattr(ClientIPRateThrottle, 'rate', '2/1m', raising=False)
        assert api_client.get('/api/products/').status_code == status.HTTP_200_OK
        assert api_client.get('/api/products/').status_code == status.HTTP_200_OK

        response = api_client.get('/api/products/')
        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert 'throttled' in response.data['error']

    @pytest.mark.django_db
    def test_budget_resets_at_window_boundary(self, api_client, monkeypatch):
        now = [170.0]
        monkeypatch.setattr(ClientIPRateThrottle, 'rate', '2/1m', raising=False)
        monkeypatch.setattr(ClientIPRateThrottle, 'timer', lambda self: now[0])

        assert api_client.get('/api/products/').status_code == status.HTTP_200_OK
        assert api_client.get('/api/products/').status_code == status.HTTP_200_OK
        response = api_client.get('/api/products/')
        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response['Retry-After'] == '10'

        # A new window starts at 180s even though the earlier requests are only 11s old
        now[0] = 181.0
        assert api_client.get('/api/products/').status_code == status.HTTP_200_OK

    @pytest.mark.django_db
    def test_health_check_is_not_throttled(self, api_client, monkeypatch):
        monkeypatch.setattr(ClientIPRateThrottle, 'rate', '1/1m', raising=False)
        for _ in range(3):
            assert api_client.get('/health').status_code == status.HTTP_200_OK


# ============== Pagination Tests ==============

@pytest.mark.django_db
class TestPagination:

    def test_limit_param(self, admin_client, customer, other_customer, store_owner):
        response = admin_client.get('/api/users/', {'limit': 2})
        assert response.data['count'] == 4
        assert len(response.data['results']) == 2
        assert response.data['next'] is not None


# ============== Query Filter Tests ==============

class TestQueryParams:

    def parse(self, **params):
        return query_params(Request(APIRequestFactory().get('/', params)))

    def test_typed_values(self):
        filters = self.parse(store='3', min_price='9.50', start_date='2024-01-01')
        assert filters == {'store': 3, 'min_price': Decimal('9.50'), 'start_date': date(2024, 1, 1)}

    def test_blank_values_are_absent(self):
        assert self.parse(store='', limit='') == {}

    def test_unrelated_params_are_ignored(self):
        assert self.parse(sort='price_low', category='snacks') == {}

    def test_every_bad_param_is_reported(self):
        with pytest.raises(ValidationError) as excinfo:
            self.parse(limit='0', store='x')
        assert set(excinfo.value.detail) == {'limit', 'store'}
