"""
Tests for the Users module.
Covers: User model, JWT authentication, auth views, password reset, profile and admin user management.
"""
import pytest
from datetime import timedelta
from django.utils import timezone
from jose import jwt
from rest_framework import status

from conftest import client_for
from users.models import PasswordResetToken, User
from users.tokens import create_access_token, decode_access_token


# ============== User Model Tests ==============

@pytest.mark.django_db
class TestUserModel:

    def test_create_user_normalises_email(self):
        user = User.objects.create_user(email='Someone@Example.COM', password='secret123', name='Someone')
        assert user.email == 'someone@example.com'
        assert user.role == User.Role.CUSTOMER
        assert user.check_password('secret123')

    def test_create_superuser_is_admin(self):
        user = User.objects.create_superuser(email='root@example.com', password='secret123', name='Root')
        assert user.is_admin
        assert user.is_staff and user.is_superuser

    def test_role_properties(self, customer, store_owner, delivery_partner, admin_user):
        assert customer.is_customer and not customer.is_admin
        assert store_owner.is_store_owner
        assert delivery_partner.is_delivery_partner
        assert admin_user.is_admin

    def test_deactivate(self, customer):
        customer.deactivate()
        customer.refresh_from_db()
        assert customer.is_active is False


# ============== JWT Tests ==============

@pytest.mark.django_db
class TestJWTAuthentication:

    def test_token_round_trip(self, customer):
        payload = decode_access_token(create_access_token(customer))
        assert payload['user_id'] == customer.pk
        assert payload['exp'] > payload['iat']

    def test_missing_token_is_unauthorized(self, api_client):
        response = api_client.get('/api/auth/me/')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_garbage_token_is_unauthorized(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION='Bearer not-a-token')
        response = api_client.get('/api/auth/me/')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data['error'] == 'Invalid token'

    def test_expired_token_is_unauthorized(self, api_client, customer, settings):
        expired = jwt.encode(
            {'user_id': customer.pk, 'exp': int((timezone.now() - timedelta(minutes=1)).timestamp())},
            settings.JWT_SECRET_KEY,
            algorithm=settings.JWT_ALGORITHM
        )
        api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {expired}')
        response = api_client.get('/api/auth/me/')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data['error'] == 'Token expired'

    def test_inactive_user_token_is_rejected(self, customer):
        client = client_for(customer)
        customer.deactivate()
        response = client.get('/api/auth/me/')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


# ============== Auth View Tests ==============

@pytest.mark.django_db
class TestAuthViews:

    def test_register(self, api_client):
        response = api_client.post('/api/auth/register/', {
            'name': 'New Shopper',
            'email': 'New@Shop.com',
            'phone': '9876543210',
            'password': 'secret123',
        }, format='json')
        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['user']['email'] == 'new@shop.com'
        assert response.data['user']['role'] == User.Role.CUSTOMER
        assert decode_access_token(response.data['token'])['user_id'] == response.data['user']['id']

    def test_register_rejects_admin_role(self, api_client):
        response = api_client.post('/api/auth/register/', {
            'name': 'Sneaky',
            'email': 'sneaky@shop.com',
            'phone': '9876543211',
            'password': 'secret123',
            'role': 'admin',
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'role' in response.data

    def test_register_duplicate_email(self, api_client, customer):
        response = api_client.post('/api/auth/register/', {
            'name': 'Again',
            'email': customer.email,
            'phone': '9876543212',
            'password': 'secret123',
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'email' in response.data

    def test_register_invalid_phone(self, api_client):
        response = api_client.post('/api/auth/register/', {
            'name': 'Bad Phone',
            'email': 'badphone@shop.com',
            'phone': '12345',
            'password': 'secret123',
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'phone' in response.data

    def test_login(self, api_client, customer):
        response = api_client.post('/api/auth/login/', {
            'email': 'CUSTOMER@test.com',
            'password': 'testpass123',
        }, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['token_type'] == 'Bearer'
        assert response.data['user']['id'] == customer.pk

    def test_login_wrong_password(self, api_client, customer):
        response = api_client.post('/api/auth/login/', {
            'email': customer.email,
            'password': 'wrong-password',
        }, format='json')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data['error'] == 'Invalid credentials'

    def test_login_deactivated_account(self, api_client, customer):
        customer.deactivate()
        response = api_client.post('/api/auth/login/', {
            'email': customer.email,
            'password': 'testpass123',
        }, format='json')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.data['error'] == 'Account is deactivated'

    def test_me_uses_session_cache_after_login(self, api_client, customer):
        api_client.post('/api/auth/login/', {'email': customer.email, 'password': 'testpass123'}, format='json')
        response = client_for(customer).get('/api/auth/me/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['email'] == customer.email

    def test_logout(self, customer_client):
        response = customer_client.post('/api/auth/logout/')
        assert response.status_code == status.HTTP_200_OK


# ============== Password Reset Tests ==============

@pytest.mark.django_db
class TestPasswordReset:

    def test_forgot_password_sends_link(self, api_client, customer, mailoutbox, settings):
        response = api_client.post('/api/auth/forgot-password/', {'email': customer.email}, format='json')
        assert response.status_code == status.HTTP_200_OK

        token = PasswordResetToken.objects.get(user=customer)
        assert len(mailoutbox) == 1
        assert f'{settings.FRONTEND_URL}/reset-password?token={token.token}' in mailoutbox[0].body

    def test_forgot_password_unknown_email_looks_the_same(self, api_client, mailoutbox):
        response = api_client.post('/api/auth/forgot-password/', {'email': 'nobody@test.com'}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert len(mailoutbox) == 0
        assert not PasswordResetToken.objects.exists()

    def test_reset_password(self, api_client, customer):
        token = PasswordResetToken.issue(customer, timedelta(hours=1))
        response = api_client.post('/api/auth/reset-password/', {
            'token': token.token,
            'password': 'brand-new-pass',
        }, format='json')
        assert response.status_code == status.HTTP_200_OK

        customer.refresh_from_db()
        assert customer.check_password('brand-new-pass')
        token.refresh_from_db()
        assert token.used_at is not None

    def test_reset_token_is_single_use(self, api_client, customer):
        token = PasswordResetToken.issue(customer, timedelta(hours=1))
        api_client.post('/api/auth/reset-password/', {'token': token.token, 'password': 'first-pass'}, format='json')
        response = api_client.post('/api/auth/reset-password/', {
            'token': token.token,
            'password': 'second-pass',
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Invalid or expired reset token'

    def test_expired_reset_token(self, api_client, customer):
        token = PasswordResetToken.issue(customer, timedelta(seconds=-1))
        response = api_client.post('/api/auth/reset-password/', {
            'token': token.token,
            'password': 'brand-new-pass',
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST


# ============== Profile Tests ==============

@pytest.mark.django_db
class TestProfile:

    def test_get_profile(self, customer_client, customer):
        response = customer_client.get('/api/users/profile/')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['id'] == customer.pk

    def test_update_profile_merges_preferences(self, customer_client, customer):
        customer.preferences = {'language': 'en'}
        customer.save()

        response = customer_client.put('/api/users/profile/', {
            'name': 'Renamed Customer',
            'preferences': {'notifications': False},
        }, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['name'] == 'Renamed Customer'
        assert response.data['preferences'] == {'language': 'en', 'notifications': False}

    def test_profile_phone_must_be_unique(self, customer_client, other_customer):
        response = customer_client.put('/api/users/profile/', {'phone': other_customer.phone}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_change_password(self, customer_client, customer):
        response = customer_client.put('/api/users/password/', {
            'current_password': 'testpass123',
            'new_password': 'newpass456',
        }, format='json')
        assert response.status_code == status.HTTP_200_OK
        customer.refresh_from_db()
        assert customer.check_password('newpass456')

    def test_change_password_wrong_current(self, customer_client):
        response = customer_client.put('/api/users/password/', {
            'current_password': 'nope',
            'new_password': 'newpass456',
        }, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Current password is incorrect'


# ============== Admin User Management Tests ==============

@pytest.mark.django_db
class TestUserManagement:

    def test_admin_lists_users_by_role(self, admin_client, customer, store_owner):
        response = admin_client.get('/api/users/', {'role': 'customer'})
        assert response.status_code == status.HTTP_200_OK
        assert [user['id'] for user in response.data['results']] == [customer.pk]

    def test_non_admin_cannot_list_users(self, customer_client):
        response = customer_client.get('/api/users/')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_admin_updates_user(self, admin_client, customer):
        response = admin_client.patch(f'/api/users/{customer.pk}/', {'is_verified': True}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert response.data['is_verified'] is True

    def test_delete_deactivates_user(self, admin_client, customer):
        response = admin_client.delete(f'/api/users/{customer.pk}/')
        assert response.status_code == status.HTTP_200_OK
        customer.refresh_from_db()
        assert customer.is_active is False
        assert User.objects.filter(pk=customer.pk).exists()

    def test_admin_cannot_deactivate_self(self, admin_client, admin_user):
        response = admin_client.delete(f'/api/users/{admin_user.pk}/')
        assert response.status_code == status.HTTP_400_BAD_REQUEST


# ============== Delivery Partner Lookup Tests ==============

@pytest.mark.django_db
class TestDeliveryPartnerLookup:

    def test_store_owner_finds_nearby_partners(self, owner_client, delivery_partner):
        response = owner_client.get('/api/users/delivery-partners/', {
            'lat': 20.2961, 'lng': 85.8245, 'radius': 5
        })
        assert response.status_code == status.HTTP_200_OK
        assert response.data['count'] == 1
        assert response.data['results'][0]['distance_km'] == 0

    def test_partners_outside_radius_are_excluded(self, owner_client, delivery_partner):
        response = owner_client.get('/api/users/delivery-partners/', {
            'lat': 19.0760, 'lng': 72.8777, 'radius': 5
        })
        assert response.data['count'] == 0

    def test_radius_must_be_a_number(self, owner_client, delivery_partner):
        response = owner_client.get('/api/users/delivery-partners/', {
            'lat': 20.2961, 'lng': 85.8245, 'radius': 'far'
        })
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'radius' in response.data

    def test_customer_cannot_list_partners(self, customer_client):
        response = customer_client.get('/api/users/delivery-partners/')
        assert response.status_code == status.HTTP_403_FORBIDDEN
