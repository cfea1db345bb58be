"""
JWT access tokens for API clients.
"""
from django.conf import settings
from django.utils import timezone
from jose import jwt


def create_access_token(user):
    issued_at = timezone.now()
    payload = {
        'user_id': user.pk,
        'iat': int(issued_at.timestamp()),
        'exp': int((issued_at + settings.JWT_EXPIRATION).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token):
    """Decode and verify a token. Raises ``jose.JWTError`` subclasses on failure."""
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
