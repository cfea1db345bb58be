from jose import ExpiredSignatureError, JWTError
from rest_framework import authentication, exceptions

from .models import User
from .tokens import decode_access_token


class JWTAuthentication(authentication.BaseAuthentication):
    """
    Bearer token authentication.

    Requests without an Authorization header stay anonymous so that
    permission classes decide between public access and a 401.
    """
    keyword = 'Bearer'

    def authenticate(self, request):
        header = authentication.get_authorization_header(request).split()
        if not header or header[0].lower() != self.keyword.lower().encode():
            return None

        if len(header) != 2:
            raise exceptions.AuthenticationFailed('Invalid token')

        try:
            token = header[1].decode()
        except UnicodeError:
            raise exceptions.AuthenticationFailed('Invalid token')

        try:
            payload = decode_access_token(token)
        except ExpiredSignatureError:
            raise exceptions.AuthenticationFailed('Token expired')
        except JWTError:
            raise exceptions.AuthenticationFailed('Invalid token')

        user = User.objects.filter(pk=payload.get('user_id')).first()
        if user is None or not user.is_active:
            raise exceptions.AuthenticationFailed('Invalid or inactive user')

        return (user, token)

    def authenticate_header(self, request):
        return self.keyword
