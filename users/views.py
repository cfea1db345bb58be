import logging
from datetime import timedelta

from django.conf import settings
from django.db.models import Q
from django.utils import timezone
from rest_framework import generics, status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from delivery.routing import has_coordinates, haversine_km
from integrations.cache import get_entity_cache
from integrations.storage import discard_image, save_image
from main.filters import parse_location
from .models import PasswordResetToken, User
from .permissions import IsAdmin, IsStoreOwnerOrAdmin
from .serializers import (
    ChangePasswordSerializer, DeliveryPartnerSerializer,
    ForgotPasswordSerializer, LoginSerializer, ProfileUpdateSerializer, RegisterSerializer,
    ResetPasswordSerializer, UserAdminUpdateSerializer, UserSerializer
)
from .tokens import create_access_token

logger = logging.getLogger(__name__)


def _cache_session(user):
    get_entity_cache().cache_session(user.pk, {
        'user': UserSerializer(user).data,
        'login_at': timezone.now(),
    })


# ============== Auth Views ==============

@api_view(['POST'])
@permission_classes([AllowAny])
def register_view(request):
    """Create a customer, store owner or delivery partner account"""
    serializer = RegisterSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = serializer.save()
    logger.info(f"Registered {user.role} account {user.email}")

    return Response({
        'message': 'User registered successfully',
        'user': UserSerializer(user).data,
        'token': create_access_token(user),
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """Exchange email and password for a JWT"""
    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    email = serializer.validated_data['email'].lower()
    password = serializer.validated_data['password']

    user = User.objects.filter(email=email).first()
    if user is None or not user.check_password(password):
        return Response(
            {'error': 'Invalid credentials'},
            status=status.HTTP_401_UNAUTHORIZED
        )

    if not user.is_active:
        return Response(
            {'error': 'Account is deactivated'},
            status=status.HTTP_401_UNAUTHORIZED
        )

    user.last_login = timezone.now()
    user.save(update_fields=['last_login'])
    _cache_session(user)

    return Response({
        'message': 'Login successful',
        'token': create_access_token(user),
        'token_type': 'Bearer',
        'expires_in': int(settings.JWT_EXPIRATION.total_seconds()),
        'user': UserSerializer(user).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """Drop the cached session; the JWT itself simply expires"""
    get_entity_cache().clear_session(request.user.pk)
    return Response({'message': 'Logged out successfully'})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def current_user_view(request):
    """Get current authenticated user details"""
    cached = get_entity_cache().get_session(request.user.pk)
    if cached.hit:
        return Response(cached.value['user'])

    _cache_session(request.user)
    return Response(UserSerializer(request.user).data)


@api_view(['POST'])
@permission_classes([AllowAny])
def forgot_password_view(request):
    """
    Email a password reset link.
    Always answers 200 so the endpoint cannot be used to probe for accounts.
    """
    from notifications.tasks import send_password_reset_email

    serializer = ForgotPasswordSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    user = User.objects.filter(email=serializer.validated_data['email'].lower(), is_active=True).first()
    if user is not None:
        reset_token = PasswordResetToken.issue(
            user, timedelta(seconds=settings.PASSWORD_RESET_TIMEOUT_SECONDS)
        )
        send_password_reset_email.delay(user.pk, reset_token.token)

    return Response({'message': 'If the email exists, a password reset link has been sent'})


@api_view(['POST'])
@permission_classes([AllowAny])
def reset_password_view(request):
    serializer = ResetPasswordSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    reset_token = PasswordResetToken.objects.select_related('user').filter(
        token=serializer.validated_data['token']
    ).first()
    if reset_token is None or not reset_token.is_valid:
        return Response(
            {'error': 'Invalid or expired reset token'},
            status=status.HTTP_400_BAD_REQUEST
        )

    user = reset_token.user
    user.set_password(serializer.validated_data['password'])
    user.save()
    reset_token.consume()
    get_entity_cache().clear_session(user.pk)

    return Response({'message': 'Password reset successfully'})


# ============== Profile Views ==============

@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def profile_view(request):
    if request.method == 'GET':
        return Response(UserSerializer(request.user).data)

    serializer = ProfileUpdateSerializer(request.user, data=request.data, partial=True)
    serializer.is_valid(raise_exception=True)
    user = serializer.save()
    _cache_session(user)
    return Response(UserSerializer(user).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def upload_avatar_view(request):
    avatar = request.FILES.get('avatar')
    if avatar is None:
        return Response(
            {'error': 'No avatar file provided'},
            status=status.HTTP_400_BAD_REQUEST
        )

    user = request.user
    previous = user.avatar
    user.avatar = save_image(avatar, f'avatars/{user.pk}')
    user.save(update_fields=['avatar', 'updated_at'])
    discard_image(previous)
    _cache_session(user)
    return Response({'message': 'Avatar updated successfully', 'avatar': user.avatar})


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def change_password_view(request):
    """Change user password"""
    serializer = ChangePasswordSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    user = request.user
    if not user.check_password(serializer.validated_data['current_password']):
        return Response(
            {'error': 'Current password is incorrect'},
            status=status.HTTP_400_BAD_REQUEST
        )

    user.set_password(serializer.validated_data['new_password'])
    user.save()
    return Response({'message': 'Password changed successfully'})


# ============== Admin User Management ==============

class UserListView(generics.ListAPIView):
    """List all users (Admin only)"""
    queryset = User.objects.all()
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated, IsAdmin]

    def get_queryset(self):
        queryset = super().get_queryset()

        role = self.request.query_params.get('role')
        if role:
            queryset = queryset.filter(role=role)

        is_active = self.request.query_params.get('is_active')
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active.lower() == 'true')

        search = self.request.query_params.get('search')
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(email__icontains=search) |
                Q(phone__icontains=search)
            )

        return queryset


class UserDetailView(generics.RetrieveUpdateDestroyAPIView):
    """Retrieve, update or deactivate a user (Admin only)"""
    queryset = User.objects.all()
    permission_classes = [IsAuthenticated, IsAdmin]
    http_method_names = ['get', 'put', 'patch', 'delete']

    def get_serializer_class(self):
        if self.request.method in ['PUT', 'PATCH']:
            return UserAdminUpdateSerializer
        return UserSerializer

    def update(self, request, *args, **kwargs):
        kwargs['partial'] = True
        super().update(request, *args, **kwargs)
        user = self.get_object()
        get_entity_cache().clear_session(user.pk)
        return Response(UserSerializer(user).data)

    def destroy(self, request, *args, **kwargs):
        user = self.get_object()
        if user.pk == request.user.pk:
            return Response(
                {'error': 'You cannot deactivate your own account'},
                status=status.HTTP_400_BAD_REQUEST
            )
        user.deactivate()
        get_entity_cache().clear_session(user.pk)
        logger.info(f"User {user.email} deactivated by {request.user.email}")
        return Response({'message': 'User deactivated successfully'})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsStoreOwnerOrAdmin])
def delivery_partners_view(request):
    """
    Active delivery partners, optionally limited to a radius (km) around
    lat/lng using each partner's last reported location.
    """
    partners = list(User.objects.filter(role=User.Role.DELIVERY_PARTNER, is_active=True))

    if request.query_params.get('lat') is not None or request.query_params.get('lng') is not None:
        origin, radius = parse_location(request.query_params, radius_default=10)

        nearby = []
        for partner in partners:
            if not has_coordinates(partner.current_location):
                continue
            partner.distance_km = haversine_km(origin, partner.current_location)
            if partner.distance_km <= radius:
                nearby.append(partner)
        partners = sorted(nearby, key=lambda p: p.distance_km)

    serializer = DeliveryPartnerSerializer(partners, many=True)
    return Response({'count': len(partners), 'results': serializer.data})

