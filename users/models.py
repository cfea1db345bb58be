import secrets

from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.core.validators import RegexValidator
from django.db import models
from django.utils import timezone

phone_validator = RegexValidator(
    regex=r'^[6-9]\d{9}$',
    message='Enter a valid 10-digit mobile number'
)


class UserManager(BaseUserManager):
    """Manager for users identified by email instead of username."""
    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError('Email is required')
        email = self.normalize_email(email).lower()
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', User.Role.ADMIN)
        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    """
    Marketplace account.
    Roles: customer, store_owner, delivery_partner, admin

    Accounts are never hard-deleted; deactivation clears ``is_active``.
    """

    class Role(models.TextChoices):
        CUSTOMER = 'customer', 'Customer'
        STORE_OWNER = 'store_owner', 'Store Owner'
        DELIVERY_PARTNER = 'delivery_partner', 'Delivery Partner'
        ADMIN = 'admin', 'Admin'

    username = None
    first_name = None
    last_name = None

    name = models.CharField(max_length=50)
    email = models.EmailField(unique=True)
    phone = models.CharField(
        max_length=10,
        unique=True,
        null=True,
        blank=True,
        validators=[phone_validator]
    )
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.CUSTOMER,
        help_text='User role for permission management'
    )
    address = models.JSONField(
        default=dict,
        blank=True,
        help_text='Postal address with optional coordinates {lat, lng}'
    )
    current_location = models.JSONField(
        null=True,
        blank=True,
        help_text='Last reported {lat, lng} of a delivery partner'
    )
    avatar = models.TextField(blank=True, null=True)
    preferences = models.JSONField(default=dict, blank=True)
    is_verified = models.BooleanField(default=False)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    class Meta:
        db_table = 'users'
        ordering = ['-date_joined']
        indexes = [
            models.Index(fields=['role'], name='users_role_0f7b1c_idx'),
            models.Index(fields=['is_active'], name='users_is_acti_3c2d5e_idx'),
        ]

    def __str__(self):
        return f"{self.name} <{self.email}> ({self.get_role_display()})"

    @property
    def is_customer(self):
        return self.role == self.Role.CUSTOMER

    @property
    def is_store_owner(self):
        return self.role == self.Role.STORE_OWNER

    @property
    def is_delivery_partner(self):
        return self.role == self.Role.DELIVERY_PARTNER

    @property
    def is_admin(self):
        return self.role == self.Role.ADMIN

    def deactivate(self):
        self.is_active = False
        self.save(update_fields=['is_active', 'updated_at'])


class PasswordResetToken(models.Model):
    """Single-use password reset token, valid for a limited time."""
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='reset_tokens')
    token = models.CharField(max_length=64, unique=True)
    expires_at = models.DateTimeField()
    used_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'password_reset_tokens'
        ordering = ['-created_at']

    def __str__(self):
        return f"Reset token for {self.user.email}"

    @classmethod
    def issue(cls, user, lifetime):
        return cls.objects.create(
            user=user,
            token=secrets.token_hex(32),
            expires_at=timezone.now() + lifetime,
        )

    @property
    def is_valid(self):
        return self.used_at is None and self.expires_at > timezone.now()

    def consume(self):
        self.used_at = timezone.now()
        self.save(update_fields=['used_at'])
