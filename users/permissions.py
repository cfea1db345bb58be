from rest_framework import permissions
from users.models import User


class IsCustomer(permissions.BasePermission):
    """Only customers have access"""

    def has_permission(self, request, view):
        return request.user and request.user.is_authenticated and request.user.is_customer


class IsStoreOwner(permissions.BasePermission):
    """Only store owners have access"""

    def has_permission(self, request, view):
        return request.user and request.user.is_authenticated and request.user.is_store_owner


class IsDeliveryPartner(permissions.BasePermission):
    """Only delivery partners have access"""

    def has_permission(self, request, view):
        return request.user and request.user.is_authenticated and request.user.is_delivery_partner


class IsAdmin(permissions.BasePermission):
    """Only Admin users have access"""

    def has_permission(self, request, view):
        return request.user and request.user.is_authenticated and request.user.is_admin


class IsStoreOwnerOrAdmin(permissions.BasePermission):
    """Store owners and Admin have access"""

    def has_permission(self, request, view):
        return (
            request.user and
            request.user.is_authenticated and
            request.user.role in [User.Role.ADMIN, User.Role.STORE_OWNER]
        )


class IsCustomerOrAdmin(permissions.BasePermission):
    """Customers and Admin have access"""

    def has_permission(self, request, view):
        return (
            request.user and
            request.user.is_authenticated and
            request.user.role in [User.Role.ADMIN, User.Role.CUSTOMER]
        )


class IsOwnerOfStoreOrAdmin(permissions.BasePermission):
    """
    Object-level check for stores and store-owned objects.
    Objects expose either ``owner_id`` (stores) or ``store.owner_id``.
    """

    def has_object_permission(self, request, view, obj):
        if request.user.is_admin:
            return True
        owner_id = getattr(obj, 'owner_id', None)
        if owner_id is None and hasattr(obj, 'store'):
            owner_id = obj.store.owner_id
        return owner_id == request.user.id
