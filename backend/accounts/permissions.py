from rest_framework import permissions

from .models import UserRole


class IsAdminRole(permissions.BasePermission):
    """
    Allow access only to active users holding the ADMIN role.
    """
    message = "Admin role required."

    def has_permission(self, request, view):
        user = request.user
        return bool(
            user
            and user.is_authenticated
            and user.is_active
            and user.role == UserRole.ADMIN
        )


class IsAdminRoleOrReadOnly(IsAdminRole):
    """
    Authenticated users may read; only admins may write.
    """

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return super().has_permission(request, view)
