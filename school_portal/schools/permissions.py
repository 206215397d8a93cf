"""
Права для API поддоменов.
"""
from rest_framework.permissions import BasePermission


class IsSuperAdmin(BasePermission):
    """Управление поддоменами всех школ — только Super Admin."""

    message = 'Super Admin role is required.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        return bool(getattr(request.user, 'is_super_admin', False))
