from django.conf import settings
from rest_framework.permissions import BasePermission, IsAuthenticated


class FrontendOnlyPermission(BasePermission):
    """Only requests carrying the shared ``X-Frontend-Key`` get through."""

    message = "Missing or invalid frontend key."

    def has_permission(self, request, view):
        expected = getattr(settings, "FRONTEND_KEY", "")
        return bool(expected) and request.headers.get("X-Frontend-Key") == expected


STOREFRONT_PERMISSIONS = [FrontendOnlyPermission]
ADMIN_PERMISSIONS = [FrontendOnlyPermission, IsAuthenticated]
