from django.http import HttpRequest
from ninja_extra import ControllerBase
from ninja_extra.permissions import BasePermission


class EventManagerPermission(BasePermission):
    """Admins, sub-admins and staff may manage check-in tokens and attendance of any event."""

    def has_permission(self, request: HttpRequest, controller: ControllerBase) -> bool:
        """Check the role of the authenticated user."""
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "is_event_manager", False))
