import typing as t
from uuid import UUID

from django.shortcuts import get_object_or_404

from accounts.models import User
from common.controllers import UserAwareController
from events.service.admission import AdmissionCoordinator


class EventAdminBaseController(UserAwareController):
    """Base controller for event admin endpoints.

    Subclasses should be decorated with @api_controller to register routes.
    """

    def coordinator(self) -> AdmissionCoordinator:
        """The coordinator used for this request."""
        return AdmissionCoordinator()

    def get_attendee(self, user_id: UUID) -> User:
        """Resolve the attendee a staff action refers to."""
        return t.cast(User, get_object_or_404(User, pk=user_id))
