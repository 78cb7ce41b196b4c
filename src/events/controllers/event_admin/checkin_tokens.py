from uuid import UUID

from ninja_extra import api_controller, route

from common.authentication import ContextJWTAuth
from common.schema import ResponseMessage
from common.throttling import WriteThrottle
from events import schema
from events.controllers.permissions import EventManagerPermission
from events.service.admission import CheckinTokenStatus, IssuedCheckinToken

from .base import EventAdminBaseController


@api_controller(
    "/event-admin/{event_id}",
    auth=ContextJWTAuth(),
    permissions=[EventManagerPermission],
    tags=["Event Admin"],
    throttle=WriteThrottle(),
)
class EventAdminCheckinTokenController(EventAdminBaseController):
    """Check-in code management."""

    @route.post(
        "/checkin-token",
        url_name="issue_checkin_token",
        response={
            200: IssuedCheckinToken,
            400: schema.AdmissionErrorSchema,
            404: schema.AdmissionErrorSchema,
            503: schema.AdmissionErrorSchema,
        },
    )
    def issue_checkin_token(self, event_id: UUID, payload: schema.CheckinTokenIssueSchema) -> IssuedCheckinToken:
        """Issue a new check-in code for the event.

        The previous code, if still valid, is revoked. `expiry_hours` defaults to 24 and is
        clamped to 1..168. The response contains the deep link to display and a PNG QR code
        (as a data URI) that attendees scan.
        """
        return self.coordinator().issue_checkin_token(
            event_id, payload.expiry_hours, issued_by_id=self.user().pk
        )

    @route.get(
        "/checkin-token",
        url_name="get_checkin_token_status",
        response={200: CheckinTokenStatus, 404: ResponseMessage},
    )
    def get_checkin_token_status(self, event_id: UUID) -> tuple[int, CheckinTokenStatus | ResponseMessage]:
        """Get the event's current check-in code, if one is valid."""
        status = self.coordinator().get_checkin_token_status(event_id)
        if status is None:
            return 404, ResponseMessage(message="There is no valid check-in code for this event.")
        return 200, status

    @route.delete(
        "/checkin-token", url_name="revoke_checkin_token", response={204: None, 503: schema.AdmissionErrorSchema}
    )
    def revoke_checkin_token(self, event_id: UUID) -> tuple[int, None]:
        """Revoke the event's current check-in code. Revoking twice is harmless."""
        self.coordinator().revoke_checkin_token(event_id)
        return 204, None
