from uuid import UUID

from ninja_extra import api_controller, route

from common.authentication import ContextJWTAuth
from common.controllers import UserAwareController
from common.throttling import CheckinScanThrottle, WriteThrottle
from events import models, schema
from events.service.admission import AdmissionCoordinator, AdmissionEligibility, EventSnapshot, UserRegistration


@api_controller("/events", auth=ContextJWTAuth(), tags=["Events"])
class EventController(UserAwareController):
    """Attendee-facing admission endpoints.

    Every decision is taken by the admission coordinator; this controller only maps HTTP to it.
    """

    def coordinator(self) -> AdmissionCoordinator:
        """The coordinator used for this request."""
        return AdmissionCoordinator()

    @route.get("/my-registrations", url_name="my_registrations", response=list[UserRegistration])
    def list_my_registrations(self) -> list[UserRegistration]:
        """Your registrations, cancelled ones included, ordered by event start.

        Each entry carries the event's current status and, for confirmed registrations, your
        attendance status.
        """
        return self.coordinator().list_user_registrations(self.user().pk)

    @route.post(
        "/{event_id}/register",
        url_name="register",
        response={
            200: schema.RegistrationSchema,
            400: schema.AdmissionErrorSchema,
            404: schema.AdmissionErrorSchema,
            409: schema.AdmissionErrorSchema,
            503: schema.AdmissionErrorSchema,
        },
        throttle=WriteThrottle(),
    )
    def register(self, event_id: UUID) -> models.Registration:
        """Register for an event that requires registration.

        Returns the registration with status `confirmed` if a place was available, or
        `waitlisted` if the event is full. Waitlisted registrations are promoted in
        registration order when a confirmed attendee cancels.
        """
        return self.coordinator().register(event_id, self.user().pk)

    @route.delete(
        "/{event_id}/register",
        url_name="cancel_registration",
        response={
            204: None,
            400: schema.AdmissionErrorSchema,
            404: schema.AdmissionErrorSchema,
            503: schema.AdmissionErrorSchema,
        },
        throttle=WriteThrottle(),
    )
    def cancel_registration(self, event_id: UUID) -> tuple[int, None]:
        """Cancel your registration. Only possible before the event starts."""
        self.coordinator().cancel_registration(event_id, self.user().pk)
        return 204, None

    @route.post(
        "/{event_id}/attendance",
        url_name="mark_attendance",
        response={
            200: schema.AttendanceRecordSchema,
            400: schema.AdmissionErrorSchema,
            403: schema.AdmissionErrorSchema,
            404: schema.AdmissionErrorSchema,
            409: schema.AdmissionErrorSchema,
            503: schema.AdmissionErrorSchema,
        },
        throttle=WriteThrottle(),
    )
    def mark_attendance(self, event_id: UUID) -> models.AttendanceRecord:
        """Mark yourself as attending while the event is ongoing."""
        return self.coordinator().mark_attendance(event_id, self.user().pk)

    @route.get(
        "/{event_id}/eligibility",
        url_name="eligibility",
        response={200: AdmissionEligibility, 404: schema.AdmissionErrorSchema},
    )
    def get_eligibility(self, event_id: UUID) -> AdmissionEligibility:
        """What you can do for this event right now.

        Clients must use these flags instead of computing them. `blocked_by` carries the error
        code that each disallowed action would fail with.
        """
        return self.coordinator().get_eligibility(event_id, self.user().pk)

    @route.get(
        "/{event_id}/validate-checkin-token",
        url_name="validate_checkin_token",
        response={
            200: EventSnapshot,
            400: schema.AdmissionErrorSchema,
            404: schema.AdmissionErrorSchema,
            410: schema.AdmissionErrorSchema,
        },
        auth=None,
        throttle=CheckinScanThrottle(),
    )
    def validate_checkin_token(self, event_id: UUID, token: str) -> EventSnapshot:
        """Validate a scanned check-in code and preview the event.

        Does not require authentication, so the scanning page can render before sign-in.
        Revoked and expired codes answer 410 with distinct error codes.
        """
        return self.coordinator().validate_checkin_token(event_id, token)

    @route.post(
        "/{event_id}/checkin-with-token",
        url_name="checkin_with_token",
        response={
            200: schema.AttendanceRecordSchema,
            400: schema.AdmissionErrorSchema,
            403: schema.AdmissionErrorSchema,
            404: schema.AdmissionErrorSchema,
            409: schema.AdmissionErrorSchema,
            410: schema.AdmissionErrorSchema,
            503: schema.AdmissionErrorSchema,
        },
        throttle=WriteThrottle(),
    )
    def checkin_with_token(self, event_id: UUID, payload: schema.CheckinWithTokenSchema) -> models.AttendanceRecord:
        """Check in with a scanned check-in code."""
        return self.coordinator().checkin_with_token(event_id, payload.token, self.user().pk)
