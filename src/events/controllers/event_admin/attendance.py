from uuid import UUID

from ninja_extra import api_controller, route

from common.authentication import ContextJWTAuth
from common.throttling import WriteThrottle
from events import models, schema
from events.controllers.permissions import EventManagerPermission
from events.service.admission import AttendanceEntry, AttendanceSummary

from .base import EventAdminBaseController


@api_controller(
    "/event-admin/{event_id}",
    auth=ContextJWTAuth(),
    permissions=[EventManagerPermission],
    tags=["Event Admin"],
    throttle=WriteThrottle(),
)
class EventAdminAttendanceController(EventAdminBaseController):
    """Door management: staff check-in, check-out, attendance reports and the waitlist."""

    @route.post(
        "/attendance/{user_id}/check-in",
        url_name="staff_check_in",
        response={
            200: schema.AttendanceRecordSchema,
            400: schema.AdmissionErrorSchema,
            403: schema.AdmissionErrorSchema,
            409: schema.AdmissionErrorSchema,
            503: schema.AdmissionErrorSchema,
        },
    )
    def check_in(self, event_id: UUID, user_id: UUID, payload: schema.StaffCheckInSchema) -> models.AttendanceRecord:
        """Check an attendee in on their behalf.

        Applies the same rules as self check-in; the staff member is recorded on the attendance record.
        """
        attendee = self.get_attendee(user_id)
        return self.coordinator().mark_attendance(
            event_id, attendee.pk, checked_in_by_id=self.user().pk, notes=payload.notes
        )

    @route.post(
        "/attendance/{user_id}/check-out",
        url_name="staff_check_out",
        response={
            200: schema.AttendanceRecordSchema,
            400: schema.AdmissionErrorSchema,
            409: schema.AdmissionErrorSchema,
            503: schema.AdmissionErrorSchema,
        },
    )
    def check_out(self, event_id: UUID, user_id: UUID) -> models.AttendanceRecord:
        """Check an attendee out. Does not free a place."""
        attendee = self.get_attendee(user_id)
        return self.coordinator().check_out(event_id, attendee.pk)

    @route.get("/attendance", url_name="list_attendance", response=list[AttendanceEntry])
    def list_attendance(self, event_id: UUID) -> list[AttendanceEntry]:
        """List attendance records. Registrants who never showed up for a past event read as `no_show`."""
        return self.coordinator().list_attendance(event_id)

    @route.get("/attendance/summary", url_name="attendance_summary", response=AttendanceSummary)
    def attendance_summary(self, event_id: UUID) -> AttendanceSummary:
        """Attendance and registration counts for reports."""
        return self.coordinator().get_attendance_summary(event_id)

    @route.post(
        "/waitlist/promote",
        url_name="promote_waitlist",
        response={200: list[schema.RegistrationSchema], 503: schema.AdmissionErrorSchema},
    )
    def promote_waitlist(self, event_id: UUID) -> list[models.Registration]:
        """Promote waitlisted registrations into free places, oldest first.

        Use after raising the event's capacity.
        """
        return self.coordinator().promote_waitlisted(event_id)
