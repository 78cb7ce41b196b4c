"""Registration, attendance and check-in schemas."""

from uuid import UUID

from ninja import ModelSchema, Schema
from pydantic import AwareDatetime, Field

from events.models import AttendanceRecord, Registration


class RegistrationSchema(ModelSchema):
    event_id: UUID
    user_id: UUID
    status: Registration.Status
    registered_at: AwareDatetime
    cancelled_at: AwareDatetime | None = None
    promoted_at: AwareDatetime | None = None

    class Meta:
        model = Registration
        fields = ["id", "status", "registered_at", "cancelled_at", "promoted_at"]


class AttendanceRecordSchema(ModelSchema):
    event_id: UUID
    user_id: UUID
    registration_id: UUID | None = None
    status: AttendanceRecord.Status
    check_in_at: AwareDatetime | None = None
    check_out_at: AwareDatetime | None = None

    class Meta:
        model = AttendanceRecord
        fields = ["id", "status", "check_in_at", "check_out_at", "notes"]


class CheckinTokenIssueSchema(Schema):
    """Requested token lifetime. Out-of-range values are clamped, not rejected."""

    expiry_hours: int | None = None


class CheckinWithTokenSchema(Schema):
    token: str = Field(..., min_length=1, max_length=64)


class StaffCheckInSchema(Schema):
    notes: str = Field(default="", max_length=1000)


class AdmissionErrorSchema(Schema):
    code: str
    detail: str
    event_id: UUID | None = None
