"""Result types for the admission engine."""

import datetime
import uuid
from dataclasses import dataclass

from pydantic import BaseModel

from events.models import AttendanceRecord, Registration

from .enums import AdmissionAction, EventStatus


class EventSnapshot(BaseModel):
    """Read-only view of an event returned by a successful token validation."""

    event_id: uuid.UUID
    event_title: str
    location: str
    start_at: datetime.datetime
    end_at: datetime.datetime
    registration_required: bool
    registration_deadline: datetime.datetime | None = None
    max_attendees: int | None = None
    current_attendees: int
    is_valid: bool = True
    expires_at: datetime.datetime


class IssuedCheckinToken(BaseModel):
    """A freshly issued check-in token, with its deep link and scannable image."""

    token: str
    event_id: uuid.UUID
    issued_at: datetime.datetime
    expires_at: datetime.datetime
    checkin_url: str
    qr_code: str


class CheckinTokenStatus(BaseModel):
    """Metadata of the currently usable check-in token of an event."""

    token: str
    event_id: uuid.UUID
    issued_at: datetime.datetime
    expires_at: datetime.datetime
    checkin_url: str


class AdmissionEligibility(BaseModel):
    """What a user may do for an event right now.

    ``blocked_by`` maps each disallowed action to the error code that blocks it.
    """

    event_id: uuid.UUID
    event_status: EventStatus
    can_register: bool
    can_cancel: bool
    can_mark_attendance: bool
    can_check_out: bool
    is_full: bool
    registration_status: Registration.Status | None = None
    attendance_status: AttendanceRecord.Status | None = None
    blocked_by: dict[AdmissionAction, str] = {}


class AttendanceEntry(BaseModel):
    """An attendance record as read at a given instant."""

    id: uuid.UUID
    user_id: uuid.UUID
    registration_id: uuid.UUID | None = None
    status: AttendanceRecord.Status
    check_in_at: datetime.datetime | None = None
    check_out_at: datetime.datetime | None = None
    notes: str = ""


class UserRegistration(BaseModel):
    """One of a user's registrations, with the event it is for."""

    id: uuid.UUID
    event_id: uuid.UUID
    event_title: str
    location: str
    start_at: datetime.datetime
    end_at: datetime.datetime
    event_status: EventStatus
    status: Registration.Status
    registered_at: datetime.datetime
    cancelled_at: datetime.datetime | None = None
    promoted_at: datetime.datetime | None = None
    attendance_status: AttendanceRecord.Status | None = None


class AttendanceSummary(BaseModel):
    """Counts used by report collaborators."""

    event_id: uuid.UUID
    event_status: EventStatus
    max_attendees: int | None = None
    current_attendees: int
    confirmed: int
    waitlisted: int
    registered: int
    checked_in: int
    checked_out: int
    no_show: int


@dataclass(frozen=True)
class CancellationOutcome:
    cancelled: Registration
    promoted: Registration | None = None


@dataclass(frozen=True)
class LedgerReconciliation:
    event_id: uuid.UUID
    recorded: int
    actual: int

    @property
    def drifted(self) -> bool:
        """Whether the stored count disagreed with the rows."""
        return self.recorded != self.actual

