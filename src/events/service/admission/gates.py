"""Eligibility gates.

Each gate performs one check and returns the error that blocks the action, or ``None`` to
let the next gate run. The same gates guard the mutating operations (inside the per-event
critical section) and compute the eligibility flags exposed to clients, so there is exactly
one definition of "can register", "can cancel" and so on.
"""

from __future__ import annotations

import abc
import typing as t
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from events import exceptions
from events.models import AttendanceRecord, Event, Registration

from .enums import AdmissionAction, EventStatus
from .status import get_event_status, registration_deadline_passed

if t.TYPE_CHECKING:
    from .ledger import CapacityLedger


@dataclass
class AdmissionContext:
    """Everything the gates need, loaded once per operation."""

    event: Event
    now: datetime
    status: EventStatus
    ledger: CapacityLedger
    user_id: UUID | None = None
    registration: Registration | None = None
    attendance: AttendanceRecord | None = None

    @classmethod
    def load(cls, event: Event, ledger: CapacityLedger, now: datetime, user_id: UUID | None = None) -> AdmissionContext:
        """Load the user's active registration and attendance record for ``event``."""
        registration = None
        attendance = None
        if user_id is not None:
            registration = Registration.objects.filter(event=event, user_id=user_id).active().first()
            attendance = AttendanceRecord.objects.filter(event=event, user_id=user_id).first()
        return cls(
            event=event,
            now=now,
            status=get_event_status(event, now),
            ledger=ledger,
            user_id=user_id,
            registration=registration,
            attendance=attendance,
        )

    def fail(self, error_class: type[exceptions.AdmissionError]) -> exceptions.AdmissionError:
        """Build ``error_class`` for this context's event."""
        return error_class(event_id=self.event.pk)


class BaseAdmissionGate(abc.ABC):
    """Abstract Base Class for a composable admission check."""

    def __init__(self, context: AdmissionContext) -> None:
        """Initialize the gate."""
        self.context = context
        self.event = context.event

    @abc.abstractmethod
    def check(self) -> exceptions.AdmissionError | None:
        """Perform the check.

        Returns:
            The error blocking the action, or None to continue to the next gate.
        """


class EventActiveGate(BaseAdmissionGate):
    def check(self) -> exceptions.AdmissionError | None:
        """Soft-disabled events accept nothing."""
        if not self.event.is_active:
            return self.context.fail(exceptions.EventInactiveError)
        return None


class RegistrationRequiredGate(BaseAdmissionGate):
    def check(self) -> exceptions.AdmissionError | None:
        """Registration only exists for events that require it."""
        if not self.event.registration_required:
            return self.context.fail(exceptions.RegistrationNotRequiredError)
        return None


class RegistrationOpenGate(BaseAdmissionGate):
    def check(self) -> exceptions.AdmissionError | None:
        """Closed once the event is over, or while it runs past its registration deadline.

        The deadline does not apply before the event starts.
        """
        if self.context.status == EventStatus.PAST:
            return self.context.fail(exceptions.RegistrationClosedError)
        if self.context.status == EventStatus.ONGOING and registration_deadline_passed(self.event, self.context.now):
            return self.context.fail(exceptions.RegistrationClosedError)
        return None


class NotAlreadyRegisteredGate(BaseAdmissionGate):
    def check(self) -> exceptions.AdmissionError | None:
        """At most one active registration per user and event."""
        if self.context.registration is not None:
            return self.context.fail(exceptions.AlreadyRegisteredError)
        return None


class CancellableRegistrationGate(BaseAdmissionGate):
    def check(self) -> exceptions.AdmissionError | None:
        """Only confirmed and waitlisted registrations can be cancelled."""
        registration = self.context.registration
        if registration is None or registration.status not in (
            Registration.Status.CONFIRMED,
            Registration.Status.WAITLISTED,
        ):
            return self.context.fail(exceptions.NoActiveRegistrationError)
        return None


class CancellationWindowGate(BaseAdmissionGate):
    def check(self) -> exceptions.AdmissionError | None:
        """Cancelling is only possible before the event starts."""
        if self.context.status != EventStatus.UPCOMING:
            return self.context.fail(exceptions.CancellationWindowClosedError)
        return None


class EventOngoingGate(BaseAdmissionGate):
    def check(self) -> exceptions.AdmissionError | None:
        """Attendance is recorded while the event runs."""
        if self.context.status != EventStatus.ONGOING:
            return self.context.fail(exceptions.EventNotOngoingError)
        return None


class ConfirmedRegistrationGate(BaseAdmissionGate):
    def check(self) -> exceptions.AdmissionError | None:
        """For events that require registration, only confirmed registrants may attend."""
        if not self.event.registration_required:
            return None
        registration = self.context.registration
        if registration is None or registration.status != Registration.Status.CONFIRMED:
            return self.context.fail(exceptions.NotRegisteredError)
        return None


class NotAlreadyAttendedGate(BaseAdmissionGate):
    def check(self) -> exceptions.AdmissionError | None:
        """Attendance is recorded once."""
        attendance = self.context.attendance
        if attendance is not None and attendance.has_checked_in:
            return self.context.fail(exceptions.AlreadyAttendedError)
        return None


class WalkInCapacityGate(BaseAdmissionGate):
    def check(self) -> exceptions.AdmissionError | None:
        """Registration-free events admit at the door, against capacity."""
        if self.event.registration_required:
            return None
        if not self.context.ledger.has_room:
            return self.context.fail(exceptions.CapacityExceededError)
        return None


class CheckedInGate(BaseAdmissionGate):
    def check(self) -> exceptions.AdmissionError | None:
        """Only checked-in attendees can check out, once."""
        attendance = self.context.attendance
        if attendance is None or not attendance.has_checked_in:
            return self.context.fail(exceptions.NotCheckedInError)
        if attendance.status == AttendanceRecord.Status.CHECKED_OUT:
            return self.context.fail(exceptions.AlreadyCheckedOutError)
        return None


class EventNotEndedGate(BaseAdmissionGate):
    def check(self) -> exceptions.AdmissionError | None:
        """Past events do not get new check-in tokens."""
        if self.context.status == EventStatus.PAST:
            return self.context.fail(exceptions.EventEndedError)
        return None


ACTION_GATES: dict[AdmissionAction, list[type[BaseAdmissionGate]]] = {
    AdmissionAction.REGISTER: [
        EventActiveGate,
        RegistrationRequiredGate,
        RegistrationOpenGate,
        NotAlreadyRegisteredGate,
    ],
    AdmissionAction.CANCEL: [
        CancellableRegistrationGate,
        CancellationWindowGate,
    ],
    AdmissionAction.MARK_ATTENDANCE: [
        EventActiveGate,
        EventOngoingGate,
        ConfirmedRegistrationGate,
        NotAlreadyAttendedGate,
        WalkInCapacityGate,
    ],
    AdmissionAction.CHECK_OUT: [
        EventOngoingGate,
        CheckedInGate,
    ],
    AdmissionAction.ISSUE_TOKEN: [
        EventActiveGate,
        EventNotEndedGate,
    ],
}


def first_failure(action: AdmissionAction, context: AdmissionContext) -> exceptions.AdmissionError | None:
    """Run the gates of ``action`` in order and return the first blocking error."""
    for gate_class in ACTION_GATES[action]:
        if error := gate_class(context).check():
            return error
    return None


def run_gates(action: AdmissionAction, context: AdmissionContext) -> None:
    """Raise the first blocking error of ``action``, if any."""
    if error := first_failure(action, context):
        raise error
