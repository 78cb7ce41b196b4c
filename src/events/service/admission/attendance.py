"""Attendance state machine.

Runs inside the per-event critical section, like the registration state machine.
"""

from datetime import datetime
from uuid import UUID

import structlog

from events.exceptions import CapacityExceededError
from events.models import AttendanceRecord, Event

from .enums import AdmissionAction, AdmissionDecision
from .gates import AdmissionContext, run_gates
from .ledger import CapacityLedger

logger = structlog.get_logger(__name__)


class AttendanceStateMachine:
    """Moves attendance records through registered, checked_in and checked_out."""

    def __init__(self, event: Event, ledger: CapacityLedger, now: datetime) -> None:
        self.event = event
        self.ledger = ledger
        self.now = now

    def mark_attendance(
        self, user_id: UUID, checked_in_by_id: UUID | None = None, notes: str = ""
    ) -> AttendanceRecord:
        """Check ``user_id`` in.

        Events that require registration admit confirmed registrants only; their slot was
        counted at registration time. Registration-free events count the slot now.

        Raises:
            EventInactiveError, EventNotOngoingError, NotRegisteredError,
            AlreadyAttendedError, CapacityExceededError
        """
        context = AdmissionContext.load(self.event, self.ledger, self.now, user_id)
        run_gates(AdmissionAction.MARK_ATTENDANCE, context)

        record = context.attendance
        if self.event.registration_required:
            if record is None:
                record = AttendanceRecord(event=self.event, user_id=user_id, registration=context.registration)
        else:
            if self.ledger.try_admit() == AdmissionDecision.DENIED:
                raise CapacityExceededError(event_id=self.event.pk)
            if record is None:
                record = AttendanceRecord(event=self.event, user_id=user_id)

        record.transition_to(AttendanceRecord.Status.CHECKED_IN)
        record.check_in_at = self.now
        record.checked_in_by_id = checked_in_by_id
        if notes:
            record.notes = notes
        record.save()

        logger.info(
            "attendance_checked_in",
            event_id=str(self.event.pk),
            attendance_id=str(record.pk),
            recorded_by_staff=checked_in_by_id is not None,
            current_attendees=self.ledger.current_attendees,
        )
        return record

    def check_out(self, user_id: UUID) -> AttendanceRecord:
        """Check ``user_id`` out. Capacity is not given back.

        Raises:
            EventNotOngoingError, NotCheckedInError, AlreadyCheckedOutError
        """
        context = AdmissionContext.load(self.event, self.ledger, self.now, user_id)
        run_gates(AdmissionAction.CHECK_OUT, context)
        record = context.attendance
        assert record is not None

        record.transition_to(AttendanceRecord.Status.CHECKED_OUT)
        record.check_out_at = self.now
        record.save(update_fields=["status", "check_out_at", "updated_at"])

        logger.info("attendance_checked_out", event_id=str(self.event.pk), attendance_id=str(record.pk))
        return record
