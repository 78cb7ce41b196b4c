"""Time-derived classifications.

These are pure functions of (entity, now): nothing here reads the clock or the database.
"""

from datetime import datetime

from events.models import AttendanceRecord, Event

from .enums import EventStatus


def get_event_status(event: Event, now: datetime) -> EventStatus:
    """Classify ``event`` at ``now``. Both window bounds count as ongoing."""
    if now < event.start_at:
        return EventStatus.UPCOMING
    if now <= event.end_at:
        return EventStatus.ONGOING
    return EventStatus.PAST


def registration_deadline_passed(event: Event, now: datetime) -> bool:
    """Whether the event has a registration deadline and ``now`` is after it."""
    return event.registration_deadline is not None and now > event.registration_deadline


def effective_attendance_status(record: AttendanceRecord, event: Event, now: datetime) -> AttendanceRecord.Status:
    """Read-time status of an attendance record.

    A record still ``registered`` once the event is over reads as ``no_show``.
    """
    status = AttendanceRecord.Status(record.status)
    if status == AttendanceRecord.Status.REGISTERED and get_event_status(event, now) == EventStatus.PAST:
        return AttendanceRecord.Status.NO_SHOW
    return status
