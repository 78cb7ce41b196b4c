"""Admission error taxonomy.

Domain errors are deterministic given (state, input, now) and are never retryable without
changed input. Infrastructure failures are a separate hierarchy and safe to retry.
"""

import typing as t
from uuid import UUID

from django.utils.translation import gettext_lazy as _


class AdmissionError(Exception):
    """Base class for client-visible admission errors."""

    code: t.ClassVar[str] = "admission_error"
    status_code: t.ClassVar[int] = 400
    default_detail: t.ClassVar[str] = _("The action is not allowed.")

    def __init__(self, detail: str | None = None, *, event_id: UUID | None = None) -> None:
        """Initialize the error with an optional detail message and the event it refers to."""
        self.detail = detail or str(self.default_detail)
        self.event_id = event_id
        super().__init__(self.detail)


class EventNotFoundError(AdmissionError):
    code = "event_not_found"
    status_code = 404
    default_detail = _("Event not found.")


class EventInactiveError(AdmissionError):
    code = "event_inactive"
    default_detail = _("This event is not active.")


class EventNotOngoingError(AdmissionError):
    code = "event_not_ongoing"
    default_detail = _("Attendance can only be recorded while the event is ongoing.")


class EventEndedError(AdmissionError):
    code = "event_ended"
    default_detail = _("This event has ended.")


class RegistrationNotRequiredError(AdmissionError):
    code = "registration_not_required"
    default_detail = _("This event does not require registration. Mark your attendance during the event.")


class RegistrationClosedError(AdmissionError):
    code = "registration_closed"
    default_detail = _("Registration for this event is closed.")


class AlreadyRegisteredError(AdmissionError):
    code = "already_registered"
    status_code = 409
    default_detail = _("You are already registered for this event.")


class NoActiveRegistrationError(AdmissionError):
    code = "no_active_registration"
    status_code = 404
    default_detail = _("You have no active registration for this event.")


class CancellationWindowClosedError(AdmissionError):
    code = "cancellation_window_closed"
    default_detail = _("Registrations can only be cancelled before the event starts.")


class NotRegisteredError(AdmissionError):
    code = "not_registered"
    status_code = 403
    default_detail = _("You must have a confirmed registration to attend this event.")


class AlreadyAttendedError(AdmissionError):
    code = "already_attended"
    status_code = 409
    default_detail = _("Attendance has already been recorded for this event.")


class NotCheckedInError(AdmissionError):
    code = "not_checked_in"
    default_detail = _("The attendee has not checked in.")


class AlreadyCheckedOutError(AdmissionError):
    code = "already_checked_out"
    status_code = 409
    default_detail = _("The attendee has already checked out.")


class CapacityExceededError(AdmissionError):
    code = "capacity_exceeded"
    status_code = 409
    default_detail = _("Event is full.")


class TokenNotFoundError(AdmissionError):
    code = "token_not_found"
    status_code = 404
    default_detail = _("This check-in code does not exist.")


class TokenRevokedError(AdmissionError):
    code = "token_revoked"
    status_code = 410
    default_detail = _("This check-in code has been revoked.")


class TokenExpiredError(AdmissionError):
    code = "token_expired"
    status_code = 410
    default_detail = _("This check-in code has expired.")


class TransientFailure(Exception):
    """Storage or lock failure. Safe to retry with backoff."""

    code: t.ClassVar[str] = "transient_failure"

    def __init__(self, detail: str = "Temporarily unavailable, please retry.", *, event_id: UUID | None = None):
        """Initialize the failure."""
        self.detail = detail
        self.event_id = event_id
        super().__init__(detail)


class RequestTimedOutError(TransientFailure):
    """The caller's deadline passed before the critical section was entered."""

    code = "request_timed_out"


class InvalidTransitionError(ValueError):
    """Raised when a state machine is asked for a transition it does not allow.

    This is a programming error, never a client-visible condition.
    """

    def __init__(self, model: str, current: str, target: str) -> None:
        """Initialize the error."""
        super().__init__(f"{model}: transition {current!r} -> {target!r} is not allowed.")
        self.current = current
        self.target = target
