"""Enums for the admission engine."""

from enum import StrEnum


class EventStatus(StrEnum):
    """Status of an event relative to an instant. Derived, never stored."""

    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    PAST = "past"


class AdmissionDecision(StrEnum):
    """Outcome of a compare-and-increment on the capacity ledger."""

    GRANTED = "granted"
    DENIED = "denied"


class AdmissionAction(StrEnum):
    """Actions guarded by eligibility gates."""

    REGISTER = "register"
    CANCEL = "cancel"
    MARK_ATTENDANCE = "mark_attendance"
    CHECK_OUT = "check_out"
    ISSUE_TOKEN = "issue_token"
