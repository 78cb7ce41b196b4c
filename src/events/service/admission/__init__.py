from .coordinator import AdmissionCoordinator
from .enums import AdmissionAction, AdmissionDecision, EventStatus
from .ledger import CapacityLedger
from .status import effective_attendance_status, get_event_status, registration_deadline_passed
from .types import (
    AdmissionEligibility,
    AttendanceEntry,
    AttendanceSummary,
    CancellationOutcome,
    CheckinTokenStatus,
    EventSnapshot,
    IssuedCheckinToken,
    LedgerReconciliation,
    UserRegistration,
)

__all__ = [
    "AdmissionAction",
    "AdmissionCoordinator",
    "AdmissionDecision",
    "AdmissionEligibility",
    "AttendanceEntry",
    "AttendanceSummary",
    "CancellationOutcome",
    "CapacityLedger",
    "CheckinTokenStatus",
    "EventSnapshot",
    "EventStatus",
    "IssuedCheckinToken",
    "LedgerReconciliation",
    "UserRegistration",
    "effective_attendance_status",
    "get_event_status",
    "registration_deadline_passed",
]
