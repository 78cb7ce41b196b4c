from .attendance import AttendanceRecord
from .checkin_token import CheckinToken, generate_checkin_token
from .event import Event
from .ledger import AdmissionLedger
from .registration import Registration

__all__ = [
    "AdmissionLedger",
    "AttendanceRecord",
    "CheckinToken",
    "Event",
    "Registration",
    "generate_checkin_token",
]
