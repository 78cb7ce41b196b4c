"""Event admin controllers package."""

from .attendance import EventAdminAttendanceController
from .checkin_tokens import EventAdminCheckinTokenController

EVENT_ADMIN_CONTROLLERS: list[type] = [
    EventAdminCheckinTokenController,
    EventAdminAttendanceController,
]

__all__ = [
    "EventAdminAttendanceController",
    "EventAdminCheckinTokenController",
    "EVENT_ADMIN_CONTROLLERS",
]
