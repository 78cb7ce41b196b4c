"""Events schema package.

Request payloads and ORM-backed responses of the events app. Result types computed by the
admission engine (snapshots, eligibility, summaries) are pydantic models in
``events.service.admission.types`` and are returned as they are.
"""

from .admission import (
    AdmissionErrorSchema,
    AttendanceRecordSchema,
    CheckinTokenIssueSchema,
    CheckinWithTokenSchema,
    RegistrationSchema,
    StaffCheckInSchema,
)

__all__ = [
    "AdmissionErrorSchema",
    "AttendanceRecordSchema",
    "CheckinTokenIssueSchema",
    "CheckinWithTokenSchema",
    "RegistrationSchema",
    "StaffCheckInSchema",
]
