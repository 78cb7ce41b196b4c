"""Check-in token service.

A check-in token is a short-lived capability scoped to one event: whoever holds it may check
in while it is neither revoked nor expired. Each event has at most one token in its current
slot.
"""

from datetime import datetime, timedelta
from urllib.parse import urlencode
from uuid import UUID

import structlog
from django.conf import settings

from events import exceptions
from events.models import CheckinToken, Event

from .enums import AdmissionAction, EventStatus
from .gates import AdmissionContext, run_gates
from .ledger import CapacityLedger
from .status import get_event_status
from .types import CheckinTokenStatus, EventSnapshot

logger = structlog.get_logger(__name__)


def clamp_expiry_hours(requested: int | None) -> int:
    """Clamp a requested token lifetime to the configured bounds. ``None`` means the default."""
    if requested is None:
        requested = settings.CHECKIN_TOKEN_DEFAULT_HOURS
    return max(settings.CHECKIN_TOKEN_MIN_HOURS, min(settings.CHECKIN_TOKEN_MAX_HOURS, requested))


def build_checkin_url(event_id: UUID, token: str) -> str:
    """Deep link that the scanning device opens."""
    base_url = settings.FRONTEND_BASE_URL.rstrip("/")
    return f"{base_url}/events/{event_id}/checkin?{urlencode({'token': token})}"


class CheckinTokenService:
    """Issue, inspect, revoke and validate the check-in tokens of one event."""

    def __init__(self, event: Event, now: datetime) -> None:
        self.event = event
        self.now = now

    def issue(
        self, ledger: CapacityLedger, expiry_hours: int | None = None, issued_by_id: UUID | None = None
    ) -> CheckinToken:
        """Issue a new token and put it in the current slot.

        Must run inside the per-event critical section. The previous token leaves the slot
        and is revoked if it was still usable; an already expired token is left as is.

        Raises:
            EventInactiveError, EventEndedError
        """
        run_gates(AdmissionAction.ISSUE_TOKEN, AdmissionContext.load(self.event, ledger, self.now))
        hours = clamp_expiry_hours(expiry_hours)

        previous = CheckinToken.objects.filter(event=self.event, is_current=True).first()
        if previous is not None:
            retired: dict[str, object] = {"is_current": False}
            if previous.is_usable(self.now):
                retired.update(revoked=True, revoked_at=self.now)
            CheckinToken.objects.filter(pk=previous.pk).update(**retired)

        token = CheckinToken.objects.create(
            event=self.event,
            issued_at=self.now,
            expires_at=self.now + timedelta(hours=hours),
            issued_by_id=issued_by_id,
        )
        logger.info(
            "checkin_token_issued",
            event_id=str(self.event.pk),
            expires_at=token.expires_at.isoformat(),
            hours=hours,
            replaced_previous=previous is not None,
        )
        return token

    def current(self) -> CheckinToken | None:
        """The token in the current slot, if it is still usable."""
        token = CheckinToken.objects.filter(event=self.event, is_current=True).first()
        if token is None or not token.is_usable(self.now):
            return None
        return token

    def status(self) -> CheckinTokenStatus | None:
        """Metadata of the current usable token, or ``None``."""
        token = self.current()
        if token is None:
            return None
        return CheckinTokenStatus(
            token=token.pk,
            event_id=self.event.pk,
            issued_at=token.issued_at,
            expires_at=token.expires_at,
            checkin_url=build_checkin_url(self.event.pk, token.pk),
        )

    def revoke(self) -> CheckinToken | None:
        """Revoke the current usable token. Revoking when there is none is a no-op."""
        token = self.current()
        if token is None:
            return None
        token.revoked = True
        token.revoked_at = self.now
        token.save(update_fields=["revoked", "revoked_at", "updated_at"])
        logger.info("checkin_token_revoked", event_id=str(self.event.pk))
        return token

    def validate(self, token: str) -> CheckinToken:
        """Check that ``token`` may be used to check in to this event right now.

        Token errors are reported before event errors, in a fixed order.

        Raises:
            TokenNotFoundError, TokenRevokedError, TokenExpiredError, EventInactiveError,
            EventEndedError
        """
        record = CheckinToken.objects.filter(pk=token, event=self.event).first() if token else None
        if record is None:
            raise exceptions.TokenNotFoundError(event_id=self.event.pk)
        if record.revoked:
            raise exceptions.TokenRevokedError(event_id=self.event.pk)
        if record.is_expired(self.now):
            raise exceptions.TokenExpiredError(event_id=self.event.pk)
        if not self.event.is_active:
            raise exceptions.EventInactiveError(event_id=self.event.pk)
        if get_event_status(self.event, self.now) == EventStatus.PAST:
            raise exceptions.EventEndedError(event_id=self.event.pk)
        return record

    def snapshot(self, token: CheckinToken, current_attendees: int) -> EventSnapshot:
        """The read-only event view returned by a successful validation."""
        return EventSnapshot(
            event_id=self.event.pk,
            event_title=self.event.title,
            location=self.event.location,
            start_at=self.event.start_at,
            end_at=self.event.end_at,
            registration_required=self.event.registration_required,
            registration_deadline=self.event.registration_deadline,
            max_attendees=self.event.max_attendees,
            current_attendees=current_attendees,
            is_valid=True,
            expires_at=token.expires_at,
        )
