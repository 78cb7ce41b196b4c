import secrets
from datetime import datetime

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from common.models import TimeStampedModel

CHECKIN_TOKEN_BYTES = 32


def generate_checkin_token() -> str:
    """Generate an opaque, unguessable, URL-safe token."""
    return secrets.token_urlsafe(CHECKIN_TOKEN_BYTES)


class CheckinToken(TimeStampedModel):
    """A short-lived, revocable credential that lets anyone holding it check in to one event.

    At most one token per event occupies the "current" slot. Issuing a new token moves the
    previous one out of the slot (revoking it if it was still usable).
    """

    id = models.CharField(  # type: ignore[assignment]
        primary_key=True, max_length=64, editable=False, default=generate_checkin_token
    )
    event = models.ForeignKey("events.Event", on_delete=models.CASCADE, related_name="checkin_tokens")
    issued_at = models.DateTimeField()
    expires_at = models.DateTimeField(db_index=True)
    revoked = models.BooleanField(default=False)
    revoked_at = models.DateTimeField(null=True, blank=True)
    is_current = models.BooleanField(default=True)
    issued_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="issued_checkin_tokens",
    )

    class Meta:
        db_table = "checkin_tokens"
        ordering = ["-issued_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["event"],
                condition=Q(is_current=True),
                name="unique_current_checkin_token_per_event",
            ),
            models.CheckConstraint(
                condition=Q(expires_at__gt=F("issued_at")), name="checkin_token_expires_after_issue"
            ),
        ]

    def is_expired(self, now: datetime) -> bool:
        """Expiry is exclusive: a token is expired from ``expires_at`` on."""
        return now >= self.expires_at

    def is_usable(self, now: datetime) -> bool:
        """Whether the token may be used for check-in at ``now``."""
        return not self.revoked and not self.is_expired(now)

    def __str__(self) -> str:
        return f"Check-in token for {self.event_id} (expires {self.expires_at.isoformat()})"
