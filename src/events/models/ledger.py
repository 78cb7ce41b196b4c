from uuid import UUID

from django.db import models
from django.db.models import Q

from common.utils import get_or_create_with_race_protection


class AdmissionLedgerManager(models.Manager["AdmissionLedger"]):
    def ensure(self, event_id: UUID) -> "AdmissionLedger":
        """Return the ledger row of an event, creating it if needed.

        Call this outside of a transaction: it may need to recover from a concurrent insert.
        """
        ledger, _created = get_or_create_with_race_protection(
            AdmissionLedger, Q(event_id=event_id), {"event_id": event_id}
        )
        return ledger

    def lock(self, event_id: UUID) -> "AdmissionLedger":
        """Row-lock the ledger of an event for the rest of the current transaction."""
        return self.select_for_update().get(event_id=event_id)


class AdmissionLedger(models.Model):
    """Per-event count of confirmed attendees, and the per-event lock target.

    Only the admission package mutates ``current_attendees``.
    """

    event = models.OneToOneField(
        "events.Event", on_delete=models.CASCADE, primary_key=True, related_name="admission_ledger"
    )
    current_attendees = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    objects = AdmissionLedgerManager()

    class Meta:
        db_table = "admission_ledgers"

    def __str__(self) -> str:
        return f"Ledger for {self.event_id}: {self.current_attendees}"
