"""Capacity ledger: the single owner of an event's attendee counter.

The counter lives on ``AdmissionLedger`` and is only ever mutated through ``try_admit`` and
``release`` while the row is locked by the caller's transaction.
"""

import typing as t
from uuid import UUID

import structlog
from django.db import transaction
from django.db.models import F

from events.models import AdmissionLedger, AttendanceRecord, Event, Registration

from .enums import AdmissionDecision
from .types import LedgerReconciliation

logger = structlog.get_logger(__name__)


class CapacityLedger:
    """An event's ledger row together with the event whose capacity it guards."""

    def __init__(self, row: AdmissionLedger, event: Event) -> None:
        self.row = row
        self.event = event

    @classmethod
    def lock(cls, event: Event) -> t.Self:
        """Row-lock the ledger of ``event``. Must be called inside ``transaction.atomic``."""
        return cls(AdmissionLedger.objects.lock(event.pk), event)

    @classmethod
    def peek(cls, event: Event) -> t.Self:
        """Read the ledger without locking or writing it, for read-only views.

        An event whose row was never created reads as empty.
        """
        row = AdmissionLedger.objects.filter(pk=event.pk).first()
        return cls(row or AdmissionLedger(event=event), event)

    @property
    def event_id(self) -> UUID:
        return self.event.pk

    @property
    def current_attendees(self) -> int:
        return self.row.current_attendees

    @property
    def has_room(self) -> bool:
        """Whether one more attendee can be admitted."""
        if self.event.max_attendees is None:
            return True
        return self.row.current_attendees < self.event.max_attendees

    def try_admit(self) -> AdmissionDecision:
        """Compare-and-increment.

        Grants iff the event is unlimited or below capacity, in which case the counter is
        incremented before returning.
        """
        if not self.has_room:
            logger.info(
                "admission_denied",
                event_id=str(self.event_id),
                current_attendees=self.current_attendees,
                max_attendees=self.event.max_attendees,
            )
            return AdmissionDecision.DENIED
        AdmissionLedger.objects.filter(pk=self.event_id).update(current_attendees=F("current_attendees") + 1)
        self.refresh()
        return AdmissionDecision.GRANTED

    def release(self) -> None:
        """Give one slot back. The counter never goes below zero."""
        updated = AdmissionLedger.objects.filter(pk=self.event_id, current_attendees__gt=0).update(
            current_attendees=F("current_attendees") - 1
        )
        if not updated:
            logger.warning("admission_release_on_empty_ledger", event_id=str(self.event_id))
        self.refresh()

    def refresh(self) -> None:
        """Reload the counter from the database."""
        self.row.refresh_from_db(fields=["current_attendees"])


def count_admitted(event: Event) -> int:
    """Recount admitted attendees from the rows.

    Confirmed registrations, plus attendance of registration-free events (records that are
    not tied to a registration).
    """
    confirmed = Registration.objects.filter(event=event).confirmed().count()
    walk_ins = AttendanceRecord.objects.filter(event=event, registration__isnull=True).attended().count()
    return confirmed + walk_ins


def reconcile(event: Event) -> LedgerReconciliation:
    """Rewrite the ledger of ``event`` from the rows and report any drift."""
    AdmissionLedger.objects.ensure(event.pk)
    with transaction.atomic():
        ledger = CapacityLedger.lock(event)
        recorded = ledger.current_attendees
        actual = count_admitted(event)
        result = LedgerReconciliation(event_id=event.pk, recorded=recorded, actual=actual)
        if result.drifted:
            AdmissionLedger.objects.filter(pk=event.pk).update(current_attendees=actual)
            logger.warning("admission_ledger_drift_corrected", event_id=str(event.pk), recorded=recorded, actual=actual)
    return result
