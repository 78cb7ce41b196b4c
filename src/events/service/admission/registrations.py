"""Registration state machine.

All methods expect to run inside the per-event critical section opened by the coordinator:
the ledger passed in is locked for the duration of the enclosing transaction.
"""

from datetime import datetime
from functools import partial
from uuid import UUID

import structlog
from django.db import transaction

from events.models import AttendanceRecord, Event, Registration
from events.tasks import notify_registration_promoted

from .enums import AdmissionAction, AdmissionDecision, EventStatus
from .gates import AdmissionContext, run_gates
from .ledger import CapacityLedger
from .status import get_event_status
from .types import CancellationOutcome

logger = structlog.get_logger(__name__)


class RegistrationStateMachine:
    """Moves registrations through pending, confirmed, waitlisted and cancelled."""

    def __init__(self, event: Event, ledger: CapacityLedger, now: datetime) -> None:
        self.event = event
        self.ledger = ledger
        self.now = now

    def register(self, user_id: UUID) -> Registration:
        """Register ``user_id`` for the event.

        The registration is confirmed if the ledger admits it, waitlisted otherwise.

        Raises:
            EventInactiveError, RegistrationNotRequiredError, RegistrationClosedError,
            AlreadyRegisteredError
        """
        context = AdmissionContext.load(self.event, self.ledger, self.now, user_id)
        run_gates(AdmissionAction.REGISTER, context)

        registration = Registration(event=self.event, user_id=user_id, registered_at=self.now)
        if self.ledger.try_admit() == AdmissionDecision.GRANTED:
            registration.transition_to(Registration.Status.CONFIRMED)
        else:
            registration.transition_to(Registration.Status.WAITLISTED)
        registration.save()

        if registration.status == Registration.Status.CONFIRMED:
            self._attach_attendance_record(registration)

        logger.info(
            "registration_created",
            event_id=str(self.event.pk),
            registration_id=str(registration.pk),
            status=registration.status,
            current_attendees=self.ledger.current_attendees,
        )
        return registration

    def cancel(self, user_id: UUID) -> CancellationOutcome:
        """Cancel the active registration of ``user_id``.

        A confirmed registration gives its slot back and the earliest waitlisted registration
        is promoted. Promotion is best-effort: its failure never fails the cancellation.

        Raises:
            NoActiveRegistrationError, CancellationWindowClosedError
        """
        context = AdmissionContext.load(self.event, self.ledger, self.now, user_id)
        run_gates(AdmissionAction.CANCEL, context)
        registration = context.registration
        assert registration is not None

        was_confirmed = registration.status == Registration.Status.CONFIRMED
        registration.transition_to(Registration.Status.CANCELLED)
        registration.cancelled_at = self.now
        registration.save(update_fields=["status", "cancelled_at", "updated_at"])

        promoted: Registration | None = None
        if was_confirmed:
            self.ledger.release()
            AttendanceRecord.objects.filter(event=self.event, user_id=user_id, registration=registration).delete()
            promoted_list = self._promote_after_release()
            promoted = promoted_list[0] if promoted_list else None

        logger.info(
            "registration_cancelled",
            event_id=str(self.event.pk),
            registration_id=str(registration.pk),
            was_confirmed=was_confirmed,
            promoted_registration_id=str(promoted.pk) if promoted else None,
            current_attendees=self.ledger.current_attendees,
        )
        return CancellationOutcome(cancelled=registration, promoted=promoted)

    def promote_waitlisted(self, limit: int | None = None) -> list[Registration]:
        """Confirm waitlisted registrations, oldest first, while the ledger admits them.

        Nothing is promoted once the event is over.
        """
        if get_event_status(self.event, self.now) == EventStatus.PAST:
            return []

        promoted: list[Registration] = []
        for registration in Registration.objects.filter(event=self.event).waitlist():
            if limit is not None and len(promoted) >= limit:
                break
            if self.ledger.try_admit() == AdmissionDecision.DENIED:
                break
            registration.transition_to(Registration.Status.CONFIRMED)
            registration.promoted_at = self.now
            registration.save(update_fields=["status", "promoted_at", "updated_at"])
            self._attach_attendance_record(registration)
            transaction.on_commit(partial(notify_registration_promoted.delay, str(registration.pk)), robust=True)
            promoted.append(registration)
            logger.info(
                "registration_promoted",
                event_id=str(self.event.pk),
                registration_id=str(registration.pk),
                current_attendees=self.ledger.current_attendees,
            )
        return promoted

    def _promote_after_release(self) -> list[Registration]:
        try:
            with transaction.atomic():
                return self.promote_waitlisted(limit=1)
        except Exception:
            logger.exception("waitlist_promotion_failed", event_id=str(self.event.pk))
            # The savepoint rolled the counter back.
            self.ledger.refresh()
            return []

    def _attach_attendance_record(self, registration: Registration) -> AttendanceRecord:
        record, _created = AttendanceRecord.objects.update_or_create(
            event=self.event,
            user_id=registration.user_id,
            defaults={"registration": registration, "status": AttendanceRecord.Status.REGISTERED},
        )
        return record
