"""The Admission Coordinator.

Single entry point for every admission decision. It owns the clock, the image renderer and
the per-event critical section; the HTTP layer and any other client are thin callers.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

import structlog
from django.conf import settings
from django.db import InterfaceError, OperationalError, connection, transaction
from django.db.models import Count

from common.clock import Clock, SystemClock
from events import exceptions
from events.models import AdmissionLedger, AttendanceRecord, Event, Registration
from events.service.qr import ImageRenderer, get_image_renderer

from . import ledger as ledger_module
from .attendance import AttendanceStateMachine
from .enums import AdmissionAction, EventStatus
from .gates import AdmissionContext, first_failure
from .ledger import CapacityLedger
from .registrations import RegistrationStateMachine
from .status import effective_attendance_status, get_event_status
from .tokens import CheckinTokenService, build_checkin_url
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

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CriticalSection:
    """What an operation sees once it holds the per-event lock."""

    event: Event
    ledger: CapacityLedger
    now: datetime


def _bound_lock_wait() -> None:
    """Cap how long the current transaction waits for row locks."""
    if connection.vendor != "postgresql":
        return
    with connection.cursor() as cursor:
        cursor.execute("SELECT set_config('lock_timeout', %s, true)", [f"{settings.ADMISSION_LOCK_TIMEOUT_MS}ms"])


class AdmissionCoordinator:
    """Façade over the ledger, the state machines and the token service.

    Every state-changing operation runs in one transaction that starts by locking the
    event's ledger row, so operations on one event are serialised and a failing operation
    leaves nothing behind. Operations on different events do not contend.
    """

    def __init__(self, clock: Clock | None = None, renderer: ImageRenderer | None = None) -> None:
        """Initialize the coordinator with an optional clock and image renderer."""
        self.clock = clock or SystemClock()
        self._renderer = renderer

    @property
    def renderer(self) -> ImageRenderer:
        if self._renderer is None:
            self._renderer = get_image_renderer()
        return self._renderer

    @contextmanager
    def _critical_section(self, event_id: UUID, deadline: datetime | None = None) -> Iterator[CriticalSection]:
        """Hold the per-event lock for the duration of the block.

        Raises:
            EventNotFoundError: if the event does not exist.
            RequestTimedOutError: if ``deadline`` passed before the lock was requested.
            TransientFailure: on lock timeouts and other storage failures.
        """
        try:
            if not Event.objects.filter(pk=event_id).exists():
                raise exceptions.EventNotFoundError(event_id=event_id)
            AdmissionLedger.objects.ensure(event_id)
            if deadline is not None and self.clock.now() >= deadline:
                logger.warning("admission_request_timed_out", event_id=str(event_id))
                raise exceptions.RequestTimedOutError(event_id=event_id)
            with transaction.atomic():
                _bound_lock_wait()
                row = AdmissionLedger.objects.lock(event_id)
                event = Event.objects.get(pk=event_id)
                yield CriticalSection(event=event, ledger=CapacityLedger(row, event), now=self.clock.now())
        except (AdmissionLedger.DoesNotExist, Event.DoesNotExist) as e:
            raise exceptions.EventNotFoundError(event_id=event_id) from e
        except (OperationalError, InterfaceError) as e:
            logger.warning("admission_transient_failure", event_id=str(event_id), error=str(e))
            raise exceptions.TransientFailure(event_id=event_id) from e

    def _get_event(self, event_id: UUID) -> Event:
        try:
            return Event.objects.get(pk=event_id)
        except Event.DoesNotExist as e:
            raise exceptions.EventNotFoundError(event_id=event_id) from e

    # Registrations

    def register(self, event_id: UUID, user_id: UUID, *, deadline: datetime | None = None) -> Registration:
        """Register a user. Returns a confirmed or waitlisted registration."""
        with self._critical_section(event_id, deadline) as section:
            machine = RegistrationStateMachine(section.event, section.ledger, section.now)
            return machine.register(user_id)

    def cancel_registration(
        self, event_id: UUID, user_id: UUID, *, deadline: datetime | None = None
    ) -> CancellationOutcome:
        """Cancel a user's registration, promoting the waitlist if a slot was freed."""
        with self._critical_section(event_id, deadline) as section:
            machine = RegistrationStateMachine(section.event, section.ledger, section.now)
            return machine.cancel(user_id)

    def promote_waitlisted(self, event_id: UUID, *, deadline: datetime | None = None) -> list[Registration]:
        """Promote as many waitlisted registrations as capacity allows.

        Called by event authoring after it raises an event's capacity.
        """
        with self._critical_section(event_id, deadline) as section:
            machine = RegistrationStateMachine(section.event, section.ledger, section.now)
            return machine.promote_waitlisted()

    # Attendance

    def mark_attendance(
        self,
        event_id: UUID,
        user_id: UUID,
        *,
        checked_in_by_id: UUID | None = None,
        notes: str = "",
        deadline: datetime | None = None,
    ) -> AttendanceRecord:
        """Check a user in, either by themselves or by a staff member."""
        with self._critical_section(event_id, deadline) as section:
            machine = AttendanceStateMachine(section.event, section.ledger, section.now)
            return machine.mark_attendance(user_id, checked_in_by_id=checked_in_by_id, notes=notes)

    def check_out(self, event_id: UUID, user_id: UUID, *, deadline: datetime | None = None) -> AttendanceRecord:
        """Check a user out."""
        with self._critical_section(event_id, deadline) as section:
            machine = AttendanceStateMachine(section.event, section.ledger, section.now)
            return machine.check_out(user_id)

    # Check-in tokens

    def issue_checkin_token(
        self,
        event_id: UUID,
        expiry_hours: int | None = None,
        *,
        issued_by_id: UUID | None = None,
        deadline: datetime | None = None,
    ) -> IssuedCheckinToken:
        """Issue a check-in token, replacing the current one. The image is rendered after the lock is released."""
        with self._critical_section(event_id, deadline) as section:
            token = CheckinTokenService(section.event, section.now).issue(
                section.ledger, expiry_hours, issued_by_id=issued_by_id
            )
        checkin_url = build_checkin_url(event_id, token.pk)
        return IssuedCheckinToken(
            token=token.pk,
            event_id=event_id,
            issued_at=token.issued_at,
            expires_at=token.expires_at,
            checkin_url=checkin_url,
            qr_code=self.renderer.render(checkin_url),
        )

    def get_checkin_token_status(self, event_id: UUID) -> CheckinTokenStatus | None:
        """Metadata of the event's usable check-in token, or None."""
        event = self._get_event(event_id)
        return CheckinTokenService(event, self.clock.now()).status()

    def revoke_checkin_token(self, event_id: UUID, *, deadline: datetime | None = None) -> None:
        """Revoke the event's usable check-in token, if any."""
        with self._critical_section(event_id, deadline) as section:
            CheckinTokenService(section.event, section.now).revoke()

    def validate_checkin_token(self, event_id: UUID, token: str) -> EventSnapshot:
        """Validate a scanned token without locking. Returns the event snapshot."""
        event = self._get_event(event_id)
        service = CheckinTokenService(event, self.clock.now())
        record = service.validate(token)
        return service.snapshot(record, CapacityLedger.peek(event).current_attendees)

    def checkin_with_token(
        self, event_id: UUID, token: str, user_id: UUID, *, deadline: datetime | None = None
    ) -> AttendanceRecord:
        """Check a user in with a scanned token.

        The token is validated again under the lock: it may have been revoked or replaced
        since the client validated it.
        """
        with self._critical_section(event_id, deadline) as section:
            CheckinTokenService(section.event, section.now).validate(token)
            machine = AttendanceStateMachine(section.event, section.ledger, section.now)
            return machine.mark_attendance(user_id)

    # Reads

    def get_eligibility(self, event_id: UUID, user_id: UUID) -> AdmissionEligibility:
        """What ``user_id`` may do for the event right now.

        Computed by the same gates that guard the operations.
        """
        event = self._get_event(event_id)
        context = AdmissionContext.load(event, CapacityLedger.peek(event), self.clock.now(), user_id)
        actions = (
            AdmissionAction.REGISTER,
            AdmissionAction.CANCEL,
            AdmissionAction.MARK_ATTENDANCE,
            AdmissionAction.CHECK_OUT,
        )
        blocked_by = {
            action: error.code for action in actions if (error := first_failure(action, context)) is not None
        }
        return AdmissionEligibility(
            event_id=event.pk,
            event_status=context.status,
            can_register=AdmissionAction.REGISTER not in blocked_by,
            can_cancel=AdmissionAction.CANCEL not in blocked_by,
            can_mark_attendance=AdmissionAction.MARK_ATTENDANCE not in blocked_by,
            can_check_out=AdmissionAction.CHECK_OUT not in blocked_by,
            is_full=not context.ledger.has_room,
            registration_status=context.registration.status if context.registration else None,
            attendance_status=(
                effective_attendance_status(context.attendance, event, context.now) if context.attendance else None
            ),
            blocked_by=blocked_by,
        )

    def list_user_registrations(self, user_id: UUID) -> list[UserRegistration]:
        """Every registration of a user, cancelled ones included, by event start."""
        now = self.clock.now()
        registrations = (
            Registration.objects.filter(user_id=user_id)
            .select_related("event")
            .order_by("event__start_at", "registered_at")
        )
        attendance = {
            record.registration_id: record
            for record in AttendanceRecord.objects.filter(user_id=user_id, registration__isnull=False)
        }
        entries = []
        for registration in registrations:
            event = registration.event
            record = attendance.get(registration.pk)
            entries.append(
                UserRegistration(
                    id=registration.pk,
                    event_id=event.pk,
                    event_title=event.title,
                    location=event.location,
                    start_at=event.start_at,
                    end_at=event.end_at,
                    event_status=get_event_status(event, now),
                    status=registration.status,
                    registered_at=registration.registered_at,
                    cancelled_at=registration.cancelled_at,
                    promoted_at=registration.promoted_at,
                    attendance_status=effective_attendance_status(record, event, now) if record else None,
                )
            )
        return entries

    def list_attendance(self, event_id: UUID) -> list[AttendanceEntry]:
        """Attendance records of the event, with their effective status."""
        event = self._get_event(event_id)
        now = self.clock.now()
        return [
            AttendanceEntry(
                id=record.pk,
                user_id=record.user_id,
                registration_id=record.registration_id,
                status=effective_attendance_status(record, event, now),
                check_in_at=record.check_in_at,
                check_out_at=record.check_out_at,
                notes=record.notes,
            )
            for record in AttendanceRecord.objects.filter(event=event)
        ]

    def get_attendance_summary(self, event_id: UUID) -> AttendanceSummary:
        """Counts by effective attendance status and registration status."""
        event = self._get_event(event_id)
        status = get_event_status(event, self.clock.now())
        attendance = dict(
            AttendanceRecord.objects.filter(event=event).values_list("status").annotate(total=Count("id")).order_by()
        )
        registrations = dict(
            Registration.objects.filter(event=event).values_list("status").annotate(total=Count("id")).order_by()
        )
        registered = attendance.get(AttendanceRecord.Status.REGISTERED, 0)
        no_show = attendance.get(AttendanceRecord.Status.NO_SHOW, 0)
        if status == EventStatus.PAST:
            registered, no_show = 0, no_show + registered
        return AttendanceSummary(
            event_id=event.pk,
            event_status=status,
            max_attendees=event.max_attendees,
            current_attendees=CapacityLedger.peek(event).current_attendees,
            confirmed=registrations.get(Registration.Status.CONFIRMED, 0),
            waitlisted=registrations.get(Registration.Status.WAITLISTED, 0),
            registered=registered,
            checked_in=attendance.get(AttendanceRecord.Status.CHECKED_IN, 0),
            checked_out=attendance.get(AttendanceRecord.Status.CHECKED_OUT, 0),
            no_show=no_show,
        )

    def reconcile_ledger(self, event_id: UUID) -> LedgerReconciliation:
        """Recount the event's ledger from the rows and fix any drift."""
        return ledger_module.reconcile(self._get_event(event_id))

