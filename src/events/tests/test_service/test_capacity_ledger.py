from datetime import datetime

import pytest
from django.db import transaction

from accounts.models import User
from events.models import AdmissionLedger, AttendanceRecord, Event, Registration
from events.service.admission import AdmissionDecision, CapacityLedger
from events.service.admission.ledger import count_admitted, reconcile
from events.tests.conftest import EventFactory

pytestmark = pytest.mark.django_db


def _locked(event: Event) -> CapacityLedger:
    return CapacityLedger.lock(event)


def test_try_admit_grants_until_full(event_factory: EventFactory) -> None:
    event = event_factory(max_attendees=2)
    with transaction.atomic():
        ledger = _locked(event)
        assert ledger.try_admit() == AdmissionDecision.GRANTED
        assert ledger.try_admit() == AdmissionDecision.GRANTED
        assert ledger.try_admit() == AdmissionDecision.DENIED
        assert ledger.current_attendees == 2
    assert AdmissionLedger.objects.get(event=event).current_attendees == 2


def test_unlimited_event_always_admits(event_factory: EventFactory) -> None:
    event = event_factory(max_attendees=None)
    with transaction.atomic():
        ledger = _locked(event)
        for _ in range(50):
            assert ledger.try_admit() == AdmissionDecision.GRANTED
        assert ledger.has_room


def test_release_never_goes_below_zero(event_factory: EventFactory) -> None:
    event = event_factory(max_attendees=1)
    with transaction.atomic():
        ledger = _locked(event)
        ledger.try_admit()
        ledger.release()
        ledger.release()
        assert ledger.current_attendees == 0


def test_peek_reads_without_writing(event_factory: EventFactory) -> None:
    event = event_factory(max_attendees=1)
    AdmissionLedger.objects.filter(event=event).delete()

    ledger = CapacityLedger.peek(event)

    assert ledger.current_attendees == 0
    assert ledger.has_room
    assert not AdmissionLedger.objects.filter(event=event).exists()


def test_count_admitted(event_factory: EventFactory, user: User, other_user: User, now: datetime) -> None:
    registered = event_factory(registration_required=True)
    Registration.objects.create(event=registered, user=user, status=Registration.Status.CONFIRMED, registered_at=now)
    Registration.objects.create(
        event=registered, user=other_user, status=Registration.Status.WAITLISTED, registered_at=now
    )
    assert count_admitted(registered) == 1

    walk_in = event_factory()
    AttendanceRecord.objects.create(
        event=walk_in, user=user, status=AttendanceRecord.Status.CHECKED_OUT, check_in_at=now, check_out_at=now
    )
    AttendanceRecord.objects.create(event=walk_in, user=other_user, status=AttendanceRecord.Status.REGISTERED)
    assert count_admitted(walk_in) == 1


def test_reconcile_corrects_drift(event_factory: EventFactory, user: User, now: datetime) -> None:
    event = event_factory(registration_required=True, max_attendees=5)
    Registration.objects.create(event=event, user=user, status=Registration.Status.CONFIRMED, registered_at=now)
    AdmissionLedger.objects.filter(event=event).update(current_attendees=4)

    result = reconcile(event)

    assert result.drifted
    assert (result.recorded, result.actual) == (4, 1)
    assert AdmissionLedger.objects.get(event=event).current_attendees == 1
    assert not reconcile(event).drifted
