from io import StringIO

import pytest
from django.core.management import CommandError, call_command

from events.models import AdmissionLedger, Event
from events.tests.conftest import EventFactory

pytestmark = pytest.mark.django_db


@pytest.fixture
def drifted_event(event_factory: EventFactory) -> Event:
    event = event_factory(max_attendees=10)
    AdmissionLedger.objects.filter(event=event).update(current_attendees=4)
    return event


def test_reconcile_fixes_drift(drifted_event: Event, event_factory: EventFactory) -> None:
    event_factory()
    out = StringIO()

    call_command("reconcile_admission_ledgers", stdout=out)

    assert AdmissionLedger.objects.get(event=drifted_event).current_attendees == 0
    assert "1 ledger(s) corrected." in out.getvalue()
    assert str(drifted_event.pk) in out.getvalue()


def test_dry_run_writes_nothing(drifted_event: Event) -> None:
    out = StringIO()

    call_command("reconcile_admission_ledgers", "--dry-run", stdout=out)

    assert AdmissionLedger.objects.get(event=drifted_event).current_attendees == 4
    assert "1 ledger(s) would be corrected." in out.getvalue()


def test_single_event(drifted_event: Event, event_factory: EventFactory) -> None:
    other = event_factory()
    AdmissionLedger.objects.filter(event=other).update(current_attendees=2)

    call_command("reconcile_admission_ledgers", "--event", str(drifted_event.pk), stdout=StringIO())

    assert AdmissionLedger.objects.get(event=drifted_event).current_attendees == 0
    assert AdmissionLedger.objects.get(event=other).current_attendees == 2


def test_unknown_event() -> None:
    with pytest.raises(CommandError):
        call_command("reconcile_admission_ledgers", "--event", "00000000-0000-0000-0000-000000000000")
