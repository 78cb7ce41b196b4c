import typing as t
from datetime import timedelta

import pytest
from django.utils import timezone

from events.models import Event
from events.tests.conftest import EventFactory, fake


@pytest.fixture
def live_event_factory() -> EventFactory:
    """Create events relative to the wall clock, which the API reads."""

    def _create(
        *, starts_in: timedelta = timedelta(hours=1), duration: timedelta = timedelta(hours=2), **kwargs: t.Any
    ) -> Event:
        start_at = timezone.now() + starts_in
        kwargs.setdefault("title", fake.catch_phrase())
        kwargs.setdefault("location", fake.city())
        return Event.objects.create(start_at=start_at, end_at=start_at + duration, **kwargs)

    return _create


@pytest.fixture
def upcoming_event(live_event_factory: EventFactory) -> Event:
    return live_event_factory(max_attendees=1, registration_required=True)


@pytest.fixture
def ongoing_event(live_event_factory: EventFactory) -> Event:
    return live_event_factory(starts_in=-timedelta(minutes=15), max_attendees=1)
