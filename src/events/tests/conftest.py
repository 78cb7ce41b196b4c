import typing as t
from datetime import datetime, timedelta

import faker
import pytest

from common.clock import FrozenClock
from events.models import Event
from events.service.admission import AdmissionCoordinator

fake = faker.Faker()


class StubRenderer:
    """Image renderer that records what it was asked to draw."""

    def __init__(self) -> None:
        self.rendered: list[str] = []

    def render(self, data: str) -> str:
        self.rendered.append(data)
        return "data:image/png;base64,c3R1Yg=="


class EventFactory(t.Protocol):
    def __call__(
        self, *, starts_in: timedelta = ..., duration: timedelta = ..., **kwargs: t.Any
    ) -> Event: ...  # pragma: no cover


@pytest.fixture
def renderer() -> StubRenderer:
    return StubRenderer()


@pytest.fixture
def coordinator(frozen_clock: FrozenClock, renderer: StubRenderer) -> AdmissionCoordinator:
    return AdmissionCoordinator(clock=frozen_clock, renderer=renderer)


@pytest.fixture
def event_factory(now: datetime) -> EventFactory:
    """Create events relative to the frozen instant."""

    def _create(
        *, starts_in: timedelta = timedelta(hours=1), duration: timedelta = timedelta(hours=2), **kwargs: t.Any
    ) -> Event:
        start_at = now + starts_in
        kwargs.setdefault("title", fake.catch_phrase())
        kwargs.setdefault("location", fake.city())
        return Event.objects.create(start_at=start_at, end_at=start_at + duration, **kwargs)

    return _create


@pytest.fixture
def registration_event(event_factory: EventFactory) -> Event:
    """Upcoming event with two places that requires registration."""
    return event_factory(max_attendees=2, registration_required=True)


@pytest.fixture
def walk_in_event(event_factory: EventFactory) -> Event:
    """Ongoing event with two places that does not require registration."""
    return event_factory(starts_in=-timedelta(minutes=30), max_attendees=2)
