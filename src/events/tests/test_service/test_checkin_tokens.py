from datetime import timedelta

import pytest
from django.test import override_settings

from accounts.models import User
from common.clock import FrozenClock
from events import exceptions
from events.models import AdmissionLedger, CheckinToken, Event
from events.service.admission import AdmissionCoordinator
from events.service.admission.tokens import build_checkin_url, clamp_expiry_hours
from events.tests.conftest import EventFactory, StubRenderer

pytestmark = pytest.mark.django_db


@pytest.mark.parametrize(
    "requested,expected",
    [(None, 24), (0, 1), (-5, 1), (1, 1), (48, 48), (168, 168), (500, 168)],
)
def test_clamp_expiry_hours(requested: int | None, expected: int) -> None:
    assert clamp_expiry_hours(requested) == expected


@override_settings(FRONTEND_BASE_URL="https://door.example.org/")
def test_build_checkin_url(walk_in_event: Event) -> None:
    url = build_checkin_url(walk_in_event.pk, "abc-_123")
    assert url == f"https://door.example.org/events/{walk_in_event.pk}/checkin?token=abc-_123"


class TestIssue:
    def test_issue_returns_link_and_image(
        self,
        coordinator: AdmissionCoordinator,
        walk_in_event: Event,
        event_manager: User,
        frozen_clock: FrozenClock,
        renderer: StubRenderer,
    ) -> None:
        issued = coordinator.issue_checkin_token(walk_in_event.pk, 2, issued_by_id=event_manager.pk)

        assert issued.expires_at == frozen_clock.now() + timedelta(hours=2)
        assert issued.token in issued.checkin_url
        assert renderer.rendered == [issued.checkin_url]
        assert issued.qr_code.startswith("data:image/png;base64,")
        token = CheckinToken.objects.get(pk=issued.token)
        assert token.issued_by == event_manager
        assert token.is_current

    def test_default_lifetime(
        self, coordinator: AdmissionCoordinator, walk_in_event: Event, frozen_clock: FrozenClock
    ) -> None:
        issued = coordinator.issue_checkin_token(walk_in_event.pk)
        assert issued.expires_at - issued.issued_at == timedelta(hours=24)

    def test_lifetime_is_clamped(self, coordinator: AdmissionCoordinator, walk_in_event: Event) -> None:
        issued = coordinator.issue_checkin_token(walk_in_event.pk, 1000)
        assert issued.expires_at - issued.issued_at == timedelta(hours=168)

    def test_reissue_revokes_previous(self, coordinator: AdmissionCoordinator, walk_in_event: Event) -> None:
        first = coordinator.issue_checkin_token(walk_in_event.pk, 1)
        second = coordinator.issue_checkin_token(walk_in_event.pk, 1)

        with pytest.raises(exceptions.TokenRevokedError):
            coordinator.validate_checkin_token(walk_in_event.pk, first.token)
        assert coordinator.validate_checkin_token(walk_in_event.pk, second.token).is_valid
        assert CheckinToken.objects.filter(event=walk_in_event, is_current=True).count() == 1

    def test_reissue_keeps_expired_previous_expired(
        self, coordinator: AdmissionCoordinator, walk_in_event: Event, frozen_clock: FrozenClock
    ) -> None:
        first = coordinator.issue_checkin_token(walk_in_event.pk, 1)
        frozen_clock.advance(hours=1)
        coordinator.issue_checkin_token(walk_in_event.pk, 1)

        with pytest.raises(exceptions.TokenExpiredError):
            coordinator.validate_checkin_token(walk_in_event.pk, first.token)

    def test_past_event(
        self, coordinator: AdmissionCoordinator, walk_in_event: Event, frozen_clock: FrozenClock
    ) -> None:
        frozen_clock.set(walk_in_event.end_at + timedelta(seconds=1))
        with pytest.raises(exceptions.EventEndedError):
            coordinator.issue_checkin_token(walk_in_event.pk)

    def test_inactive_event(self, coordinator: AdmissionCoordinator, event_factory: EventFactory) -> None:
        event = event_factory(is_active=False)
        with pytest.raises(exceptions.EventInactiveError):
            coordinator.issue_checkin_token(event.pk)

    def test_upcoming_event(self, coordinator: AdmissionCoordinator, registration_event: Event) -> None:
        assert coordinator.issue_checkin_token(registration_event.pk).token


class TestStatusAndRevoke:
    def test_status_of_current_token(self, coordinator: AdmissionCoordinator, walk_in_event: Event) -> None:
        assert coordinator.get_checkin_token_status(walk_in_event.pk) is None

        issued = coordinator.issue_checkin_token(walk_in_event.pk, 3)
        status = coordinator.get_checkin_token_status(walk_in_event.pk)

        assert status is not None
        assert status.token == issued.token
        assert status.expires_at == issued.expires_at
        assert status.checkin_url == issued.checkin_url

    def test_expired_token_has_no_status(
        self, coordinator: AdmissionCoordinator, walk_in_event: Event, frozen_clock: FrozenClock
    ) -> None:
        coordinator.issue_checkin_token(walk_in_event.pk, 1)
        frozen_clock.advance(hours=1)
        assert coordinator.get_checkin_token_status(walk_in_event.pk) is None

    def test_revoke_is_idempotent(self, coordinator: AdmissionCoordinator, walk_in_event: Event) -> None:
        issued = coordinator.issue_checkin_token(walk_in_event.pk)

        coordinator.revoke_checkin_token(walk_in_event.pk)
        coordinator.revoke_checkin_token(walk_in_event.pk)

        assert coordinator.get_checkin_token_status(walk_in_event.pk) is None
        with pytest.raises(exceptions.TokenRevokedError):
            coordinator.validate_checkin_token(walk_in_event.pk, issued.token)

    def test_revoke_without_token(self, coordinator: AdmissionCoordinator, walk_in_event: Event) -> None:
        coordinator.revoke_checkin_token(walk_in_event.pk)
        assert not CheckinToken.objects.filter(event=walk_in_event).exists()


class TestValidate:
    def test_round_trip_until_expiry(
        self, coordinator: AdmissionCoordinator, walk_in_event: Event, frozen_clock: FrozenClock
    ) -> None:
        issued = coordinator.issue_checkin_token(walk_in_event.pk, 1)

        frozen_clock.advance(minutes=59, seconds=59)
        snapshot = coordinator.validate_checkin_token(walk_in_event.pk, issued.token)
        assert snapshot.is_valid
        assert snapshot.event_id == walk_in_event.pk
        assert snapshot.event_title == walk_in_event.title
        assert snapshot.max_attendees == 2
        assert snapshot.current_attendees == 0
        assert snapshot.expires_at == issued.expires_at

        frozen_clock.advance(seconds=1)
        with pytest.raises(exceptions.TokenExpiredError):
            coordinator.validate_checkin_token(walk_in_event.pk, issued.token)

    def test_validation_does_not_write_the_ledger(
        self, coordinator: AdmissionCoordinator, walk_in_event: Event
    ) -> None:
        issued = coordinator.issue_checkin_token(walk_in_event.pk)
        AdmissionLedger.objects.filter(event=walk_in_event).delete()

        snapshot = coordinator.validate_checkin_token(walk_in_event.pk, issued.token)

        assert snapshot.current_attendees == 0
        assert not AdmissionLedger.objects.filter(event=walk_in_event).exists()

    def test_unknown_token(self, coordinator: AdmissionCoordinator, walk_in_event: Event) -> None:
        with pytest.raises(exceptions.TokenNotFoundError):
            coordinator.validate_checkin_token(walk_in_event.pk, "not-a-token")

    def test_empty_token(self, coordinator: AdmissionCoordinator, walk_in_event: Event) -> None:
        with pytest.raises(exceptions.TokenNotFoundError):
            coordinator.validate_checkin_token(walk_in_event.pk, "")

    def test_token_of_another_event(
        self, coordinator: AdmissionCoordinator, walk_in_event: Event, event_factory: EventFactory
    ) -> None:
        other = event_factory(starts_in=-timedelta(minutes=5))
        issued = coordinator.issue_checkin_token(other.pk)
        with pytest.raises(exceptions.TokenNotFoundError):
            coordinator.validate_checkin_token(walk_in_event.pk, issued.token)

    def test_revoked_is_reported_before_expired(
        self, coordinator: AdmissionCoordinator, walk_in_event: Event, frozen_clock: FrozenClock
    ) -> None:
        issued = coordinator.issue_checkin_token(walk_in_event.pk, 1)
        coordinator.revoke_checkin_token(walk_in_event.pk)
        frozen_clock.advance(hours=2)
        with pytest.raises(exceptions.TokenRevokedError):
            coordinator.validate_checkin_token(walk_in_event.pk, issued.token)

    def test_event_disabled_after_issue(self, coordinator: AdmissionCoordinator, walk_in_event: Event) -> None:
        issued = coordinator.issue_checkin_token(walk_in_event.pk)
        Event.objects.filter(pk=walk_in_event.pk).update(is_active=False)
        with pytest.raises(exceptions.EventInactiveError):
            coordinator.validate_checkin_token(walk_in_event.pk, issued.token)

    def test_event_ended_before_token_expired(
        self, coordinator: AdmissionCoordinator, walk_in_event: Event, frozen_clock: FrozenClock
    ) -> None:
        issued = coordinator.issue_checkin_token(walk_in_event.pk, 24)
        frozen_clock.set(walk_in_event.end_at + timedelta(minutes=1))
        with pytest.raises(exceptions.EventEndedError):
            coordinator.validate_checkin_token(walk_in_event.pk, issued.token)


class TestCheckinWithToken:
    def test_scan_checks_in_then_already_attended(
        self, coordinator: AdmissionCoordinator, walk_in_event: Event, user: User
    ) -> None:
        issued = coordinator.issue_checkin_token(walk_in_event.pk)

        record = coordinator.checkin_with_token(walk_in_event.pk, issued.token, user.pk)
        assert record.status == record.Status.CHECKED_IN

        with pytest.raises(exceptions.AlreadyAttendedError):
            coordinator.checkin_with_token(walk_in_event.pk, issued.token, user.pk)

    def test_revoked_between_validate_and_checkin(
        self, coordinator: AdmissionCoordinator, walk_in_event: Event, user: User
    ) -> None:
        issued = coordinator.issue_checkin_token(walk_in_event.pk)
        coordinator.validate_checkin_token(walk_in_event.pk, issued.token)
        coordinator.revoke_checkin_token(walk_in_event.pk)

        with pytest.raises(exceptions.TokenRevokedError):
            coordinator.checkin_with_token(walk_in_event.pk, issued.token, user.pk)

    def test_requires_confirmed_registration(
        self,
        coordinator: AdmissionCoordinator,
        registration_event: Event,
        user: User,
        other_user: User,
        frozen_clock: FrozenClock,
    ) -> None:
        coordinator.register(registration_event.pk, user.pk)
        issued = coordinator.issue_checkin_token(registration_event.pk)
        frozen_clock.set(registration_event.start_at)

        assert coordinator.checkin_with_token(registration_event.pk, issued.token, user.pk).check_in_at
        with pytest.raises(exceptions.NotRegisteredError):
            coordinator.checkin_with_token(registration_event.pk, issued.token, other_user.pk)
