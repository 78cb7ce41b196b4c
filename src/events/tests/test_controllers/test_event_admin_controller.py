"""Tests for the door management endpoints."""

import typing as t
from datetime import timedelta

import pytest
from django.shortcuts import reverse  # type: ignore[attr-defined]
from django.test.client import Client

from accounts.models import User
from events.models import AttendanceRecord, CheckinToken, Event, Registration
from events.service.admission import AdmissionCoordinator
from events.tests.conftest import EventFactory

pytestmark = pytest.mark.django_db


@pytest.fixture(autouse=True)
def stub_renderer(settings: t.Any) -> None:
    settings.CHECKIN_IMAGE_RENDERER = "events.tests.conftest.StubRenderer"


class TestPermissions:
    @pytest.mark.parametrize(
        "url_name,method",
        [
            ("issue_checkin_token", "post"),
            ("get_checkin_token_status", "get"),
            ("revoke_checkin_token", "delete"),
            ("list_attendance", "get"),
            ("attendance_summary", "get"),
            ("promote_waitlist", "post"),
        ],
    )
    def test_attendees_are_forbidden(
        self, user_client: Client, ongoing_event: Event, url_name: str, method: str
    ) -> None:
        url = reverse(f"api:{url_name}", kwargs={"event_id": ongoing_event.pk})
        response = getattr(user_client, method)(url, {}, content_type="application/json")
        assert response.status_code == 403

    def test_anonymous_is_unauthorized(self, client: Client, ongoing_event: Event) -> None:
        response = client.get(reverse("api:list_attendance", kwargs={"event_id": ongoing_event.pk}))
        assert response.status_code == 401


class TestCheckinTokens:
    def test_issue(self, event_manager_client: Client, event_manager: User, ongoing_event: Event) -> None:
        url = reverse("api:issue_checkin_token", kwargs={"event_id": ongoing_event.pk})

        response = event_manager_client.post(url, {"expiry_hours": 500}, content_type="application/json")

        assert response.status_code == 200, response.content
        data = response.json()
        assert data["event_id"] == str(ongoing_event.pk)
        assert f"/events/{ongoing_event.pk}/checkin?token=" in data["checkin_url"]
        assert data["qr_code"].startswith("data:image/png;base64,")
        token = CheckinToken.objects.get(pk=data["token"])
        assert token.expires_at - token.issued_at == timedelta(hours=168)
        assert token.issued_by == event_manager

    def test_issue_for_past_event(self, event_manager_client: Client, live_event_factory: EventFactory) -> None:
        event = live_event_factory(starts_in=-timedelta(hours=3))
        url = reverse("api:issue_checkin_token", kwargs={"event_id": event.pk})

        response = event_manager_client.post(url, {}, content_type="application/json")

        assert response.status_code == 400
        assert response.json()["code"] == "event_ended"

    def test_status_and_revoke(self, event_manager_client: Client, ongoing_event: Event) -> None:
        url = reverse("api:get_checkin_token_status", kwargs={"event_id": ongoing_event.pk})
        assert event_manager_client.get(url).status_code == 404

        issued = event_manager_client.post(
            reverse("api:issue_checkin_token", kwargs={"event_id": ongoing_event.pk}),
            {},
            content_type="application/json",
        ).json()
        response = event_manager_client.get(url)
        assert response.status_code == 200
        assert response.json()["token"] == issued["token"]

        revoke_url = reverse("api:revoke_checkin_token", kwargs={"event_id": ongoing_event.pk})
        assert event_manager_client.delete(revoke_url).status_code == 204
        assert event_manager_client.delete(revoke_url).status_code == 204
        assert event_manager_client.get(url).status_code == 404


class TestStaffAttendance:
    def test_check_in_and_out(
        self, event_manager_client: Client, event_manager: User, user: User, ongoing_event: Event
    ) -> None:
        check_in = reverse("api:staff_check_in", kwargs={"event_id": ongoing_event.pk, "user_id": user.pk})

        response = event_manager_client.post(check_in, {"notes": "Wristband 42"}, content_type="application/json")

        assert response.status_code == 200, response.content
        assert response.json()["notes"] == "Wristband 42"
        record = AttendanceRecord.objects.get(event=ongoing_event, user=user)
        assert record.checked_in_by == event_manager

        check_out = reverse("api:staff_check_out", kwargs={"event_id": ongoing_event.pk, "user_id": user.pk})
        response = event_manager_client.post(check_out)
        assert response.status_code == 200
        assert response.json()["status"] == AttendanceRecord.Status.CHECKED_OUT

        response = event_manager_client.post(check_out)
        assert response.status_code == 409
        assert response.json()["code"] == "already_checked_out"

    def test_unknown_attendee(self, event_manager_client: Client, ongoing_event: Event) -> None:
        url = reverse(
            "api:staff_check_in",
            kwargs={"event_id": ongoing_event.pk, "user_id": "00000000-0000-0000-0000-000000000000"},
        )
        response = event_manager_client.post(url, {}, content_type="application/json")
        assert response.status_code == 404

    def test_check_out_without_check_in(self, event_manager_client: Client, user: User, ongoing_event: Event) -> None:
        url = reverse("api:staff_check_out", kwargs={"event_id": ongoing_event.pk, "user_id": user.pk})
        response = event_manager_client.post(url)
        assert response.status_code == 400
        assert response.json()["code"] == "not_checked_in"


class TestReports:
    def test_list_and_summary(
        self, event_manager_client: Client, user: User, ongoing_event: Event
    ) -> None:
        coordinator = AdmissionCoordinator()
        coordinator.mark_attendance(ongoing_event.pk, user.pk)

        response = event_manager_client.get(reverse("api:list_attendance", kwargs={"event_id": ongoing_event.pk}))
        assert response.status_code == 200
        entries = response.json()
        assert [entry["user_id"] for entry in entries] == [str(user.pk)]
        assert entries[0]["status"] == "checked_in"

        response = event_manager_client.get(reverse("api:attendance_summary", kwargs={"event_id": ongoing_event.pk}))
        assert response.status_code == 200
        summary = response.json()
        assert summary["checked_in"] == 1
        assert summary["current_attendees"] == 1
        assert summary["max_attendees"] == 1
        assert summary["event_status"] == "ongoing"


class TestPromoteWaitlist:
    def test_promotes_after_capacity_increase(
        self, event_manager_client: Client, user: User, other_user: User, upcoming_event: Event
    ) -> None:
        coordinator = AdmissionCoordinator()
        coordinator.register(upcoming_event.pk, user.pk)
        coordinator.register(upcoming_event.pk, other_user.pk)
        Event.objects.filter(pk=upcoming_event.pk).update(max_attendees=2)

        response = event_manager_client.post(reverse("api:promote_waitlist", kwargs={"event_id": upcoming_event.pk}))

        assert response.status_code == 200
        promoted = response.json()
        assert [registration["user_id"] for registration in promoted] == [str(other_user.pk)]
        assert Registration.objects.get(event=upcoming_event, user=other_user).status == (
            Registration.Status.CONFIRMED
        )
