import pytest
from django.test.client import Client
from django.urls import reverse

pytestmark = pytest.mark.django_db


def test_response_carries_a_request_id(client: Client) -> None:
    response = client.get(reverse("api:healthcheck"))
    assert response["X-Request-ID"]


def test_incoming_request_id_is_kept(client: Client) -> None:
    response = client.get(reverse("api:healthcheck"), headers={"X-Request-ID": "door-7"})
    assert response["X-Request-ID"] == "door-7"
