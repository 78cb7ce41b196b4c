"""Project-wide fixtures: users, API clients, the clock and Celery."""

import secrets
import string
import typing as t
from datetime import UTC, datetime

import faker
import pytest
from django.core.cache import cache
from django.test.client import Client
from ninja_jwt.tokens import RefreshToken

from accounts.models import User
from common.clock import FrozenClock
from turnstile.celery import app as celery_app


@pytest.fixture(autouse=True)
def enable_celery_eager_mode(settings: t.Any) -> t.Iterator[None]:
    """Enable Celery eager mode for tests so tasks execute synchronously.

    This ensures that Celery tasks run immediately in the same process,
    allowing tests to verify their side effects without a broker.
    """
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True
    previous = celery_app.conf.task_always_eager, celery_app.conf.task_eager_propagates
    celery_app.conf.update(task_always_eager=True, task_eager_propagates=True)
    yield
    celery_app.conf.update(task_always_eager=previous[0], task_eager_propagates=previous[1])


@pytest.fixture(autouse=True)
def clear_cache() -> None:
    """Start every test with empty throttling counters."""
    cache.clear()


class UserFactory:
    """Factory for creating User instances for testing."""

    fake = faker.Faker()

    def create_user(self, **kwargs: t.Any) -> User:
        username = kwargs.pop(
            "username", "".join(secrets.choice(string.ascii_lowercase) for _ in range(10)) + "@user.test"
        )
        email = kwargs.pop("email", username if "@" in username else f"{username}@user.test")
        password = kwargs.pop("password", "password")
        first_name = kwargs.pop("first_name", self.fake.first_name())
        last_name = kwargs.pop("last_name", self.fake.last_name())
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            **kwargs,
        )

    def __call__(self, **kwargs: t.Any) -> User:
        return self.create_user(**kwargs)


@pytest.fixture
def user_factory() -> UserFactory:
    return UserFactory()


@pytest.fixture
def user(user_factory: UserFactory) -> User:
    """A standard attendee."""
    return user_factory()


@pytest.fixture
def other_user(user_factory: UserFactory) -> User:
    return user_factory()


@pytest.fixture
def event_manager(user_factory: UserFactory) -> User:
    """A sub-admin, allowed to run the door for any event."""
    return user_factory(role=User.Role.SUBADMIN)


def client_for(user: User) -> Client:
    """API client authenticated with a bearer token for ``user``."""
    refresh = RefreshToken.for_user(user)
    return Client(HTTP_AUTHORIZATION=f"Bearer {str(refresh.access_token)}")  # type: ignore[attr-defined]


@pytest.fixture
def user_client(user: User) -> Client:
    return client_for(user)


@pytest.fixture
def other_user_client(other_user: User) -> Client:
    return client_for(other_user)


@pytest.fixture
def event_manager_client(event_manager: User) -> Client:
    return client_for(event_manager)


@pytest.fixture
def now() -> datetime:
    """The instant every clock-driven test starts at."""
    return datetime(2030, 6, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def frozen_clock(now: datetime) -> FrozenClock:
    return FrozenClock(now)
