import re
import typing as t
import uuid

from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models


class UserQueryset(models.QuerySet["User"]):
    """Queryset for User."""

    def event_managers(self) -> t.Self:
        """Users allowed to manage check-in tokens and attendance."""
        return self.filter(models.Q(role__in=User.EVENT_MANAGER_ROLES) | models.Q(is_staff=True))


class TurnstileUserManager(UserManager["User"]):
    def get_queryset(self) -> UserQueryset:
        """Get queryset for User."""
        return UserQueryset(self.model)


class User(AbstractUser):
    class Role(models.TextChoices):
        ADMIN = "admin", "Admin"
        SUBADMIN = "subadmin", "Sub-admin"
        USER = "user", "User"

    EVENT_MANAGER_ROLES = (Role.ADMIN, Role.SUBADMIN)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    role = models.CharField(max_length=16, choices=Role.choices, default=Role.USER, db_index=True)
    phone_number = models.CharField(max_length=20, null=True, blank=True, help_text="Phone number")
    is_verified = models.BooleanField(default=False)

    objects = TurnstileUserManager()  # type: ignore[misc]

    class Meta:
        ordering = ["username"]

    @property
    def is_event_manager(self) -> bool:
        """Admins, sub-admins and Django staff may manage any event's check-in and attendance."""
        return self.is_staff or self.is_superuser or self.role in self.EVENT_MANAGER_ROLES

    @property
    def display_name(self) -> str:
        """Display name."""
        return self.get_display_name()

    def get_display_name(self) -> str:
        """Returns the user's full name, or a name derived from the username as a fallback."""
        return self.get_full_name() or re.sub(r"(\W|_)+", " ", self.username.split("@")[0]).title()
