import typing as t

from django.conf import settings
from django.db import models
from django.db.models import Q

from common.models import TimeStampedModel
from events.exceptions import InvalidTransitionError


class RegistrationQuerySet(models.QuerySet["Registration"]):
    def active(self) -> t.Self:
        """Registrations that have not been cancelled."""
        return self.exclude(status=Registration.Status.CANCELLED)

    def confirmed(self) -> t.Self:
        """Registrations that hold a counted slot."""
        return self.filter(status=Registration.Status.CONFIRMED)

    def waitlist(self) -> t.Self:
        """Waitlisted registrations, first come first served."""
        return self.filter(status=Registration.Status.WAITLISTED).order_by("registered_at", "created_at")


class RegistrationManager(models.Manager["Registration"]):
    def get_queryset(self) -> RegistrationQuerySet:
        """Get base queryset."""
        return RegistrationQuerySet(self.model, using=self._db)

    def active(self) -> RegistrationQuerySet:
        """Returns registrations that have not been cancelled."""
        return self.get_queryset().active()

    def confirmed(self) -> RegistrationQuerySet:
        """Returns confirmed registrations."""
        return self.get_queryset().confirmed()

    def waitlist(self) -> RegistrationQuerySet:
        """Returns the waitlist in promotion order."""
        return self.get_queryset().waitlist()


class Registration(TimeStampedModel):
    """A user's registration for an event that requires one."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        CONFIRMED = "confirmed", "Confirmed"
        WAITLISTED = "waitlisted", "Waitlisted"
        CANCELLED = "cancelled", "Cancelled"

    TRANSITIONS: t.ClassVar[dict[str, frozenset[str]]] = {
        Status.PENDING: frozenset({Status.CONFIRMED, Status.WAITLISTED}),
        Status.CONFIRMED: frozenset({Status.CANCELLED}),
        Status.WAITLISTED: frozenset({Status.CONFIRMED, Status.CANCELLED}),
        Status.CANCELLED: frozenset(),
    }

    event = models.ForeignKey("events.Event", on_delete=models.CASCADE, related_name="registrations")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="registrations")
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)
    registered_at = models.DateTimeField(db_index=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    promoted_at = models.DateTimeField(null=True, blank=True)

    objects = RegistrationManager()

    class Meta:
        db_table = "registrations"
        ordering = ["registered_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["event", "user"],
                condition=~Q(status="cancelled"),
                name="unique_active_registration_per_event_user",
            )
        ]

    @property
    def is_active(self) -> bool:
        """Whether the registration still holds (or waits for) a place."""
        return self.status != self.Status.CANCELLED

    def transition_to(self, status: "Registration.Status") -> None:
        """Move to ``status`` in memory, enforcing the lifecycle.

        Raises:
            InvalidTransitionError: if the lifecycle does not allow the move.
        """
        if status not in self.TRANSITIONS[self.status]:
            raise InvalidTransitionError("Registration", self.status, status)
        self.status = status

    def __str__(self) -> str:
        return f"Registration: {self.user_id} -> {self.event_id} ({self.status})"
