import typing as t
from datetime import datetime

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q

from common.models import TimeStampedModel


class EventQuerySet(models.QuerySet["Event"]):
    def active(self) -> t.Self:
        """Only events that have not been soft-disabled."""
        return self.filter(is_active=True)

    def upcoming(self, now: datetime) -> t.Self:
        """Events that have not started at ``now``."""
        return self.filter(start_at__gt=now)

    def ongoing(self, now: datetime) -> t.Self:
        """Events running at ``now`` (bounds inclusive)."""
        return self.filter(start_at__lte=now, end_at__gte=now)

    def past(self, now: datetime) -> t.Self:
        """Events that have ended at ``now``."""
        return self.filter(end_at__lt=now)


class EventManager(models.Manager["Event"]):
    def get_queryset(self) -> EventQuerySet:
        """Get base queryset for events."""
        return EventQuerySet(self.model, using=self._db)

    def active(self) -> EventQuerySet:
        """Returns only active events."""
        return self.get_queryset().active()


class Event(TimeStampedModel):
    """An event as published by the authoring collaborator.

    The admission engine only reads events. Their status (upcoming, ongoing, past) is never
    stored: see ``events.service.admission.status``.
    """

    title = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True, default="")
    location = models.CharField(max_length=255, blank=True, default="")
    start_at = models.DateTimeField(db_index=True)
    end_at = models.DateTimeField(db_index=True)
    max_attendees = models.PositiveIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1)],
        help_text="Maximum number of counted attendees. Leave empty for unlimited.",
    )
    registration_required = models.BooleanField(default=False)
    registration_deadline = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Only meaningful when registration is required.",
    )
    is_active = models.BooleanField(default=True, db_index=True)

    objects = EventManager()

    class Meta:
        ordering = ["start_at"]
        constraints = [
            models.CheckConstraint(condition=Q(end_at__gte=F("start_at")), name="event_ends_after_start"),
        ]

    def clean(self) -> None:
        """Validate the event window and registration settings."""
        super().clean()
        if self.start_at and self.end_at and self.end_at < self.start_at:
            raise DjangoValidationError({"end_at": "The event cannot end before it starts."})
        if self.registration_deadline and not self.registration_required:
            raise DjangoValidationError(
                {"registration_deadline": "A registration deadline requires registration to be required."}
            )

    @property
    def is_unlimited(self) -> bool:
        """Whether the event accepts any number of attendees."""
        return self.max_attendees is None

    def __str__(self) -> str:
        return self.title
