import typing as t

from django.conf import settings
from django.db import models

from common.models import TimeStampedModel
from events.exceptions import InvalidTransitionError


class AttendanceRecordQuerySet(models.QuerySet["AttendanceRecord"]):
    def with_user(self) -> t.Self:
        """Select the related user."""
        return self.select_related("user")

    def attended(self) -> t.Self:
        """Records of users who physically showed up."""
        return self.filter(status__in=AttendanceRecord.ATTENDED_STATUSES)


class AttendanceRecordManager(models.Manager["AttendanceRecord"]):
    def get_queryset(self) -> AttendanceRecordQuerySet:
        """Get base queryset."""
        return AttendanceRecordQuerySet(self.model, using=self._db)

    def with_user(self) -> AttendanceRecordQuerySet:
        """Returns a queryset with the user selected."""
        return self.get_queryset().with_user()

    def attended(self) -> AttendanceRecordQuerySet:
        """Returns records of users who checked in."""
        return self.get_queryset().attended()


class AttendanceRecord(TimeStampedModel):
    """Physical attendance of one user at one event.

    ``no_show`` is part of the vocabulary but never stored by the engine: a ``registered``
    record of a past event reads as a no-show.
    """

    class Status(models.TextChoices):
        REGISTERED = "registered", "Registered"
        CHECKED_IN = "checked_in", "Checked In"
        CHECKED_OUT = "checked_out", "Checked Out"
        NO_SHOW = "no_show", "No Show"

    ATTENDED_STATUSES: t.ClassVar[tuple[str, ...]] = (Status.CHECKED_IN, Status.CHECKED_OUT)

    TRANSITIONS: t.ClassVar[dict[str, frozenset[str]]] = {
        Status.REGISTERED: frozenset({Status.CHECKED_IN, Status.NO_SHOW}),
        Status.CHECKED_IN: frozenset({Status.CHECKED_OUT}),
        Status.CHECKED_OUT: frozenset(),
        Status.NO_SHOW: frozenset(),
    }

    event = models.ForeignKey("events.Event", on_delete=models.CASCADE, related_name="attendance_records")
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="attendance_records")
    registration = models.ForeignKey(
        "events.Registration",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="attendance_records",
        help_text="Empty when the event does not require registration.",
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.REGISTERED, db_index=True)
    check_in_at = models.DateTimeField(null=True, blank=True)
    check_out_at = models.DateTimeField(null=True, blank=True)
    checked_in_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="recorded_check_ins",
        help_text="Staff member who recorded the check-in, if not the attendee themselves.",
    )
    notes = models.TextField(blank=True, default="")

    objects = AttendanceRecordManager()

    class Meta:
        db_table = "attendance_records"
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(fields=["event", "user"], name="unique_attendance_per_event_user"),
        ]

    @property
    def has_checked_in(self) -> bool:
        """Whether a check-in has been recorded."""
        return self.check_in_at is not None

    def transition_to(self, status: "AttendanceRecord.Status") -> None:
        """Move to ``status`` in memory, enforcing the lifecycle.

        Raises:
            InvalidTransitionError: if the lifecycle does not allow the move.
        """
        if status not in self.TRANSITIONS[self.status]:
            raise InvalidTransitionError("AttendanceRecord", self.status, status)
        self.status = status

    def __str__(self) -> str:
        return f"Attendance: {self.user_id} @ {self.event_id} ({self.status})"
