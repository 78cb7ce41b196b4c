"""Celery tasks for the admission engine.

Tasks are enqueued with ``transaction.on_commit`` so that no external I/O happens while a
per-event lock is held.
"""

import structlog
from celery import shared_task

from .models import Registration
from .signals import registration_promoted

logger = structlog.get_logger(__name__)


@shared_task
def notify_registration_promoted(registration_id: str) -> None:
    """Hand a waitlist promotion over to the notification collaborators."""
    registration = Registration.objects.select_related("event", "user").filter(pk=registration_id).first()
    if registration is None:
        logger.warning("promoted_registration_missing", registration_id=registration_id)
        return
    if registration.status != Registration.Status.CONFIRMED:
        # Cancelled again before the task ran.
        logger.info(
            "promoted_registration_no_longer_confirmed",
            registration_id=registration_id,
            status=registration.status,
        )
        return
    registration_promoted.send(sender=Registration, registration=registration)
    logger.info(
        "registration_promotion_notified",
        registration_id=registration_id,
        event_id=str(registration.event_id),
        user_id=str(registration.user_id),
    )
