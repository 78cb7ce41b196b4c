import typing as t

import structlog
from django.db.models.signals import post_save
from django.dispatch import Signal, receiver

from events.models import AdmissionLedger, Event

logger = structlog.get_logger(__name__)

# Sent by the notification task once a waitlisted registration has been confirmed.
# Receivers get ``registration`` (a Registration instance).
registration_promoted = Signal()


@receiver(post_save, sender=Event)
def create_admission_ledger(sender: type[Event], instance: Event, created: bool, **kwargs: t.Any) -> None:
    """Give every new event its ledger row, so the first admission never has to create it."""
    if not created:
        return
    AdmissionLedger.objects.ensure(instance.pk)
    logger.debug("admission_ledger_created", event_id=str(instance.pk))
