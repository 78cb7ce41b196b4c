import typing as t

import structlog
from django.core.management.base import BaseCommand, CommandError

from events.models import AdmissionLedger, Event
from events.service.admission.ledger import count_admitted, reconcile

logger = structlog.get_logger(__name__)


class Command(BaseCommand):
    """Recount every event's attendee ledger from its registrations and attendance records."""

    help = "Recount admission ledgers from the rows and fix any drift."

    def add_arguments(self, parser: t.Any) -> None:
        """Add command arguments.

        Args:
            parser: The argument parser.
        """
        parser.add_argument("--event", action="append", dest="event_ids", help="Only this event (repeatable).")
        parser.add_argument("--dry-run", action="store_true", help="Report drift without writing.")

    def handle(self, *args: t.Any, **options: t.Any) -> None:
        """Execute the command.

        Raises:
            CommandError: If a requested event does not exist.
        """
        events = Event.objects.all()
        if options["event_ids"]:
            events = events.filter(pk__in=options["event_ids"])
            if events.count() != len(set(options["event_ids"])):
                raise CommandError("One or more events do not exist.")

        drifted = 0
        for event in events.iterator():
            if options["dry_run"]:
                recorded = AdmissionLedger.objects.ensure(event.pk).current_attendees
                actual = count_admitted(event)
            else:
                result = reconcile(event)
                recorded, actual = result.recorded, result.actual
            if recorded != actual:
                drifted += 1
                self.stdout.write(self.style.WARNING(f"{event.pk} {event.title}: ledger {recorded}, rows {actual}"))

        verb = "would be corrected" if options["dry_run"] else "corrected"
        logger.info("admission_ledgers_reconciled", drifted=drifted, dry_run=options["dry_run"])
        self.stdout.write(self.style.SUCCESS(f"{drifted} ledger(s) {verb}."))
