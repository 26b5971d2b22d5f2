# notifications/management/commands/dispatch_notifications.py

from __future__ import annotations

from django.core.management.base import BaseCommand

from notifications.services.outbox import dispatch_pending


class Command(BaseCommand):
    help = "Retry unpublished notification outbox events."

    def add_arguments(self, parser):
        parser.add_argument(
            "--limit",
            type=int,
            default=100,
            help="Maximum number of events to dispatch (default: 100)",
        )

    def handle(self, *args, **options):
        results = dispatch_pending(limit=options["limit"])
        ok = sum(1 for r in results if r.success)
        failed = len(results) - ok

        self.stdout.write(f"Dispatched: {ok}")
        self.stdout.write(f"Failed:     {failed}")
