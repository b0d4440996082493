# desk_core/archival/management/commands/run_auto_archival.py
from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from desk_core.archival.automation import AutomationController
from desk_core.archival.models import RunTrigger
from desk_core.common.exceptions import DomainError
from desk_core.iam.actors import system_actor


class Command(BaseCommand):
    help = "Run automated ticket archival across subscriptions (cron entry point)."

    def add_arguments(self, parser):
        parser.add_argument("--subscription-id", type=str, default=None, help="Archive a single subscription now.")
        parser.add_argument("--days", type=int, default=None, help="Override days after completion (single subscription).")
        parser.add_argument("--max-tickets", type=int, default=None, help="Override max tickets (single subscription).")

    def handle(self, *args, **opts):
        if opts["subscription_id"]:
            try:
                result = AutomationController.trigger_immediate(
                    subscription_id=opts["subscription_id"],
                    actor=system_actor(),
                    days_after_completion=opts["days"],
                    max_tickets=opts["max_tickets"],
                )
            except DomainError as exc:
                raise CommandError(exc.message)

            self.stdout.write(self.style.SUCCESS(result["message"]))
            for err in result["errors"]:
                self.stdout.write(self.style.WARNING(f"  {err}"))
            return

        run = AutomationController.run(trigger=RunTrigger.SCHEDULED)
        msg = (
            f"processed={run.processed_subscriptions} "
            f"archived={run.total_tickets_archived} errors={run.errors}"
        )
        self.stdout.write(self.style.SUCCESS(msg) if not run.errors else self.style.WARNING(msg))
