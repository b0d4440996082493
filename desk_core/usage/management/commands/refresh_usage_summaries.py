# desk_core/usage/management/commands/refresh_usage_summaries.py
from __future__ import annotations

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from desk_core.usage.periods import period_key
from desk_core.usage.summaries import UsageSummaryService


class Command(BaseCommand):
    help = "Materialize monthly usage summaries from the usage event log (idempotent upsert)."

    def add_arguments(self, parser):
        parser.add_argument("--period", type=str, default=None, help="Month key YYYY-MM (default: current month).")
        parser.add_argument("--subscription-id", type=str, default=None, help="Optional single subscription UUID.")

    def handle(self, *args, **opts):
        period = opts["period"]
        if period is None:
            period = period_key()

        try:
            if opts["subscription_id"]:
                summary = UsageSummaryService.refresh(subscription_id=opts["subscription_id"], period=period)
                self.stdout.write(
                    self.style.SUCCESS(
                        f"{period}: active={summary.active_count} completed={summary.completed_count} "
                        f"archived={summary.archived_count} total={summary.total_count}"
                    )
                )
                return

            refreshed, failed = UsageSummaryService.refresh_all(period=period)
        except ValidationError as exc:
            raise CommandError("; ".join(exc.messages))

        msg = f"{period}: refreshed={refreshed} failed={failed}"
        self.stdout.write(self.style.SUCCESS(msg) if not failed else self.style.WARNING(msg))
