# desk_core/usage/selectors.py
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from django.db.models import Count, QuerySet

from desk_core.usage import projection
from desk_core.usage.models import UsageEvent
from desk_core.usage.periods import period_bounds


class UsageEventSelectors:
    """
    Read side of the usage event log. Every list is ordered by (timestamp, id).
    """

    @staticmethod
    def query_range(
        *,
        subscription_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> QuerySet[UsageEvent]:
        qs = UsageEvent.objects.filter(subscription_id=subscription_id)
        if start is not None:
            qs = qs.filter(timestamp__gte=start)
        if end is not None:
            qs = qs.filter(timestamp__lt=end)
        return qs.order_by("timestamp", "id")

    @staticmethod
    def ticket_history(*, ticket_id: UUID) -> QuerySet[UsageEvent]:
        return UsageEvent.objects.filter(ticket_id=ticket_id).order_by("timestamp", "id")

    @staticmethod
    def recent_activity(*, subscription_id: UUID, limit: int = 50) -> QuerySet[UsageEvent]:
        return UsageEvent.objects.filter(subscription_id=subscription_id).order_by("-timestamp", "-id")[:limit]

    @staticmethod
    def counts_by_action(
        *,
        subscription_id: UUID,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> dict[str, int]:
        qs = UsageEventSelectors.query_range(subscription_id=subscription_id, start=start, end=end)
        rows = qs.order_by().values("action").annotate(count=Count("id"))
        return {row["action"]: row["count"] for row in rows}


class UsageStatsSelectors:
    @staticmethod
    def _project(qs: QuerySet[UsageEvent]) -> projection.UsageStats:
        return projection.project(qs.only("id", "ticket_id", "action", "new_status").iterator())

    @staticmethod
    def current_stats(*, subscription_id: UUID) -> projection.UsageStats:
        """Authoritative current state: projection over the whole log."""
        return UsageStatsSelectors._project(UsageEventSelectors.query_range(subscription_id=subscription_id))

    @staticmethod
    def period_stats(*, subscription_id: UUID, period: str) -> projection.UsageStats:
        """
        Within-period net state for a calendar month. Only events inside the
        month are folded, so this may differ from current_stats.
        """
        start, end = period_bounds(period)
        return UsageStatsSelectors._project(
            UsageEventSelectors.query_range(subscription_id=subscription_id, start=start, end=end)
        )
