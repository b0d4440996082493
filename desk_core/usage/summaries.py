# desk_core/usage/summaries.py
from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from django.db import DatabaseError, transaction
from django.db.models import QuerySet

from desk_core.common.exceptions import NotFound, PersistenceError
from desk_core.subscriptions.selectors import SubscriptionSelectors
from desk_core.usage.models import UsageSummary
from desk_core.usage.periods import period_bounds, period_key
from desk_core.usage.selectors import UsageStatsSelectors

logger = logging.getLogger(__name__)


class UsageSummaryService:
    """
    Materialized monthly usage per subscription.

    refresh() is an idempotent upsert keyed by (subscription, period); concurrent
    refreshes of the same period are last-write-wins. Closed periods are not frozen.
    """

    @staticmethod
    @transaction.atomic
    def refresh(*, subscription_id: UUID, period: Optional[str] = None) -> UsageSummary:
        if period is None:
            period = period_key()
        period_bounds(period)  # validates the key

        stats = UsageStatsSelectors.period_stats(subscription_id=subscription_id, period=period)

        try:
            summary, _ = UsageSummary.objects.update_or_create(
                subscription_id=subscription_id,
                period=period,
                defaults={
                    "active_count": stats.active,
                    "completed_count": stats.completed,
                    "total_count": stats.total,
                    "archived_count": stats.archived,
                },
            )
        except DatabaseError as exc:
            raise PersistenceError("Failed to store usage summary.") from exc

        logger.debug("Refreshed usage summary %s %s: %s", subscription_id, period, stats.as_dict())
        return summary

    @staticmethod
    def get(*, subscription_id: UUID, period: str) -> UsageSummary:
        try:
            return UsageSummary.objects.get(subscription_id=subscription_id, period=period)
        except UsageSummary.DoesNotExist:
            raise NotFound("Usage summary not found.")

    @staticmethod
    def list(*, subscription_id: UUID, limit: int = 12) -> QuerySet[UsageSummary]:
        return UsageSummary.objects.filter(subscription_id=subscription_id).order_by("-period")[:limit]

    @staticmethod
    def refresh_all(*, period: Optional[str] = None) -> tuple[int, int]:
        """
        Refresh `period` for every live subscription. Returns (refreshed, failed).
        """
        if period is None:
            period = period_key()
        period_bounds(period)

        refreshed = failed = 0
        for subscription in SubscriptionSelectors.live():
            try:
                UsageSummaryService.refresh(subscription_id=subscription.id, period=period)
                refreshed += 1
            except Exception:
                failed += 1
                logger.exception("Usage summary refresh failed for subscription %s", subscription.id)

        logger.info("Usage summaries for %s: %s refreshed, %s failed", period, refreshed, failed)
        return refreshed, failed
