# desk_core/usage/limits.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from desk_core.subscriptions.models import Subscription
from desk_core.usage.projection import UsageStats
from desk_core.usage.selectors import UsageStatsSelectors

NEAR_LIMIT_PERCENT = 80


def usage_percentage(count: int, limit: int) -> Optional[float]:
    """
    Percentage of `limit` used, or None when the limit is unlimited (negative).
    A zero limit is fully used as soon as one ticket counts against it.
    """
    if limit < 0:
        return None
    if limit == 0:
        return 100.0 if count > 0 else 0.0
    return count / limit * 100


@dataclass(frozen=True)
class LimitStatus:
    stats: UsageStats
    active_limit: int
    completed_limit: int
    total_limit: int
    percentage_used: dict
    is_at_limit: bool
    is_near_limit: bool

    def as_dict(self) -> dict:
        return {
            "current_usage": self.stats.as_dict(),
            "limits": {
                "active": self.active_limit,
                "completed": self.completed_limit,
                "total": self.total_limit,
            },
            "percentage_used": self.percentage_used,
            "is_at_limit": self.is_at_limit,
            "is_near_limit": self.is_near_limit,
        }


class UsageLimitService:
    """
    Plan limits checked against the current (unbounded) projection.
    """

    @staticmethod
    def limit_status(*, subscription: Subscription) -> LimitStatus:
        plan = subscription.plan
        stats = UsageStatsSelectors.current_stats(subscription_id=subscription.id)

        pairs = {
            "active": (stats.active, plan.active_ticket_limit),
            "completed": (stats.completed, plan.completed_ticket_limit),
            "total": (stats.total, plan.total_ticket_limit),
        }

        percentage_used = {}
        at_limit = near_limit = False
        for key, (count, limit) in pairs.items():
            pct = usage_percentage(count, limit)
            if pct is None:
                percentage_used[key] = 0
                continue
            percentage_used[key] = min(100, round(pct))
            at_limit = at_limit or count >= limit
            near_limit = near_limit or pct >= NEAR_LIMIT_PERCENT

        return LimitStatus(
            stats=stats,
            active_limit=plan.active_ticket_limit,
            completed_limit=plan.completed_ticket_limit,
            total_limit=plan.total_ticket_limit,
            percentage_used=percentage_used,
            is_at_limit=at_limit,
            is_near_limit=near_limit,
        )

    @staticmethod
    def completed_usage_percentage(*, subscription: Subscription) -> Optional[float]:
        stats = UsageStatsSelectors.current_stats(subscription_id=subscription.id)
        return usage_percentage(stats.completed, subscription.plan.completed_ticket_limit)

    @staticmethod
    def can_create_ticket(*, subscription: Subscription) -> bool:
        plan = subscription.plan
        stats = UsageStatsSelectors.current_stats(subscription_id=subscription.id)
        if 0 <= plan.active_ticket_limit <= stats.active:
            return False
        if 0 <= plan.total_ticket_limit <= stats.total:
            return False
        return True

    @staticmethod
    def can_complete_ticket(*, subscription: Subscription) -> bool:
        plan = subscription.plan
        stats = UsageStatsSelectors.current_stats(subscription_id=subscription.id)
        return not (0 <= plan.completed_ticket_limit <= stats.completed)
