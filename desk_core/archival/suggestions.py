# desk_core/archival/suggestions.py
from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from django.utils import timezone

from desk_core.archival.capabilities import require, resolve_capabilities
from desk_core.archival.selectors import ArchivalSelectors
from desk_core.iam.actors import Actor
from desk_core.subscriptions.selectors import SubscriptionSelectors
from desk_core.usage.limits import usage_percentage
from desk_core.usage.selectors import UsageStatsSelectors

# Fixed: no suggestions below this share of the completed-ticket limit.
SUGGESTION_THRESHOLD_PERCENT = 75

OLD_COMPLETION_DAYS = 30


@dataclass(frozen=True)
class ArchivalSuggestion:
    ticket_id: str
    title: str
    status: str
    completed_at: datetime
    days_since_completion: int
    can_archive: bool
    reason: str
    priority: str = "low"

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def _priority(percentage: float, days: int) -> str:
    if percentage >= 95 or days > 90:
        return "high"
    if percentage >= 85 or days > 60:
        return "medium"
    return "low"


def _overview_reason(percentage: float) -> str:
    if percentage >= 95:
        return "Critical: Very close to completed ticket limit"
    if percentage >= 85:
        return "Warning: Approaching completed ticket limit"
    if percentage >= SUGGESTION_THRESHOLD_PERCENT:
        return "Notice: Consider archiving old completed tickets"
    return "Usage is within normal range"


class SuggestionEngine:
    @staticmethod
    def _usage(subscription) -> tuple[int, int, Optional[float]]:
        limit = subscription.plan.completed_ticket_limit
        completed = UsageStatsSelectors.current_stats(subscription_id=subscription.id).completed
        return completed, limit, usage_percentage(completed, limit)

    @staticmethod
    def _candidates(*, subscription, actor: Actor, limit: int, percentage: float) -> list[ArchivalSuggestion]:
        current = timezone.now()
        suggestions = []
        for ticket in ArchivalSelectors.archivable_tickets(actor=actor, subscription=subscription, limit=limit):
            days = max(0, (current - ticket.completed_on).days)
            suggestions.append(
                ArchivalSuggestion(
                    ticket_id=str(ticket.id),
                    title=ticket.title,
                    status=ticket.status,
                    completed_at=ticket.completed_on,
                    days_since_completion=days,
                    can_archive=resolve_capabilities(actor, ticket=ticket).can_archive,
                    reason=(
                        f"Completed over {OLD_COMPLETION_DAYS} days ago"
                        if days > OLD_COMPLETION_DAYS
                        else "Approaching completed ticket limit"
                    ),
                    priority=_priority(percentage, days),
                )
            )

        # Oldest completion first regardless of scan order
        suggestions.sort(key=lambda s: s.days_since_completion, reverse=True)
        return suggestions

    @staticmethod
    def suggest_archival(*, subscription_id: UUID, actor: Actor, limit: int = 50) -> list[ArchivalSuggestion]:
        """
        Archival candidates once completed usage reaches 75% of the plan limit.
        Unlimited plans never get suggestions.
        """
        subscription = SubscriptionSelectors.get(subscription_id)
        require(resolve_capabilities(actor, subscription=subscription).can_view_summary, "Access denied to subscription.")

        _, _, percentage = SuggestionEngine._usage(subscription)
        if percentage is None or percentage < SUGGESTION_THRESHOLD_PERCENT:
            return []

        return SuggestionEngine._candidates(subscription=subscription, actor=actor, limit=limit, percentage=percentage)

    @staticmethod
    def archival_overview(*, subscription_id: UUID, actor: Actor, limit: int = 50) -> dict[str, Any]:
        from desk_core.archival.automation import AutomationController

        subscription = SubscriptionSelectors.get(subscription_id)
        require(resolve_capabilities(actor, subscription=subscription).can_view_summary, "Access denied to subscription.")

        completed, limit_value, percentage = SuggestionEngine._usage(subscription)
        config = AutomationController.get_config(subscription_id=subscription.id)
        automation = {
            "enabled": config.enabled,
            "days_after_completion": config.days_after_completion,
            "next_run": AutomationController.next_run(),
        }

        if percentage is None:
            return {
                "should_suggest_archival": False,
                "reason": "Unlimited plan - no archival needed",
                "suggestions": [],
                "usage_info": {"current": completed, "limit": limit_value, "percentage": 0},
                "automation_config": automation,
            }

        usage_info = {"current": completed, "limit": limit_value, "percentage": round(percentage, 2)}

        if percentage < SUGGESTION_THRESHOLD_PERCENT:
            return {
                "should_suggest_archival": False,
                "reason": "Usage below threshold for archival suggestions",
                "suggestions": [],
                "usage_info": usage_info,
                "automation_config": automation,
            }

        suggestions = SuggestionEngine._candidates(
            subscription=subscription, actor=actor, limit=limit, percentage=percentage
        )
        return {
            "should_suggest_archival": bool(suggestions),
            "reason": _overview_reason(percentage),
            "suggestions": [s.as_dict() for s in suggestions],
            "usage_info": usage_info,
            "automation_config": automation,
        }
