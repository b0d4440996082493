# desk_core/archival/automation.py

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Optional
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.utils.timezone import now

from desk_core.archival import locks
from desk_core.archival.capabilities import require, resolve_capabilities
from desk_core.archival.models import ArchivalConfig, AutomationRun, RunTrigger
from desk_core.archival.selectors import ArchivalSelectors
from desk_core.archival.services import ArchivalService
from desk_core.common.exceptions import InvalidTransition
from desk_core.iam.actors import Actor, system_actor
from desk_core.iam.services.membership import company_ids_for_user
from desk_core.subscriptions.models import Subscription
from desk_core.subscriptions.selectors import SubscriptionSelectors
from desk_core.usage.limits import UsageLimitService

logger = logging.getLogger(__name__)


def _automation_settings() -> dict[str, Any]:
    return getattr(settings, "ARCHIVAL_AUTOMATION", {}) or {}


def config_defaults() -> dict[str, Any]:
    defaults = {
        "enabled": True,
        "days_after_completion": 30,
        "max_tickets_per_run": 100,
        "only_when_approaching_limits": True,
        "limit_threshold_percent": 80,
    }
    defaults.update(_automation_settings().get("DEFAULTS") or {})
    return defaults


def _failure_entry(subscription: Subscription, exc: Exception) -> dict[str, Any]:
    return {
        "subscription_id": str(subscription.id),
        "company_id": str(subscription.company_id),
        "plan": subscription.plan.name,
        "tickets_archived": 0,
        "skipped": False,
        "errors": [str(exc) or exc.__class__.__name__],
    }


def _finish_run(run: AutomationRun, results: list[dict[str, Any]]) -> None:
    run.processed_subscriptions = len(results)
    run.total_tickets_archived = sum(r["tickets_archived"] for r in results)
    run.errors = sum(1 for r in results if r["errors"])
    run.subscription_results = results
    run.finished_at = now()
    run.save()


def _visible_results(actor: Optional[Actor], results: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Per-subscription entries the actor may see; customers only their own companies'.
    """
    if actor is None or actor.is_unrestricted or actor.is_agent:
        return list(results)
    if not actor.is_customer:
        return []
    company_ids = {str(c) for c in company_ids_for_user(actor.user_id)}
    return [r for r in results if r.get("company_id") in company_ids]


class AutomationController:
    """
    Periodic archival loop across subscriptions.

    Notes:
    - Subscriptions are processed sequentially, each under its own run lock.
    - A failing subscription is logged and recorded; the loop continues.
    - AutomationRun.errors counts subscriptions with at least one error.
    - Work per subscription is capped by max_tickets_per_run.
    """

    # -------------------------
    # Configuration
    # -------------------------
    @staticmethod
    def get_config(*, subscription_id: UUID) -> ArchivalConfig:
        config, _ = ArchivalConfig.objects.get_or_create(
            subscription_id=subscription_id,
            defaults=config_defaults(),
        )
        return config

    @staticmethod
    @transaction.atomic
    def configure(
        *,
        subscription_id: UUID,
        actor: Actor,
        enabled: bool,
        days_after_completion: Optional[int] = None,
        max_tickets_per_run: Optional[int] = None,
        only_when_approaching_limits: Optional[bool] = None,
        limit_threshold_percent: Optional[int] = None,
    ) -> ArchivalConfig:
        subscription = SubscriptionSelectors.get(subscription_id)
        require(
            resolve_capabilities(actor, subscription=subscription).can_configure_automation,
            "Only administrators can configure automatic archival.",
        )

        config = AutomationController.get_config(subscription_id=subscription.id)
        config.enabled = bool(enabled)

        if days_after_completion is not None:
            config.days_after_completion = days_after_completion
        if max_tickets_per_run is not None:
            if max_tickets_per_run < 1:
                raise InvalidTransition("max_tickets_per_run must be at least 1.")
            config.max_tickets_per_run = max_tickets_per_run
        if only_when_approaching_limits is not None:
            config.only_when_approaching_limits = only_when_approaching_limits
        if limit_threshold_percent is not None:
            config.limit_threshold_percent = limit_threshold_percent

        config.save()
        logger.info(
            "Archival automation configured for %s by %s: enabled=%s days=%s max=%s",
            subscription.id,
            actor.user_id,
            config.enabled,
            config.days_after_completion,
            config.max_tickets_per_run,
        )
        return config

    # -------------------------
    # Per-subscription pass
    # -------------------------
    @staticmethod
    def process_subscription(
        subscription: Subscription,
        *,
        days_after_completion: int,
        max_tickets: int,
        threshold_percent: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Archive up to `max_tickets` tickets completed more than
        `days_after_completion` days ago. With `threshold_percent`, the
        subscription is skipped unless completed usage has reached it.
        """
        result: dict[str, Any] = {
            "subscription_id": str(subscription.id),
            "company_id": str(subscription.company_id),
            "plan": subscription.plan.name,
            "tickets_archived": 0,
            "skipped": False,
            "errors": [],
        }

        try:
            with locks.subscription_lock(subscription.id):
                if threshold_percent is not None:
                    pct = UsageLimitService.completed_usage_percentage(subscription=subscription)
                    if pct is None or pct < threshold_percent:
                        logger.debug(
                            "Subscription %s below archival threshold (%s < %s), skipping",
                            subscription.id,
                            pct,
                            threshold_percent,
                        )
                        result["skipped"] = True
                        return result

                actor = system_actor()
                ticket_ids = list(
                    ArchivalSelectors.archivable_tickets(
                        actor=actor,
                        subscription=subscription,
                        limit=max_tickets,
                        older_than_days=days_after_completion,
                    ).values_list("id", flat=True)
                )
                if not ticket_ids:
                    return result

                bulk = ArchivalService.bulk_archive(ticket_ids=ticket_ids, actor=actor)
                result["tickets_archived"] = bulk.archived_count
                result["errors"] = [
                    f"Failed to archive ticket {item['ticket_id']}: {item['error']}" for item in bulk.failed
                ]
        except locks.LockHeld as exc:
            logger.warning("%s", exc)
            result["skipped"] = True
            result["errors"].append(str(exc))

        return result

    # -------------------------
    # Runs
    # -------------------------
    @staticmethod
    def run(*, trigger: str = RunTrigger.SCHEDULED) -> AutomationRun:
        run = AutomationRun.objects.create(trigger=trigger, started_at=now())
        logger.info("Automated archival run %s started (%s)", run.id, trigger)

        results: list[dict[str, Any]] = []
        try:
            for subscription in SubscriptionSelectors.live():
                try:
                    config = AutomationController.get_config(subscription_id=subscription.id)
                    if not config.enabled:
                        continue

                    entry = AutomationController.process_subscription(
                        subscription,
                        days_after_completion=config.days_after_completion,
                        max_tickets=config.max_tickets_per_run,
                        threshold_percent=(
                            config.limit_threshold_percent if config.only_when_approaching_limits else None
                        ),
                    )
                except Exception as exc:
                    logger.exception("Automated archival failed for subscription %s", subscription.id)
                    entry = _failure_entry(subscription, exc)

                results.append(entry)
        finally:
            _finish_run(run, results)

        if run.errors:
            logger.warning("Automated archival run %s: %s subscriptions reported errors", run.id, run.errors)
        logger.info(
            "Automated archival run %s finished: processed=%s archived=%s errors=%s",
            run.id,
            run.processed_subscriptions,
            run.total_tickets_archived,
            run.errors,
        )
        return run

    @staticmethod
    def trigger_immediate(
        *,
        subscription_id: UUID,
        actor: Actor,
        days_after_completion: Optional[int] = None,
        max_tickets: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        One subscription, now, ignoring the usage threshold. Unset overrides
        fall back to the subscription's stored config.
        """
        subscription = SubscriptionSelectors.get(subscription_id)
        require(
            resolve_capabilities(actor, subscription=subscription).can_configure_automation,
            "Only administrators can trigger archival.",
        )

        config = AutomationController.get_config(subscription_id=subscription.id)
        days = config.days_after_completion if days_after_completion is None else days_after_completion
        cap = config.max_tickets_per_run if max_tickets is None else max_tickets

        run = AutomationRun.objects.create(trigger=RunTrigger.MANUAL, started_at=now())
        try:
            entry = AutomationController.process_subscription(
                subscription, days_after_completion=days, max_tickets=cap
            )
        except Exception as exc:
            logger.exception("Immediate archival failed for subscription %s", subscription.id)
            entry = _failure_entry(subscription, exc)
        _finish_run(run, [entry])

        logger.info(
            "Immediate archival for %s by %s: archived=%s errors=%s",
            subscription.id,
            actor.user_id,
            entry["tickets_archived"],
            len(entry["errors"]),
        )
        return {
            "success": not entry["skipped"],
            "message": f"Archived {entry['tickets_archived']} tickets.",
            "archived_count": entry["tickets_archived"],
            "errors": entry["errors"],
            "run_id": str(run.id),
        }

    # -------------------------
    # Status
    # -------------------------
    @staticmethod
    def last_run(*, trigger: Optional[str] = None) -> Optional[AutomationRun]:
        qs = AutomationRun.objects.filter(finished_at__isnull=False)
        if trigger:
            qs = qs.filter(trigger=trigger)
        return qs.order_by("-started_at").first()

    @staticmethod
    def next_run():
        from desk_core.archival.scheduler import scheduler

        scheduled = scheduler.next_run_time()
        if scheduled is not None:
            return scheduled

        last = AutomationController.last_run(trigger=RunTrigger.SCHEDULED)
        if last is None:
            return None
        hours = int(_automation_settings().get("INTERVAL_HOURS", 24))
        return last.started_at + timedelta(hours=hours)

    @staticmethod
    def status(*, actor: Optional[Actor] = None) -> dict[str, Any]:
        """
        Run state plus the last finished run. Without an actor every
        subscription entry is included.
        """
        ttl = int(_automation_settings().get("LOCK_TTL_SECONDS", 3600))
        is_running = AutomationRun.objects.filter(
            finished_at__isnull=True,
            started_at__gte=now() - timedelta(seconds=ttl),
        ).exists()

        last = AutomationController.last_run()
        return {
            "is_running": is_running,
            "next_run": AutomationController.next_run(),
            "last_run": last.finished_at if last else None,
            "last_run_results": (
                {
                    "id": str(last.id),
                    "trigger": last.trigger,
                    "processed_subscriptions": last.processed_subscriptions,
                    "total_tickets_archived": last.total_tickets_archived,
                    "errors": last.errors,
                    "started_at": last.started_at,
                    "finished_at": last.finished_at,
                    "subscription_results": _visible_results(actor, last.subscription_results or []),
                }
                if last
                else None
            ),
        }
