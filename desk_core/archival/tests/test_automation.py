from datetime import timedelta

import pytest
from django.core.management import call_command
from django.db import DatabaseError

from desk_core.archival import locks
from desk_core.archival.automation import AutomationController
from desk_core.archival.models import ArchivalConfig, AutomationRun, RunTrigger
from desk_core.common.exceptions import Forbidden, InvalidTransition, PersistenceError
from desk_core.subscriptions.models import Subscription
from desk_core.tenants.models import Company
from desk_core.tickets.models import Ticket
from desk_core.usage.services import UsageEventLog

pytestmark = pytest.mark.django_db


def always_on(subscription, **overrides):
    values = {"enabled": True, "only_when_approaching_limits": False, "days_after_completion": 30}
    values.update(overrides)
    ArchivalConfig.objects.update_or_create(subscription=subscription, defaults=values)


def test_one_failing_subscription_does_not_stop_the_run(subscription, plan, make_ticket, monkeypatch):
    second = Subscription.objects.create(company=Company.objects.create(code="beta", name="Beta"), plan=plan)
    third = Subscription.objects.create(company=Company.objects.create(code="gamma", name="Gamma"), plan=plan)

    t1 = make_ticket(status="resolved", completed_days_ago=40)
    t2 = make_ticket(status="resolved", completed_days_ago=40, company_obj=second.company)
    t3 = make_ticket(status="closed", completed_days_ago=40, company_obj=third.company)
    for sub in (subscription, second, third):
        always_on(sub)

    original = UsageEventLog.append

    def flaky(**kwargs):
        if kwargs["subscription_id"] == second.id:
            raise PersistenceError("datastore unavailable")
        return original(**kwargs)

    monkeypatch.setattr(UsageEventLog, "append", staticmethod(flaky))

    run = AutomationController.run()

    assert run.processed_subscriptions == 3
    assert run.errors == 1
    assert run.total_tickets_archived == 2
    assert run.finished_at is not None

    archived = set(Ticket.objects.filter(archived_at__isnull=False).values_list("id", flat=True))
    assert archived == {t1.id, t3.id}
    assert Ticket.objects.get(id=t2.id).archived_at is None

    by_sub = {r["subscription_id"]: r for r in run.subscription_results}
    assert by_sub[str(second.id)]["errors"]
    assert "datastore unavailable" in by_sub[str(second.id)]["errors"][0]
    assert by_sub[str(subscription.id)]["errors"] == []


def test_unexpected_failure_is_isolated(subscription, plan, make_ticket, monkeypatch):
    second = Subscription.objects.create(company=Company.objects.create(code="beta", name="Beta"), plan=plan)
    make_ticket(status="resolved", completed_days_ago=40)
    always_on(subscription)
    always_on(second)

    original = AutomationController.process_subscription

    def explode(sub, **kwargs):
        if sub.id == subscription.id:
            raise RuntimeError("boom")
        return original(sub, **kwargs)

    monkeypatch.setattr(AutomationController, "process_subscription", staticmethod(explode))

    run = AutomationController.run()

    assert run.processed_subscriptions == 2
    assert run.errors == 1
    assert run.subscription_results[0]["errors"] == ["boom"]


def test_threshold_skips_subscription_below_limit(subscription, make_ticket):
    ticket = make_ticket(status="resolved", completed_days_ago=40)

    run = AutomationController.run()

    assert run.processed_subscriptions == 1
    assert run.total_tickets_archived == 0
    assert run.errors == 0
    assert run.subscription_results[0]["skipped"] is True
    assert Ticket.objects.get(id=ticket.id).archived_at is None


def test_disabled_subscription_is_not_processed(subscription, make_ticket):
    make_ticket(status="resolved", completed_days_ago=40)
    always_on(subscription, enabled=False)

    run = AutomationController.run()

    assert run.processed_subscriptions == 0
    assert run.total_tickets_archived == 0


def test_age_and_cap_bound_the_selection(subscription, make_ticket):
    fresh = make_ticket(status="resolved", completed_days_ago=5)
    old = [make_ticket(status="resolved", completed_days_ago=60 + i) for i in range(3)]
    always_on(subscription, max_tickets_per_run=2)

    run = AutomationController.run()

    assert run.total_tickets_archived == 2
    assert Ticket.objects.get(id=fresh.id).archived_at is None
    assert Ticket.objects.filter(id__in=[t.id for t in old], archived_at__isnull=False).count() == 2


def test_held_lock_reports_skip_instead_of_processing_twice(subscription, make_ticket):
    ticket = make_ticket(status="resolved", completed_days_ago=40)
    always_on(subscription)
    owner = locks.acquire(subscription.id)

    run = AutomationController.run()

    assert run.errors == 1
    assert run.subscription_results[0]["skipped"] is True
    assert Ticket.objects.get(id=ticket.id).archived_at is None

    locks.release(subscription.id, owner)
    assert AutomationController.run().total_tickets_archived == 1


def test_trigger_immediate_uses_overrides_and_ignores_threshold(subscription, make_ticket, admin_actor):
    recent = make_ticket(status="resolved", completed_days_ago=2)

    result = AutomationController.trigger_immediate(
        subscription_id=subscription.id, actor=admin_actor, days_after_completion=1, max_tickets=10
    )

    assert result["success"] is True
    assert result["archived_count"] == 1
    assert result["errors"] == []
    assert Ticket.objects.get(id=recent.id).archived_at is not None
    assert AutomationRun.objects.get(id=result["run_id"]).trigger == RunTrigger.MANUAL


def test_trigger_immediate_is_admin_only(subscription, customer_actor):
    with pytest.raises(Forbidden):
        AutomationController.trigger_immediate(subscription_id=subscription.id, actor=customer_actor)


def test_configure_persists_and_validates(subscription, admin_actor, customer_actor):
    config = AutomationController.configure(
        subscription_id=subscription.id,
        actor=admin_actor,
        enabled=False,
        days_after_completion=14,
        max_tickets_per_run=25,
    )
    assert (config.enabled, config.days_after_completion, config.max_tickets_per_run) == (False, 14, 25)
    assert AutomationController.get_config(subscription_id=subscription.id).days_after_completion == 14

    with pytest.raises(Forbidden):
        AutomationController.configure(subscription_id=subscription.id, actor=customer_actor, enabled=True)

    with pytest.raises(InvalidTransition):
        AutomationController.configure(
            subscription_id=subscription.id, actor=admin_actor, enabled=True, max_tickets_per_run=0
        )


def test_config_created_with_settings_defaults(subscription, settings):
    settings.ARCHIVAL_AUTOMATION = {
        **settings.ARCHIVAL_AUTOMATION,
        "DEFAULTS": {"days_after_completion": 45, "limit_threshold_percent": 90},
    }

    config = AutomationController.get_config(subscription_id=subscription.id)

    assert config.enabled is True
    assert config.days_after_completion == 45
    assert config.limit_threshold_percent == 90
    assert config.max_tickets_per_run == 100


def test_status_reports_last_and_next_run(subscription, make_ticket):
    make_ticket(status="resolved", completed_days_ago=40)
    always_on(subscription)

    assert AutomationController.status()["last_run"] is None

    run = AutomationController.run()
    status = AutomationController.status()

    assert status["is_running"] is False
    assert status["last_run"] == run.finished_at
    assert status["last_run_results"]["total_tickets_archived"] == 1
    assert status["next_run"] == run.started_at + timedelta(hours=24)


def test_run_auto_archival_command(subscription, make_ticket, capsys):
    make_ticket(status="resolved", completed_days_ago=40)
    always_on(subscription)

    call_command("run_auto_archival")

    assert "processed=1 archived=1 errors=0" in capsys.readouterr().out


def test_config_read_failure_is_isolated_and_run_is_closed(subscription, plan, make_ticket, monkeypatch):
    second = Subscription.objects.create(company=Company.objects.create(code="beta", name="Beta"), plan=plan)
    third = Subscription.objects.create(company=Company.objects.create(code="gamma", name="Gamma"), plan=plan)
    t3 = make_ticket(status="closed", completed_days_ago=40, company_obj=third.company)
    for sub in (subscription, second, third):
        always_on(sub)

    real_get_config = AutomationController.get_config

    def failing_config(*, subscription_id):
        if subscription_id == second.id:
            raise DatabaseError("config read failed")
        return real_get_config(subscription_id=subscription_id)

    monkeypatch.setattr(AutomationController, "get_config", staticmethod(failing_config))

    run = AutomationController.run()

    assert run.processed_subscriptions == 3
    assert run.errors == 1
    assert run.finished_at is not None
    assert Ticket.objects.get(id=t3.id).archived_at is not None

    by_sub = {r["subscription_id"]: r for r in run.subscription_results}
    assert by_sub[str(second.id)]["errors"] == ["config read failed"]

    assert not AutomationRun.objects.filter(finished_at__isnull=True).exists()
    assert AutomationController.status()["is_running"] is False


def test_trigger_immediate_failure_still_closes_run(subscription, admin_actor, monkeypatch):
    def explode(sub, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(AutomationController, "process_subscription", staticmethod(explode))

    result = AutomationController.trigger_immediate(subscription_id=subscription.id, actor=admin_actor)

    assert result["errors"] == ["boom"]
    assert result["archived_count"] == 0
    run = AutomationRun.objects.get(id=result["run_id"])
    assert run.finished_at is not None
    assert run.errors == 1
    assert AutomationController.status()["is_running"] is False
