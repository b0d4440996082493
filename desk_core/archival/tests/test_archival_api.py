from uuid import uuid4

import pytest

from desk_core.conftest import subscription_headers
from desk_core.tickets.models import Ticket
from desk_core.usage.services import UsageEventLog

pytestmark = pytest.mark.django_db


def test_archive_and_restore_endpoints(client_for, customer_user, make_ticket):
    ticket = make_ticket(status="resolved")
    client = client_for(customer_user)

    res = client.post(f"/api/v1/tickets/{ticket.id}/archive/")
    assert res.status_code == 200, res.content
    assert res.json()["archived_at"] is not None

    res = client.post(f"/api/v1/tickets/{ticket.id}/archive/")
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "validation_error"

    res = client.post(f"/api/v1/tickets/{ticket.id}/restore/")
    assert res.status_code == 200
    assert res.json()["archived_at"] is None


def test_archive_errors_use_envelope(client_for, outsider_user, make_ticket):
    ticket = make_ticket(status="resolved")
    client = client_for(outsider_user)

    res = client.post(f"/api/v1/tickets/{ticket.id}/archive/")
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "permission_denied"

    res = client.post(f"/api/v1/tickets/{uuid4()}/archive/")
    assert res.status_code == 404
    body = res.json()["error"]
    assert body["code"] == "not_found"
    assert set(body) == {"code", "message", "details", "request_id"}


def test_persistence_failure_is_503(api_client, make_ticket, monkeypatch):
    from desk_core.common.exceptions import PersistenceError

    ticket = make_ticket(status="resolved")

    def boom(**kwargs):
        raise PersistenceError()

    monkeypatch.setattr(UsageEventLog, "append", staticmethod(boom))

    res = api_client.post(f"/api/v1/tickets/{ticket.id}/archive/")
    assert res.status_code == 503
    assert res.json()["error"]["code"] == "persistence_error"


def test_bulk_endpoint_returns_partial_result(api_client, make_ticket):
    a = make_ticket(status="resolved")
    b = make_ticket(status="open")

    res = api_client.post("/api/v1/tickets/archive/bulk/", {"ticket_ids": [str(a.id), str(b.id)]}, format="json")

    assert res.status_code == 200, res.content
    body = res.json()
    assert body["total_processed"] == 2
    assert body["archived_count"] == 1
    assert body["successful"] == [str(a.id)]
    assert body["failed"][0]["ticket_id"] == str(b.id)


def test_bulk_endpoint_validates_payload(api_client):
    res = api_client.post("/api/v1/tickets/archive/bulk/", {"ticket_ids": []}, format="json")
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "validation_error"


def test_suggestions_and_auto_suggestions(client_for, customer_user, make_ticket, subscription):
    make_ticket(status="resolved", completed_days_ago=40)
    for _ in range(79):
        UsageEventLog.append(subscription_id=subscription.id, ticket_id=uuid4(), action="completed")
    client = client_for(customer_user)

    res = client.get("/api/v1/tickets/archive/suggestions/")
    assert res.status_code == 200, res.content
    assert len(res.json()) == 1
    assert res.json()[0]["reason"] == "Completed over 30 days ago"

    res = client.get("/api/v1/tickets/archive/auto-suggestions/")
    assert res.status_code == 200
    assert res.json()["should_suggest_archival"] is True
    assert res.json()["usage_info"]["current"] == 80


def test_stats_archived_and_archivable(client_for, customer_user, admin_actor, make_ticket):
    from desk_core.archival.services import ArchivalService

    done = make_ticket(status="resolved", title="Broken VPN")
    make_ticket(status="closed", title="Slow laptop")
    make_ticket(status="open")
    ArchivalService.archive(ticket_id=done.id, actor=admin_actor)
    client = client_for(customer_user)

    res = client.get("/api/v1/tickets/archive/stats/")
    assert res.status_code == 200
    assert res.json()["total_archived"] == 1
    assert res.json()["archived_this_month"] == 1

    res = client.get("/api/v1/tickets/archived/", {"q": "vpn"})
    assert res.status_code == 200
    assert res.json()["count"] == 1
    assert res.json()["results"][0]["id"] == str(done.id)

    res = client.get("/api/v1/tickets/archived/", {"status": "closed"})
    assert res.json()["count"] == 0

    res = client.get("/api/v1/tickets/archived/", {"status": "bogus"})
    assert res.status_code == 400

    res = client.get("/api/v1/tickets/archivable/")
    assert res.status_code == 200
    assert [t["title"] for t in res.json()] == ["Slow laptop"]


def test_auto_config_read_and_write(client_for, customer_user, api_client, subscription):
    res = client_for(customer_user).get("/api/v1/tickets/archive/auto-config/")
    assert res.status_code == 200
    assert res.json()["enabled"] is True
    assert res.json()["can_configure"] is False

    res = client_for(customer_user).post("/api/v1/tickets/archive/auto-config/", {"enabled": False}, format="json")
    assert res.status_code == 403

    res = api_client.post(
        "/api/v1/tickets/archive/auto-config/",
        {"enabled": True, "days_after_completion": 10, "max_tickets_per_run": 5},
        format="json",
        **subscription_headers(subscription),
    )
    assert res.status_code == 200, res.content
    assert res.json()["days_after_completion"] == 10
    assert res.json()["max_tickets_per_run"] == 5


def test_trigger_immediate_and_status(api_client, client_for, customer_user, make_ticket, subscription):
    ticket = make_ticket(status="resolved", completed_days_ago=3)

    res = client_for(customer_user).post("/api/v1/tickets/archive/trigger-immediate/", {}, format="json")
    assert res.status_code == 403

    res = api_client.post(
        "/api/v1/tickets/archive/trigger-immediate/",
        {"days_after_completion": 1},
        format="json",
        **subscription_headers(subscription),
    )
    assert res.status_code == 200, res.content
    assert res.json()["archived_count"] == 1
    assert Ticket.objects.get(id=ticket.id).archived_at is not None

    res = api_client.get("/api/v1/tickets/archive/automation-status/")
    assert res.status_code == 200
    body = res.json()
    assert body["is_running"] is False
    assert body["last_run_results"]["trigger"] == "manual"
    assert body["last_run_results"]["total_tickets_archived"] == 1


def test_run_automation_is_admin_only(api_client, client_for, lead_user, subscription):
    assert client_for(lead_user).post("/api/v1/tickets/archive/run-automation/").status_code == 403

    res = api_client.post("/api/v1/tickets/archive/run-automation/")
    assert res.status_code == 200
    assert res.json()["processed_subscriptions"] == 1
    assert res.json()["trigger"] == "manual"


def test_automation_status_hides_other_tenants_results(
    api_client, client_for, customer_user, outsider_user, make_ticket, subscription
):
    make_ticket(status="resolved", completed_days_ago=3)
    api_client.post(
        "/api/v1/tickets/archive/trigger-immediate/",
        {"days_after_completion": 1},
        format="json",
        **subscription_headers(subscription),
    )

    res = client_for(outsider_user).get("/api/v1/tickets/archive/automation-status/")
    assert res.status_code == 200
    results = res.json()["last_run_results"]
    assert results["total_tickets_archived"] == 1
    assert results["subscription_results"] == []

    res = client_for(customer_user).get("/api/v1/tickets/archive/automation-status/")
    entries = res.json()["last_run_results"]["subscription_results"]
    assert [e["subscription_id"] for e in entries] == [str(subscription.id)]

    res = api_client.get("/api/v1/tickets/archive/automation-status/")
    assert len(res.json()["last_run_results"]["subscription_results"]) == 1


@pytest.mark.parametrize(
    "url, params",
    [
        ("/api/v1/tickets/archive/suggestions/", {"limit": "abc"}),
        ("/api/v1/tickets/archive/auto-suggestions/", {"limit": "201"}),
        ("/api/v1/tickets/archivable/", {"max": "0"}),
    ],
)
def test_list_params_are_validated(api_client, subscription, url, params):
    res = api_client.get(url, params, **subscription_headers(subscription))
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "validation_error"
