from uuid import uuid4

import pytest

from desk_core.common.exceptions import InvalidTransition
from desk_core.tickets.services import TicketService
from desk_core.usage.limits import UsageLimitService, usage_percentage
from desk_core.usage.services import UsageEventLog

pytestmark = pytest.mark.django_db


def test_usage_percentage_edges():
    assert usage_percentage(5, -1) is None
    assert usage_percentage(0, 0) == 0.0
    assert usage_percentage(1, 0) == 100.0
    assert usage_percentage(76, 100) == pytest.approx(76.0)


def complete_n(subscription, n):
    for _ in range(n):
        UsageEventLog.append(subscription_id=subscription.id, ticket_id=uuid4(), action="completed")


def test_limit_status_against_current_projection(subscription):
    complete_n(subscription, 85)

    status = UsageLimitService.limit_status(subscription=subscription)

    assert status.stats.completed == 85
    assert status.percentage_used == {"active": 0, "completed": 85, "total": 0}
    assert status.is_near_limit is True
    assert status.is_at_limit is False
    assert UsageLimitService.can_complete_ticket(subscription=subscription) is True


def test_completed_limit_blocks_completion(subscription, make_ticket, admin_actor):
    complete_n(subscription, 100)
    ticket = make_ticket(status="in_progress")

    assert UsageLimitService.can_complete_ticket(subscription=subscription) is False
    with pytest.raises(InvalidTransition):
        TicketService.change_status(ticket_id=ticket.id, status="resolved", actor=admin_actor)


def test_active_limit_blocks_creation(subscription, customer_user):
    subscription.plan.active_ticket_limit = 1
    subscription.plan.save()

    TicketService.create_ticket(company_id=subscription.company_id, title="One", submitter_id=customer_user.id)

    assert UsageLimitService.can_create_ticket(subscription=subscription) is False
    with pytest.raises(InvalidTransition):
        TicketService.create_ticket(company_id=subscription.company_id, title="Two", submitter_id=customer_user.id)
