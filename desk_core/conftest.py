# desk_core/conftest.py
from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.utils.timezone import now
from rest_framework.test import APIClient

from desk_core.common.permissions import ROLE_ADMIN, ROLE_AGENT, ROLE_CUSTOMER, ROLE_TEAM_LEAD
from desk_core.iam.actors import Actor, system_actor
from desk_core.iam.models import CompanyMembership, TeamMembership
from desk_core.subscriptions.models import Subscription, SubscriptionPlan
from desk_core.tenants.models import Company, Team
from desk_core.tickets.models import Ticket, is_terminal_status
from desk_core.tickets.services import TicketService


def subscription_headers(subscription):
    """
    DRF test client requires HTTP_ prefix.
    """
    return {"HTTP_X_SUBSCRIPTION_ID": str(subscription.id)}


def _make_user(username: str, role: str):
    User = get_user_model()
    user = User.objects.create_user(username=username, password="testpass", is_active=True)
    group, _ = Group.objects.get_or_create(name=role)
    user.groups.add(group)
    return user


@pytest.fixture
def company(db):
    return Company.objects.create(code="acme", name="Acme")


@pytest.fixture
def other_company(db):
    return Company.objects.create(code="globex", name="Globex")


@pytest.fixture
def team(db):
    return Team.objects.create(code="support", name="Support")


@pytest.fixture
def other_team(db):
    return Team.objects.create(code="billing", name="Billing")


@pytest.fixture
def plan(db):
    return SubscriptionPlan.objects.create(
        name="Professional",
        slug="professional",
        active_ticket_limit=-1,
        completed_ticket_limit=100,
        total_ticket_limit=-1,
    )


@pytest.fixture
def unlimited_plan(db):
    return SubscriptionPlan.objects.create(name="Enterprise", slug="enterprise")


@pytest.fixture
def subscription(company, plan):
    return Subscription.objects.create(company=company, plan=plan)


@pytest.fixture
def admin_user(db):
    return _make_user("admin", ROLE_ADMIN)


@pytest.fixture
def lead_user(db):
    return _make_user("lead", ROLE_TEAM_LEAD)


@pytest.fixture
def agent_user(db, team):
    user = _make_user("agent", ROLE_AGENT)
    TeamMembership.objects.create(user_id=user.id, team=team)
    return user


@pytest.fixture
def customer_user(db, company):
    user = _make_user("customer", ROLE_CUSTOMER)
    CompanyMembership.objects.create(user_id=user.id, company=company, is_primary=True)
    return user


@pytest.fixture
def outsider_user(db, other_company):
    user = _make_user("outsider", ROLE_CUSTOMER)
    CompanyMembership.objects.create(user_id=user.id, company=other_company, is_primary=True)
    return user


@pytest.fixture
def admin_actor(admin_user):
    return Actor(user_id=admin_user.id, role=ROLE_ADMIN)


@pytest.fixture
def customer_actor(customer_user):
    return Actor(user_id=customer_user.id, role=ROLE_CUSTOMER)


@pytest.fixture
def agent_actor(agent_user):
    return Actor(user_id=agent_user.id, role=ROLE_AGENT)


@pytest.fixture
def outsider_actor(outsider_user):
    return Actor(user_id=outsider_user.id, role=ROLE_CUSTOMER)


@pytest.fixture
def make_ticket(subscription, company, customer_user):
    """
    Create a ticket through TicketService so its usage events are recorded.
    `completed_days_ago` backdates resolved_at/updated_at of terminal tickets.
    """
    def _make(
        *,
        status="open",
        company_obj=None,
        team=None,
        assigned_to_id=None,
        completed_days_ago=None,
        title="Printer on fire",
    ):
        owner = company_obj or company
        ticket = TicketService.create_ticket(
            company_id=owner.id,
            title=title,
            submitter_id=customer_user.id,
            team_id=team.id if team else None,
            assigned_to_id=assigned_to_id,
            enforce_limits=False,
        )
        if status != "open":
            TicketService.change_status(
                ticket_id=ticket.id, status=status, actor=system_actor(), enforce_limits=False
            )
        if completed_days_ago is not None and is_terminal_status(status):
            past = now() - timedelta(days=completed_days_ago)
            Ticket.objects.filter(id=ticket.id).update(resolved_at=past, updated_at=past)

        ticket.refresh_from_db()
        return ticket

    return _make


@pytest.fixture
def client_for():
    def _client(user):
        c = APIClient()
        c.force_authenticate(user=user)
        return c

    return _client


@pytest.fixture
def api_client(admin_user, client_for):
    return client_for(admin_user)
