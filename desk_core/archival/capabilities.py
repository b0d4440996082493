# desk_core/archival/capabilities.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from desk_core.common.exceptions import Forbidden
from desk_core.iam.actors import Actor
from desk_core.iam.services.membership import is_company_member, is_team_member


@dataclass(frozen=True)
class Capabilities:
    can_archive: bool = False
    can_restore: bool = False
    can_view_summary: bool = False
    can_configure_automation: bool = False


def _has_ticket_scope(actor: Actor, ticket) -> bool:
    if actor.is_unrestricted:
        return True
    if actor.user_id is not None and ticket.assigned_to_id == actor.user_id:
        return True
    if actor.is_customer:
        return is_company_member(user_id=actor.user_id, company_id=ticket.company_id)
    if actor.is_agent:
        return is_team_member(user_id=actor.user_id, team_id=ticket.team_id)
    return False


def _has_subscription_scope(actor: Actor, subscription) -> bool:
    if actor.is_unrestricted or actor.is_agent:
        return True
    if actor.is_customer:
        return is_company_member(user_id=actor.user_id, company_id=subscription.company_id)
    return False


def resolve_capabilities(actor: Actor, *, ticket=None, subscription=None) -> Capabilities:
    """
    Single place where role + scope turn into what an actor may do.

    Ticket-level: admins/team leads always; the assignee; a customer of the
    owning company; an agent on the owning team.
    Subscription-level: staff may view usage; customers only their own company's.
    Automation configuration is admin only.
    """
    on_ticket = ticket is not None and _has_ticket_scope(actor, ticket)
    on_subscription = subscription is not None and _has_subscription_scope(actor, subscription)

    return Capabilities(
        can_archive=on_ticket,
        can_restore=on_ticket,
        can_view_summary=on_subscription,
        can_configure_automation=actor.is_admin and (subscription is None or on_subscription),
    )


def require(allowed: bool, message: str = "Access denied.") -> None:
    if not allowed:
        raise Forbidden(message)
