# desk_core/iam/actors.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from django.conf import settings

from desk_core.common.permissions import (
    ROLE_ADMIN,
    ROLE_AGENT,
    ROLE_CUSTOMER,
    ROLE_TEAM_LEAD,
    primary_role,
)


@dataclass(frozen=True)
class Actor:
    """
    Who is performing an operation: a user id plus the single role it acts under.
    """
    user_id: Optional[int]
    role: str
    is_system: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_team_lead(self) -> bool:
        return self.role == ROLE_TEAM_LEAD

    @property
    def is_agent(self) -> bool:
        return self.role == ROLE_AGENT

    @property
    def is_customer(self) -> bool:
        return self.role == ROLE_CUSTOMER

    @property
    def is_unrestricted(self) -> bool:
        """Admins and team leads see every ticket."""
        return self.role in {ROLE_ADMIN, ROLE_TEAM_LEAD}


def actor_from_user(user) -> Actor:
    return Actor(user_id=getattr(user, "id", None), role=primary_role(user) or ROLE_CUSTOMER)


def system_actor() -> Actor:
    """
    Actor used by automated archival runs.
    """
    cfg = getattr(settings, "ARCHIVAL_AUTOMATION", {}) or {}
    return Actor(user_id=cfg.get("SYSTEM_ACTOR_ID"), role=ROLE_ADMIN, is_system=True)
