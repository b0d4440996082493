# desk_core/iam/services/membership.py
from __future__ import annotations

from uuid import UUID

from desk_core.iam.models import CompanyMembership, TeamMembership


def company_ids_for_user(user_id: int | None) -> list[UUID]:
    """
    Active company memberships, primary company first.
    """
    if user_id is None:
        return []
    return list(
        CompanyMembership.objects.filter(user_id=user_id, is_active=True)
        .order_by("-is_primary", "created_at")
        .values_list("company_id", flat=True)
    )


def team_ids_for_user(user_id: int | None) -> list[UUID]:
    if user_id is None:
        return []
    return list(
        TeamMembership.objects.filter(user_id=user_id, is_active=True)
        .order_by("created_at")
        .values_list("team_id", flat=True)
    )


def is_company_member(*, user_id: int | None, company_id: UUID) -> bool:
    if user_id is None:
        return False
    return CompanyMembership.objects.filter(user_id=user_id, company_id=company_id, is_active=True).exists()


def is_team_member(*, user_id: int | None, team_id: UUID | None) -> bool:
    if user_id is None or team_id is None:
        return False
    return TeamMembership.objects.filter(user_id=user_id, team_id=team_id, is_active=True).exists()
