# desk_core/common/permissions.py

from __future__ import annotations

from typing import Set

from rest_framework.permissions import BasePermission, SAFE_METHODS

# Group/role names (Django auth Group names)
ROLE_ADMIN = "ADMIN"
ROLE_TEAM_LEAD = "TEAM_LEAD"
ROLE_AGENT = "AGENT"
ROLE_CUSTOMER = "CUSTOMER"

ALL_ROLES = (ROLE_ADMIN, ROLE_TEAM_LEAD, ROLE_AGENT, ROLE_CUSTOMER)

# Most privileged first; used to pick the single role an actor operates under.
ROLE_PRECEDENCE = (ROLE_ADMIN, ROLE_TEAM_LEAD, ROLE_AGENT, ROLE_CUSTOMER)


def user_roles(user) -> Set[str]:
    """
    Resolve roles from:
    1) superuser flag (treated as ADMIN)
    2) Django groups: user.groups
    3) optional user.role attribute

    Authenticated users without any role are treated as CUSTOMER.
    """
    roles: Set[str] = set()

    if not user or not getattr(user, "is_authenticated", False):
        return roles

    if getattr(user, "is_superuser", False):
        roles.add(ROLE_ADMIN)
        return roles

    if hasattr(user, "groups"):
        roles.update(user.groups.values_list("name", flat=True))

    if hasattr(user, "role") and user.role:
        roles.add(str(user.role).upper())

    if not roles:
        roles.add(ROLE_CUSTOMER)

    return roles


def primary_role(user) -> str | None:
    roles = user_roles(user)
    for role in ROLE_PRECEDENCE:
        if role in roles:
            return role
    return None


class BaseRolePermission(BasePermission):
    """
    Role-based access per viewset action.

    - ADMIN bypass.
    - allowed_roles_per_action maps action -> allowed roles.
    - Unknown SAFE actions fall back to "list"; unknown writes are denied.
    Object-level scope (company/team) is enforced by the service layer.
    """
    message = "You do not have permission to perform this action."

    allowed_roles_per_action: dict[str, set[str]] = {
        "list": set(ALL_ROLES),
        "retrieve": set(ALL_ROLES),
    }

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not user or not getattr(user, "is_authenticated", False):
            return False

        roles = user_roles(user)
        if ROLE_ADMIN in roles:
            return True

        action = getattr(view, "action", None)
        allowed = self.allowed_roles_per_action.get(action)

        if allowed is None and request.method in SAFE_METHODS:
            allowed = self.allowed_roles_per_action.get("list")

        if allowed is not None:
            return bool(roles & allowed)

        return False
