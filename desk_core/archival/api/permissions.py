# desk_core/archival/api/permissions.py
from __future__ import annotations

from desk_core.common.permissions import ALL_ROLES, ROLE_ADMIN, BaseRolePermission


class ArchivalPermission(BaseRolePermission):
    """
    Endpoint gate only. Per-ticket and per-subscription scope is decided by
    archival.capabilities inside the services.
    """

    allowed_roles_per_action = {
        "archive": set(ALL_ROLES),
        "restore": set(ALL_ROLES),
        "bulk_archive": set(ALL_ROLES),
        "suggestions": set(ALL_ROLES),
        "auto_suggestions": set(ALL_ROLES),
        "stats": set(ALL_ROLES),
        "archived": set(ALL_ROLES),
        "archivable": set(ALL_ROLES),
        "auto_config": set(ALL_ROLES),
        "automation_status": set(ALL_ROLES),
        "trigger_immediate": {ROLE_ADMIN},
        "run_automation": {ROLE_ADMIN},
    }
