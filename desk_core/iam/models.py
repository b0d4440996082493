# desk_core/iam/models.py
import uuid
from django.db import models

from desk_core.tenants.models import Company, Team


class CompanyMembership(models.Model):
    """
    Links a user (customer or company admin) to a Company.
    Customers only see and act on tickets of companies they belong to.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user_id = models.BigIntegerField(db_index=True)
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="memberships")

    is_primary = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = "iam_company_membership"
        constraints = [
            models.UniqueConstraint(fields=["company", "user_id"], name="uq_company_user_membership"),
        ]
        indexes = [
            models.Index(fields=["user_id", "is_active"]),
        ]


class TeamMembership(models.Model):
    """
    Links an agent to a Team. Agents act on tickets routed to their teams.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user_id = models.BigIntegerField(db_index=True)
    team = models.ForeignKey(Team, on_delete=models.CASCADE, related_name="memberships")

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = "iam_team_membership"
        constraints = [
            models.UniqueConstraint(fields=["team", "user_id"], name="uq_team_user_membership"),
        ]
        indexes = [
            models.Index(fields=["user_id", "is_active"]),
        ]
