# desk_core/tickets/models.py
import uuid

from django.db import models

from desk_core.common.models import UUIDModel
from desk_core.tenants.models import Company, Team


class TicketStatus(models.TextChoices):
    OPEN = "open", "Open"
    IN_PROGRESS = "in_progress", "In Progress"
    WAITING = "waiting", "Waiting on Customer"
    RESOLVED = "resolved", "Resolved"
    CLOSED = "closed", "Closed"
    COMPLETED = "completed", "Completed"


# Terminal workflow statuses. Only these may be archived.
ARCHIVABLE_STATUSES = frozenset({"resolved", "closed", "completed"})


def is_terminal_status(status) -> bool:
    return bool(status) and str(status).lower() in ARCHIVABLE_STATUSES


class Ticket(UUIDModel):
    """
    Support ticket. Archival is a soft state carried by archived_at.
    """
    company = models.ForeignKey(Company, on_delete=models.PROTECT, related_name="tickets")
    team = models.ForeignKey(Team, on_delete=models.SET_NULL, related_name="tickets", null=True, blank=True)

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")

    status = models.CharField(
        max_length=32,
        choices=TicketStatus.choices,
        default=TicketStatus.OPEN,
        db_index=True,
    )

    submitter_id = models.BigIntegerField(db_index=True)
    assigned_to_id = models.BigIntegerField(null=True, blank=True, db_index=True)

    resolved_at = models.DateTimeField(null=True, blank=True)
    closed_at = models.DateTimeField(null=True, blank=True)
    archived_at = models.DateTimeField(null=True, blank=True, db_index=True)

    class Meta:
        db_table = "tickets_ticket"
        indexes = [
            models.Index(fields=["company", "status", "archived_at"]),
            models.Index(fields=["team", "status", "archived_at"]),
            models.Index(fields=["status", "archived_at", "updated_at"]),
        ]

    def __str__(self) -> str:
        return f"Ticket({self.id}, {self.status})"

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    @property
    def completed_at(self):
        """Best-known completion time: resolved_at, then closed_at, then updated_at."""
        return self.resolved_at or self.closed_at or self.updated_at


class TicketHistory(models.Model):
    """
    Human-facing audit trail of ticket actions (archived, restored, status_changed, ...).
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    ticket = models.ForeignKey(Ticket, on_delete=models.CASCADE, related_name="history")
    actor_user_id = models.BigIntegerField(null=True, blank=True)

    action = models.CharField(max_length=64, db_index=True)
    meta = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = "tickets_history"
        ordering = ["created_at"]

    def __str__(self) -> str:
        return f"{self.action} @ {self.created_at}"
