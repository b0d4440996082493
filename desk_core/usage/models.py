# desk_core/usage/models.py
from django.core.exceptions import ValidationError
from django.db import models

from desk_core.subscriptions.models import Subscription


class UsageAction(models.TextChoices):
    CREATED = "created", "Created"
    COMPLETED = "completed", "Completed"
    ARCHIVED = "archived", "Archived"
    RESTORED = "restored", "Restored"
    DELETED = "deleted", "Deleted"


class UsageEvent(models.Model):
    """
    Append-only lifecycle stream per ticket per subscription.
    Usage counts must ONLY be derived from this table.

    Ordering contract: (timestamp, id). The autoincrement id is the
    insertion-order tiebreak for identical timestamps.
    """
    id = models.BigAutoField(primary_key=True)

    # Plain UUIDs: history outlives the ticket row
    subscription_id = models.UUIDField(db_index=True)
    ticket_id = models.UUIDField(db_index=True)

    action = models.CharField(max_length=16, choices=UsageAction.choices, db_index=True)
    previous_status = models.CharField(max_length=32, null=True, blank=True)
    new_status = models.CharField(max_length=32, null=True, blank=True)

    timestamp = models.DateTimeField(db_index=True)
    metadata = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "usage_event"
        ordering = ["timestamp", "id"]
        indexes = [
            models.Index(fields=["subscription_id", "timestamp", "id"]),
            models.Index(fields=["subscription_id", "ticket_id", "timestamp", "id"]),
        ]

    def __str__(self):
        return f"{self.action} {self.ticket_id} @ {self.timestamp}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("UsageEvent is immutable and cannot be modified once created.")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("UsageEvent is immutable and cannot be deleted.")


class UsageSummary(models.Model):
    """
    Materialized per-month snapshot. One row per (subscription, period).
    """
    id = models.BigAutoField(primary_key=True)

    subscription = models.ForeignKey(Subscription, on_delete=models.CASCADE, related_name="usage_summaries")
    period = models.CharField(max_length=7, db_index=True)  # YYYY-MM

    active_count = models.PositiveIntegerField(default=0)
    completed_count = models.PositiveIntegerField(default=0)
    total_count = models.PositiveIntegerField(default=0)
    archived_count = models.PositiveIntegerField(default=0)

    last_updated = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "usage_summary"
        ordering = ["-period"]
        constraints = [
            models.UniqueConstraint(fields=["subscription", "period"], name="uq_usage_summary_period"),
        ]

    def __str__(self):
        return f"UsageSummary({self.subscription_id}, {self.period})"
