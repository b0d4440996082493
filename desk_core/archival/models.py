# desk_core/archival/models.py
import uuid

from django.db import models

from desk_core.common.models import TimeStampedModel
from desk_core.subscriptions.models import Subscription


class ArchivalConfig(TimeStampedModel):
    """
    Per-subscription automation settings. Created lazily from
    settings.ARCHIVAL_AUTOMATION["DEFAULTS"].
    """
    subscription = models.OneToOneField(
        Subscription,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="archival_config",
    )

    enabled = models.BooleanField(default=True)
    days_after_completion = models.PositiveIntegerField(default=30)
    max_tickets_per_run = models.PositiveIntegerField(default=100)
    only_when_approaching_limits = models.BooleanField(default=True)
    limit_threshold_percent = models.PositiveSmallIntegerField(default=80)

    class Meta:
        db_table = "archival_config"

    def __str__(self) -> str:
        return f"ArchivalConfig({self.subscription_id}, enabled={self.enabled})"


class RunTrigger(models.TextChoices):
    SCHEDULED = "scheduled", "Scheduled"
    MANUAL = "manual", "Manual"


class AutomationRun(models.Model):
    """
    Outcome of one automation pass. `errors` counts subscriptions that reported
    at least one error; details live in subscription_results.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    trigger = models.CharField(max_length=16, choices=RunTrigger.choices, default=RunTrigger.SCHEDULED)

    processed_subscriptions = models.PositiveIntegerField(default=0)
    total_tickets_archived = models.PositiveIntegerField(default=0)
    errors = models.PositiveIntegerField(default=0)

    # [{subscription_id, tickets_archived, skipped, errors: [...]}]
    subscription_results = models.JSONField(default=list, blank=True)

    started_at = models.DateTimeField(db_index=True)
    finished_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "archival_run"
        ordering = ["-started_at"]

    def __str__(self) -> str:
        return f"AutomationRun({self.trigger}, {self.started_at})"

    @property
    def is_finished(self) -> bool:
        return self.finished_at is not None


class ArchivalRunLock(models.Model):
    """
    At most one automation pass per subscription. Acquired by insert
    (unique subscription); rows past expires_at may be reclaimed.
    """
    subscription = models.OneToOneField(
        Subscription,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="archival_lock",
    )
    owner = models.CharField(max_length=64)
    acquired_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField(db_index=True)

    class Meta:
        db_table = "archival_run_lock"

    def __str__(self) -> str:
        return f"ArchivalRunLock({self.subscription_id}, {self.owner})"
