# desk_core/subscriptions/models.py
import uuid
from django.db import models
from django.db.models import Q

from desk_core.common.models import UUIDModel
from desk_core.tenants.models import Company

UNLIMITED = -1


class SubscriptionPlan(UUIDModel):
    """
    Plan tier. Ticket limits use -1 for "unlimited".
    """
    name = models.CharField(max_length=128, unique=True)
    slug = models.SlugField(max_length=64, unique=True)

    active_ticket_limit = models.IntegerField(default=UNLIMITED)
    completed_ticket_limit = models.IntegerField(default=UNLIMITED)
    total_ticket_limit = models.IntegerField(default=UNLIMITED)

    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "subscriptions_plan"

    def __str__(self) -> str:
        return self.name

    @property
    def is_unlimited(self) -> bool:
        return (
            self.active_ticket_limit == UNLIMITED
            and self.completed_ticket_limit == UNLIMITED
            and self.total_ticket_limit == UNLIMITED
        )


class SubscriptionStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    TRIAL = "trial", "Trial"
    CANCELLED = "cancelled", "Cancelled"
    PAST_DUE = "past_due", "Past due"
    SUSPENDED = "suspended", "Suspended"


LIVE_STATUSES = (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIAL)


class Subscription(UUIDModel):
    """
    A company's subscription to a plan. Usage is accounted per subscription.
    """
    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="subscriptions")
    plan = models.ForeignKey(SubscriptionPlan, on_delete=models.PROTECT, related_name="subscriptions")

    status = models.CharField(
        max_length=16,
        choices=SubscriptionStatus.choices,
        default=SubscriptionStatus.ACTIVE,
        db_index=True,
    )

    class Meta:
        db_table = "subscriptions_subscription"
        constraints = [
            # One live subscription per company
            models.UniqueConstraint(
                fields=["company"],
                condition=Q(status__in=["active", "trial"]),
                name="uq_live_subscription_per_company",
            ),
        ]

    def __str__(self) -> str:
        return f"Subscription({self.company_id}, {self.plan_id}, {self.status})"
