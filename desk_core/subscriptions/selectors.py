# desk_core/subscriptions/selectors.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import QuerySet

from desk_core.common.exceptions import NotFound
from desk_core.subscriptions.models import LIVE_STATUSES, Subscription


class SubscriptionSelectors:
    @staticmethod
    def get(subscription_id: UUID) -> Subscription:
        try:
            return Subscription.objects.select_related("plan", "company").get(id=subscription_id)
        except (Subscription.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFound("Subscription not found.")

    @staticmethod
    def live_for_company(company_id: UUID) -> Optional[Subscription]:
        return (
            Subscription.objects.select_related("plan")
            .filter(company_id=company_id, status__in=LIVE_STATUSES)
            .first()
        )

    @staticmethod
    def live() -> QuerySet[Subscription]:
        return (
            Subscription.objects.select_related("plan", "company")
            .filter(status__in=LIVE_STATUSES)
            .order_by("created_at", "id")
        )
