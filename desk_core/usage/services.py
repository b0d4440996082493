# desk_core/usage/services.py

from __future__ import annotations

import logging
from typing import Any, Optional
from uuid import UUID

from django.db import DatabaseError, transaction
from django.utils.timezone import now

from desk_core.common.exceptions import InvalidTransition, PersistenceError
from desk_core.subscriptions.selectors import SubscriptionSelectors
from desk_core.usage.models import UsageAction, UsageEvent

logger = logging.getLogger(__name__)


class UsageEventLog:
    """
    Write side of the usage event log.

    Notes:
    - append() only checks that the action is known; callers own the lifecycle rules.
    - Writes happen immediately inside the caller's transaction, so a rolled back
      transition never leaves an orphan event.
    - purge() is the only removal path and is used on hard ticket deletion.
    """

    @staticmethod
    def append(
        *,
        subscription_id: UUID,
        ticket_id: UUID,
        action: str,
        previous_status: Optional[str] = None,
        new_status: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        timestamp=None,
    ) -> UsageEvent:
        if action not in UsageAction.values:
            raise InvalidTransition(f"Unknown usage action '{action}'.")

        try:
            with transaction.atomic():
                return UsageEvent.objects.create(
                    subscription_id=subscription_id,
                    ticket_id=ticket_id,
                    action=action,
                    previous_status=previous_status,
                    new_status=new_status,
                    timestamp=timestamp or now(),
                    metadata=metadata or {},
                )
        except DatabaseError as exc:
            logger.error("Usage event write failed (%s, ticket=%s): %s", action, ticket_id, exc)
            raise PersistenceError("Failed to record usage event.", details={"ticket_id": str(ticket_id)}) from exc

    @staticmethod
    def record_for_ticket(
        *,
        ticket,
        action: str,
        previous_status: Optional[str] = None,
        new_status: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
        timestamp=None,
    ) -> Optional[UsageEvent]:
        """
        Append an event against the live subscription of the ticket's company.
        Tickets of companies without a live subscription are not accounted.
        """
        subscription = SubscriptionSelectors.live_for_company(ticket.company_id)
        if subscription is None:
            logger.warning("No live subscription for company %s; %s event not recorded", ticket.company_id, action)
            return None

        return UsageEventLog.append(
            subscription_id=subscription.id,
            ticket_id=ticket.id,
            action=action,
            previous_status=previous_status,
            new_status=new_status,
            metadata=metadata,
            timestamp=timestamp,
        )

    @staticmethod
    @transaction.atomic
    def purge(*, ticket_id: UUID) -> int:
        try:
            deleted, _ = UsageEvent.objects.filter(ticket_id=ticket_id).delete()
        except DatabaseError as exc:
            raise PersistenceError("Failed to purge usage events.", details={"ticket_id": str(ticket_id)}) from exc
        logger.info("Purged %s usage events for ticket %s", deleted, ticket_id)
        return deleted
