# desk_core/tickets/services.py

from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils.timezone import now

from desk_core.common.exceptions import InvalidTransition, NotFound
from desk_core.iam.actors import Actor
from desk_core.subscriptions.selectors import SubscriptionSelectors
from desk_core.tickets.models import Ticket, TicketHistory, TicketStatus, is_terminal_status
from desk_core.usage.limits import UsageLimitService
from desk_core.usage.models import UsageAction
from desk_core.usage.services import UsageEventLog

logger = logging.getLogger(__name__)


class TicketService:
    """
    Minimal ticket write-model. Its job here is to mirror lifecycle changes
    into the usage event log:
      - create          -> created
      - enter terminal  -> completed
      - leave terminal  -> created (reopened)
      - delete          -> deleted
    """

    @staticmethod
    def _get_for_update(ticket_id: UUID) -> Ticket:
        try:
            return Ticket.objects.select_for_update().get(id=ticket_id)
        except (Ticket.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFound("Ticket not found.")

    @staticmethod
    @transaction.atomic
    def create_ticket(
        *,
        company_id: UUID,
        title: str,
        submitter_id: int,
        description: str = "",
        team_id: Optional[UUID] = None,
        assigned_to_id: Optional[int] = None,
        enforce_limits: bool = True,
    ) -> Ticket:
        if enforce_limits:
            subscription = SubscriptionSelectors.live_for_company(company_id)
            if subscription is not None and not UsageLimitService.can_create_ticket(subscription=subscription):
                raise InvalidTransition("Ticket limit reached for this subscription.")

        ticket = Ticket.objects.create(
            company_id=company_id,
            team_id=team_id,
            title=title,
            description=description,
            submitter_id=submitter_id,
            assigned_to_id=assigned_to_id,
            status=TicketStatus.OPEN,
        )
        TicketHistory.objects.create(ticket=ticket, actor_user_id=submitter_id, action="created")
        UsageEventLog.record_for_ticket(ticket=ticket, action=UsageAction.CREATED, new_status=ticket.status)
        return ticket

    @staticmethod
    @transaction.atomic
    def change_status(*, ticket_id: UUID, status: str, actor: Actor, enforce_limits: bool = True) -> Ticket:
        if status not in TicketStatus.values:
            raise InvalidTransition(f"Unknown ticket status '{status}'.")

        ticket = TicketService._get_for_update(ticket_id)
        if ticket.archived_at is not None:
            raise InvalidTransition("Archived tickets must be restored before changing status.")

        previous = ticket.status
        if previous == status:
            return ticket

        entering_terminal = is_terminal_status(status) and not is_terminal_status(previous)
        leaving_terminal = is_terminal_status(previous) and not is_terminal_status(status)

        if entering_terminal and enforce_limits:
            subscription = SubscriptionSelectors.live_for_company(ticket.company_id)
            if subscription is not None and not UsageLimitService.can_complete_ticket(subscription=subscription):
                raise InvalidTransition("Completed ticket limit reached for this subscription.")

        ticket.status = status
        update_fields = ["status", "updated_at"]
        if status == TicketStatus.RESOLVED and ticket.resolved_at is None:
            ticket.resolved_at = now()
            update_fields.append("resolved_at")
        if status == TicketStatus.CLOSED and ticket.closed_at is None:
            ticket.closed_at = now()
            update_fields.append("closed_at")
        ticket.save(update_fields=update_fields)

        TicketHistory.objects.create(
            ticket=ticket,
            actor_user_id=actor.user_id,
            action="status_changed",
            meta={"from": previous, "to": status},
        )

        if entering_terminal:
            UsageEventLog.record_for_ticket(
                ticket=ticket, action=UsageAction.COMPLETED, previous_status=previous, new_status=status
            )
        elif leaving_terminal:
            UsageEventLog.record_for_ticket(
                ticket=ticket, action=UsageAction.CREATED, previous_status=previous, new_status=status
            )

        return ticket

    @staticmethod
    @transaction.atomic
    def delete_ticket(*, ticket_id: UUID, actor: Actor) -> None:
        """
        Remove the ticket row. Its usage history is kept and ends with `deleted`.
        """
        ticket = TicketService._get_for_update(ticket_id)
        UsageEventLog.record_for_ticket(
            ticket=ticket,
            action=UsageAction.DELETED,
            previous_status=ticket.status,
            metadata={"deleted_by": actor.user_id},
        )
        ticket.delete()
        logger.info("Ticket %s deleted by %s", ticket_id, actor.user_id)

    @staticmethod
    @transaction.atomic
    def purge_ticket(*, ticket_id: UUID, actor: Actor) -> int:
        """
        Hard delete: the ticket row (if still present) and every usage event for it.
        """
        Ticket.objects.filter(id=ticket_id).delete()
        purged = UsageEventLog.purge(ticket_id=ticket_id)
        logger.info("Ticket %s purged by %s (%s usage events)", ticket_id, actor.user_id, purged)
        return purged
