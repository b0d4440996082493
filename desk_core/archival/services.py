# desk_core/archival/services.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.utils.timezone import now

from desk_core.archival.capabilities import require, resolve_capabilities
from desk_core.common.exceptions import DomainError, InvalidTransition, NotFound
from desk_core.iam.actors import Actor
from desk_core.tickets.models import Ticket, TicketHistory, is_terminal_status
from desk_core.usage.models import UsageAction
from desk_core.usage.services import UsageEventLog

logger = logging.getLogger(__name__)


@dataclass
class BulkArchivalResult:
    total_processed: int = 0
    successful: list[str] = field(default_factory=list)
    failed: list[dict[str, str]] = field(default_factory=list)

    @property
    def archived_count(self) -> int:
        return len(self.successful)

    def as_dict(self) -> dict[str, Any]:
        return {
            "total_processed": self.total_processed,
            "archived_count": self.archived_count,
            "successful": list(self.successful),
            "failed": list(self.failed),
        }


class ArchivalService:
    """
    Archive/restore state machine.

    Active (archived_at is NULL) <-> Archived (archived_at set).

    Every transition is one transaction: the ticket row is locked, the guards are
    checked, and the write is conditional on the current archived_at, so a manual
    archive racing an automation run cannot both succeed. The ticket history row
    and the usage event are written in the same transaction.
    """

    @staticmethod
    def _lock_ticket(ticket_id: UUID) -> Ticket:
        try:
            return Ticket.objects.select_for_update().get(id=ticket_id)
        except (Ticket.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFound("Ticket not found.", details={"ticket_id": str(ticket_id)})

    @staticmethod
    @transaction.atomic
    def archive(*, ticket_id: UUID, actor: Actor) -> Ticket:
        ticket = ArchivalService._lock_ticket(ticket_id)

        require(resolve_capabilities(actor, ticket=ticket).can_archive, "Access denied to ticket.")

        if not is_terminal_status(ticket.status):
            raise InvalidTransition(
                f"cannot archive ticket with status '{ticket.status}'. "
                "Only resolved, closed or completed tickets can be archived."
            )
        if ticket.archived_at is not None:
            raise InvalidTransition("cannot archive: ticket is already archived.")

        ts = now()
        updated = Ticket.objects.filter(id=ticket.id, archived_at__isnull=True).update(archived_at=ts)
        if updated != 1:
            raise InvalidTransition("cannot archive: ticket is already archived.")
        ticket.archived_at = ts

        TicketHistory.objects.create(
            ticket=ticket,
            actor_user_id=actor.user_id,
            action="archived",
            meta={"previous_status": ticket.status, "automated": actor.is_system},
        )
        UsageEventLog.record_for_ticket(
            ticket=ticket,
            action=UsageAction.ARCHIVED,
            previous_status=ticket.status,
            new_status=ticket.status,
            timestamp=ts,
            metadata={"archived_by": actor.user_id, "automated": actor.is_system},
        )

        logger.info("Ticket %s archived by %s (status=%s)", ticket.id, actor.user_id, ticket.status)
        return ticket

    @staticmethod
    @transaction.atomic
    def restore(*, ticket_id: UUID, actor: Actor) -> Ticket:
        ticket = ArchivalService._lock_ticket(ticket_id)

        require(resolve_capabilities(actor, ticket=ticket).can_restore, "Access denied to ticket.")

        if ticket.archived_at is None:
            raise InvalidTransition("cannot restore: ticket is not archived.")

        updated = Ticket.objects.filter(id=ticket.id, archived_at__isnull=False).update(archived_at=None)
        if updated != 1:
            raise InvalidTransition("cannot restore: ticket is not archived.")
        ticket.archived_at = None

        TicketHistory.objects.create(
            ticket=ticket,
            actor_user_id=actor.user_id,
            action="restored",
            meta={"status": ticket.status},
        )
        UsageEventLog.record_for_ticket(
            ticket=ticket,
            action=UsageAction.RESTORED,
            previous_status=ticket.status,
            new_status=ticket.status,
            metadata={"restored_by": actor.user_id},
        )

        logger.info("Ticket %s restored by %s", ticket.id, actor.user_id)
        return ticket

    @staticmethod
    def bulk_archive(*, ticket_ids: Iterable[UUID], actor: Actor) -> BulkArchivalResult:
        """
        Archive each id independently. A failure is recorded and the loop goes on.
        """
        ticket_ids = list(ticket_ids)
        result = BulkArchivalResult(total_processed=len(ticket_ids))

        for ticket_id in ticket_ids:
            try:
                ArchivalService.archive(ticket_id=ticket_id, actor=actor)
            except DomainError as exc:
                result.failed.append({"ticket_id": str(ticket_id), "error": exc.message})
            except DatabaseError as exc:
                logger.exception("Archive of ticket %s failed", ticket_id)
                result.failed.append({"ticket_id": str(ticket_id), "error": str(exc)})
            else:
                result.successful.append(str(ticket_id))

        logger.info(
            "Bulk archival by %s: processed=%s archived=%s failed=%s",
            actor.user_id,
            result.total_processed,
            result.archived_count,
            len(result.failed),
        )
        return result
