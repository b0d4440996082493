# desk_core/tickets/selectors.py
from __future__ import annotations

from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Q, QuerySet

from desk_core.common.exceptions import NotFound
from desk_core.iam.actors import Actor
from desk_core.iam.services.membership import company_ids_for_user, team_ids_for_user
from desk_core.tickets.models import Ticket


class TicketSelectors:
    @staticmethod
    def get(ticket_id: UUID) -> Ticket:
        try:
            return Ticket.objects.select_related("company", "team").get(id=ticket_id)
        except (Ticket.DoesNotExist, ValueError, DjangoValidationError):
            raise NotFound("Ticket not found.")

    @staticmethod
    def visible_to(actor: Actor, qs: QuerySet[Ticket] | None = None) -> QuerySet[Ticket]:
        """
        Visibility scope:
          - admin / team lead: everything
          - customer: tickets of own companies
          - agent: tickets of own teams, plus tickets assigned to them
        """
        qs = Ticket.objects.all() if qs is None else qs

        if actor.is_unrestricted:
            return qs
        if actor.is_customer:
            return qs.filter(company_id__in=company_ids_for_user(actor.user_id))
        if actor.is_agent:
            return qs.filter(Q(team_id__in=team_ids_for_user(actor.user_id)) | Q(assigned_to_id=actor.user_id))
        return qs.none()
