# desk_core/archival/selectors.py
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from django.db.models import Count, Max, Min, Q, QuerySet
from django.db.models.functions import Coalesce
from django.utils import timezone

from desk_core.iam.actors import Actor
from desk_core.tickets.models import ARCHIVABLE_STATUSES, Ticket
from desk_core.tickets.selectors import TicketSelectors


class ArchivalSelectors:
    @staticmethod
    def archivable_tickets(
        *,
        actor: Actor,
        subscription=None,
        limit: Optional[int] = 100,
        older_than_days: Optional[int] = None,
    ) -> QuerySet[Ticket]:
        """
        Terminal, not yet archived tickets visible to the actor, oldest updated_at first.
        Annotated with `completed_on` (resolved_at, closed_at, then updated_at).
        """
        qs = TicketSelectors.visible_to(
            actor,
            Ticket.objects.filter(status__in=ARCHIVABLE_STATUSES, archived_at__isnull=True),
        )
        if subscription is not None:
            qs = qs.filter(company_id=subscription.company_id)

        qs = qs.annotate(completed_on=Coalesce("resolved_at", "closed_at", "updated_at"))

        if older_than_days is not None:
            cutoff = timezone.now() - timedelta(days=older_than_days)
            qs = qs.filter(completed_on__lt=cutoff)

        qs = qs.order_by("updated_at", "id")
        if limit is not None:
            qs = qs[:limit]
        return qs

    @staticmethod
    def search_archived(
        *,
        actor: Actor,
        query: Optional[str] = None,
        statuses: Optional[Iterable[str]] = None,
        archived_from: Optional[datetime] = None,
        archived_to: Optional[datetime] = None,
    ) -> QuerySet[Ticket]:
        qs = TicketSelectors.visible_to(actor, Ticket.objects.filter(archived_at__isnull=False))

        if query:
            qs = qs.filter(Q(title__icontains=query) | Q(description__icontains=query))

        statuses = [s for s in (statuses or []) if s]
        if statuses:
            qs = qs.filter(status__in=statuses)

        if archived_from is not None:
            qs = qs.filter(archived_at__gte=archived_from)
        if archived_to is not None:
            qs = qs.filter(archived_at__lte=archived_to)

        return qs.order_by("-archived_at", "id")

    @staticmethod
    def archival_stats(*, actor: Actor) -> dict[str, Any]:
        qs = TicketSelectors.visible_to(actor, Ticket.objects.filter(archived_at__isnull=False))

        today = timezone.localtime()
        start_of_month = today.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        start_of_year = start_of_month.replace(month=1)

        agg = qs.aggregate(
            total_archived=Count("id"),
            archived_this_month=Count("id", filter=Q(archived_at__gte=start_of_month)),
            archived_this_year=Count("id", filter=Q(archived_at__gte=start_of_year)),
            oldest_archived=Min("archived_at"),
            newest_archived=Max("archived_at"),
        )
        return agg
