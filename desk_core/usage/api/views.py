# desk_core/usage/api/views.py
from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from desk_core.archival.capabilities import require, resolve_capabilities
from desk_core.common.api.scope import subscription_for_request
from desk_core.common.exceptions import NotFound
from desk_core.common.permissions import ALL_ROLES, ROLE_ADMIN, ROLE_TEAM_LEAD, BaseRolePermission
from desk_core.iam.actors import actor_from_user
from desk_core.tickets.models import Ticket
from desk_core.tickets.selectors import TicketSelectors
from desk_core.usage.api.serializers import (
    ActivityParamsSerializer,
    SummaryListParamsSerializer,
    SummaryRefreshSerializer,
    UsageEventSerializer,
    UsageSummarySerializer,
)
from desk_core.usage.limits import UsageLimitService
from desk_core.usage.selectors import UsageEventSelectors
from desk_core.usage.summaries import UsageSummaryService


class UsagePermission(BaseRolePermission):
    allowed_roles_per_action = {
        "current": set(ALL_ROLES),
        "summaries": set(ALL_ROLES),
        "activity": set(ALL_ROLES),
        "refresh_summary": {ROLE_ADMIN, ROLE_TEAM_LEAD},
        "list": set(ALL_ROLES),
    }


class UsageViewSet(viewsets.ViewSet):
    permission_classes = [UsagePermission]

    def _subscription(self, request):
        subscription = subscription_for_request(request)
        caps = resolve_capabilities(actor_from_user(request.user), subscription=subscription)
        require(caps.can_view_summary, "Access denied to subscription.")
        return subscription

    @action(detail=False, methods=["get"])
    def current(self, request):
        subscription = self._subscription(request)
        status_ = UsageLimitService.limit_status(subscription=subscription)

        data = status_.as_dict()
        data["subscription_id"] = str(subscription.id)
        data["plan"] = subscription.plan.name
        data["can_create_ticket"] = UsageLimitService.can_create_ticket(subscription=subscription)
        data["can_complete_ticket"] = UsageLimitService.can_complete_ticket(subscription=subscription)
        return Response(data)

    @extend_schema(parameters=[SummaryListParamsSerializer], responses=UsageSummarySerializer(many=True))
    @action(detail=False, methods=["get"])
    def summaries(self, request):
        p = SummaryListParamsSerializer(data=request.query_params)
        p.is_valid(raise_exception=True)

        subscription = self._subscription(request)
        rows = UsageSummaryService.list(subscription_id=subscription.id, limit=p.validated_data["limit"])
        return Response(UsageSummarySerializer(rows, many=True).data)

    @extend_schema(request=SummaryRefreshSerializer, responses=UsageSummarySerializer)
    @action(detail=False, methods=["post"], url_path="summaries/refresh")
    def refresh_summary(self, request):
        s = SummaryRefreshSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        subscription = self._subscription(request)
        summary = UsageSummaryService.refresh(subscription_id=subscription.id, period=s.validated_data.get("period"))
        return Response(UsageSummarySerializer(summary).data, status=status.HTTP_200_OK)

    @extend_schema(parameters=[ActivityParamsSerializer], responses=UsageEventSerializer(many=True))
    @action(detail=False, methods=["get"])
    def activity(self, request):
        p = ActivityParamsSerializer(data=request.query_params)
        p.is_valid(raise_exception=True)

        subscription = self._subscription(request)
        events = UsageEventSelectors.recent_activity(subscription_id=subscription.id, limit=p.validated_data["limit"])
        return Response(UsageEventSerializer(events, many=True).data)


class TicketUsageHistoryView(APIView):
    """
    Usage events of one ticket, oldest first. History of a deleted ticket is
    visible to admins and team leads only.
    """

    permission_classes = [UsagePermission]

    @extend_schema(responses=UsageEventSerializer(many=True))
    def get(self, request, ticket_id):
        actor = actor_from_user(request.user)

        if not actor.is_unrestricted:
            visible = TicketSelectors.visible_to(actor, Ticket.objects.filter(id=ticket_id)).exists()
            if not visible:
                raise NotFound("Ticket not found.")

        events = UsageEventSelectors.ticket_history(ticket_id=ticket_id)
        return Response(UsageEventSerializer(events, many=True).data)
