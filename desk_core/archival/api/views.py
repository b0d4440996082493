# desk_core/archival/api/views.py
from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from desk_core.archival.api.permissions import ArchivalPermission
from desk_core.archival.api.serializers import (
    ArchivableTicketSerializer,
    ArchivalConfigSerializer,
    ArchivalConfigUpdateSerializer,
    ArchivalSuggestionSerializer,
    ArchivalTicketSerializer,
    ArchivableParamsSerializer,
    ArchivedSearchParamsSerializer,
    AutomationRunSerializer,
    BulkArchiveRequestSerializer,
    BulkArchiveResultSerializer,
    SuggestionParamsSerializer,
    TriggerImmediateSerializer,
)
from desk_core.archival.automation import AutomationController
from desk_core.archival.capabilities import require, resolve_capabilities
from desk_core.archival.models import RunTrigger
from desk_core.archival.selectors import ArchivalSelectors
from desk_core.archival.services import ArchivalService
from desk_core.archival.suggestions import SuggestionEngine
from desk_core.common.api.pagination import paginate
from desk_core.common.api.scope import subscription_for_request
from desk_core.iam.actors import actor_from_user

SUBSCRIPTION_PARAM = OpenApiParameter(
    name="subscription_id",
    type=str,
    location=OpenApiParameter.QUERY,
    required=False,
    description="Defaults to the caller's company subscription.",
)


class TicketArchivalViewSet(viewsets.ViewSet):
    """
    Thin API layer over the archival state machine, suggestions and automation:
    - input validation via serializers
    - reads via selectors
    - writes via services (which enforce capabilities)
    """

    permission_classes = [ArchivalPermission]
    lookup_value_regex = r"[0-9a-fA-F-]{32,36}"

    # ----------------------------
    # State machine
    # ----------------------------
    @extend_schema(request=None, responses=ArchivalTicketSerializer)
    @action(detail=True, methods=["post"])
    def archive(self, request, pk=None):
        ticket = ArchivalService.archive(ticket_id=pk, actor=actor_from_user(request.user))
        return Response(ArchivalTicketSerializer(ticket).data, status=status.HTTP_200_OK)

    @extend_schema(request=None, responses=ArchivalTicketSerializer)
    @action(detail=True, methods=["post"])
    def restore(self, request, pk=None):
        ticket = ArchivalService.restore(ticket_id=pk, actor=actor_from_user(request.user))
        return Response(ArchivalTicketSerializer(ticket).data, status=status.HTTP_200_OK)

    @extend_schema(request=BulkArchiveRequestSerializer, responses=BulkArchiveResultSerializer)
    @action(detail=False, methods=["post"], url_path="archive/bulk")
    def bulk_archive(self, request):
        s = BulkArchiveRequestSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        result = ArchivalService.bulk_archive(
            ticket_ids=s.validated_data["ticket_ids"],
            actor=actor_from_user(request.user),
        )
        return Response(result.as_dict(), status=status.HTTP_200_OK)

    # ----------------------------
    # Suggestions
    # ----------------------------
    @extend_schema(
        parameters=[SUBSCRIPTION_PARAM, SuggestionParamsSerializer],
        responses=ArchivalSuggestionSerializer(many=True),
    )
    @action(detail=False, methods=["get"], url_path="archive/suggestions")
    def suggestions(self, request):
        p = SuggestionParamsSerializer(data=request.query_params)
        p.is_valid(raise_exception=True)

        subscription = subscription_for_request(request)
        items = SuggestionEngine.suggest_archival(
            subscription_id=subscription.id,
            actor=actor_from_user(request.user),
            limit=p.validated_data["limit"],
        )
        return Response(ArchivalSuggestionSerializer([i.as_dict() for i in items], many=True).data)

    @extend_schema(parameters=[SUBSCRIPTION_PARAM, SuggestionParamsSerializer])
    @action(detail=False, methods=["get"], url_path="archive/auto-suggestions")
    def auto_suggestions(self, request):
        p = SuggestionParamsSerializer(data=request.query_params)
        p.is_valid(raise_exception=True)

        subscription = subscription_for_request(request)
        overview = SuggestionEngine.archival_overview(
            subscription_id=subscription.id,
            actor=actor_from_user(request.user),
            limit=p.validated_data["limit"],
        )
        return Response(overview)

    # ----------------------------
    # Reads
    # ----------------------------
    @action(detail=False, methods=["get"], url_path="archive/stats")
    def stats(self, request):
        return Response(ArchivalSelectors.archival_stats(actor=actor_from_user(request.user)))

    @extend_schema(parameters=[ArchivedSearchParamsSerializer], responses=ArchivalTicketSerializer(many=True))
    @action(detail=False, methods=["get"])
    def archived(self, request):
        p = ArchivedSearchParamsSerializer(data=request.query_params)
        p.is_valid(raise_exception=True)
        params = p.validated_data

        qs = ArchivalSelectors.search_archived(
            actor=actor_from_user(request.user),
            query=params.get("q"),
            statuses=params.get("status"),
            archived_from=params.get("archived_from"),
            archived_to=params.get("archived_to"),
        )
        return paginate(request, qs, ArchivalTicketSerializer)

    @extend_schema(parameters=[ArchivableParamsSerializer], responses=ArchivableTicketSerializer(many=True))
    @action(detail=False, methods=["get"])
    def archivable(self, request):
        p = ArchivableParamsSerializer(data=request.query_params)
        p.is_valid(raise_exception=True)

        actor = actor_from_user(request.user)
        subscription = None
        if request.query_params.get("subscription_id") or request.META.get("HTTP_X_SUBSCRIPTION_ID"):
            subscription = subscription_for_request(request)

        qs = ArchivalSelectors.archivable_tickets(
            actor=actor,
            subscription=subscription,
            limit=p.validated_data["max"],
        )
        return Response(ArchivableTicketSerializer(qs, many=True).data)

    # ----------------------------
    # Automation
    # ----------------------------
    @extend_schema(parameters=[SUBSCRIPTION_PARAM], request=ArchivalConfigUpdateSerializer, responses=ArchivalConfigSerializer)
    @action(detail=False, methods=["get", "post"], url_path="archive/auto-config")
    def auto_config(self, request):
        actor = actor_from_user(request.user)
        subscription = subscription_for_request(request)

        if request.method == "GET":
            caps = resolve_capabilities(actor, subscription=subscription)
            require(caps.can_view_summary, "Access denied to subscription.")
            config = AutomationController.get_config(subscription_id=subscription.id)
            data = ArchivalConfigSerializer(config).data
            data["can_configure"] = caps.can_configure_automation
            return Response(data)

        s = ArchivalConfigUpdateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        config = AutomationController.configure(subscription_id=subscription.id, actor=actor, **s.validated_data)
        return Response(ArchivalConfigSerializer(config).data, status=status.HTTP_200_OK)

    @extend_schema(parameters=[SUBSCRIPTION_PARAM], request=TriggerImmediateSerializer)
    @action(detail=False, methods=["post"], url_path="archive/trigger-immediate")
    def trigger_immediate(self, request):
        s = TriggerImmediateSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        subscription = subscription_for_request(request)
        result = AutomationController.trigger_immediate(
            subscription_id=subscription.id,
            actor=actor_from_user(request.user),
            days_after_completion=s.validated_data.get("days_after_completion"),
            max_tickets=s.validated_data.get("max_tickets"),
        )
        return Response(result, status=status.HTTP_200_OK)

    @action(detail=False, methods=["get"], url_path="archive/automation-status")
    def automation_status(self, request):
        return Response(AutomationController.status(actor=actor_from_user(request.user)))

    @extend_schema(request=None, responses=AutomationRunSerializer)
    @action(detail=False, methods=["post"], url_path="archive/run-automation")
    def run_automation(self, request):
        run = AutomationController.run(trigger=RunTrigger.MANUAL)
        return Response(AutomationRunSerializer(run).data, status=status.HTTP_200_OK)
