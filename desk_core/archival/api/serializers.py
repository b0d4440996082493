# desk_core/archival/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from desk_core.archival.models import ArchivalConfig, AutomationRun
from desk_core.tickets.models import Ticket, TicketStatus


class ArchivalTicketSerializer(serializers.ModelSerializer):
    company_id = serializers.UUIDField(read_only=True)
    team_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = Ticket
        fields = [
            "id",
            "title",
            "status",
            "company_id",
            "team_id",
            "assigned_to_id",
            "submitter_id",
            "resolved_at",
            "closed_at",
            "archived_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ArchivableTicketSerializer(ArchivalTicketSerializer):
    completed_on = serializers.DateTimeField(read_only=True)

    class Meta(ArchivalTicketSerializer.Meta):
        fields = ArchivalTicketSerializer.Meta.fields + ["completed_on"]
        read_only_fields = fields


class BulkArchiveRequestSerializer(serializers.Serializer):
    ticket_ids = serializers.ListField(
        child=serializers.UUIDField(),
        allow_empty=False,
        max_length=500,
    )


class BulkArchiveFailureSerializer(serializers.Serializer):
    ticket_id = serializers.CharField()
    error = serializers.CharField()


class BulkArchiveResultSerializer(serializers.Serializer):
    total_processed = serializers.IntegerField()
    archived_count = serializers.IntegerField()
    successful = serializers.ListField(child=serializers.CharField())
    failed = BulkArchiveFailureSerializer(many=True)


class ArchivalSuggestionSerializer(serializers.Serializer):
    ticket_id = serializers.CharField()
    title = serializers.CharField()
    status = serializers.CharField()
    completed_at = serializers.DateTimeField()
    days_since_completion = serializers.IntegerField()
    can_archive = serializers.BooleanField()
    reason = serializers.CharField()
    priority = serializers.CharField()


class ArchivedSearchParamsSerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True)
    status = serializers.CharField(required=False, allow_blank=True)
    archived_from = serializers.DateTimeField(required=False)
    archived_to = serializers.DateTimeField(required=False)

    def validate_status(self, value):
        statuses = [s.strip() for s in value.split(",") if s.strip()]
        unknown = [s for s in statuses if s not in TicketStatus.values]
        if unknown:
            raise serializers.ValidationError(f"Unknown status: {', '.join(unknown)}")
        return statuses

    def validate(self, attrs):
        start, end = attrs.get("archived_from"), attrs.get("archived_to")
        if start and end and start > end:
            raise serializers.ValidationError({"archived_to": "Must be after archived_from."})
        return attrs


class ArchivalConfigSerializer(serializers.ModelSerializer):
    subscription_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = ArchivalConfig
        fields = [
            "subscription_id",
            "enabled",
            "days_after_completion",
            "max_tickets_per_run",
            "only_when_approaching_limits",
            "limit_threshold_percent",
            "updated_at",
        ]
        read_only_fields = fields


class ArchivalConfigUpdateSerializer(serializers.Serializer):
    enabled = serializers.BooleanField()
    days_after_completion = serializers.IntegerField(required=False, min_value=1, max_value=3650)
    max_tickets_per_run = serializers.IntegerField(required=False, min_value=1, max_value=1000)
    only_when_approaching_limits = serializers.BooleanField(required=False)
    limit_threshold_percent = serializers.IntegerField(required=False, min_value=0, max_value=100)


class TriggerImmediateSerializer(serializers.Serializer):
    days_after_completion = serializers.IntegerField(required=False, min_value=0, max_value=3650)
    max_tickets = serializers.IntegerField(required=False, min_value=1, max_value=1000)


class AutomationRunSerializer(serializers.ModelSerializer):
    class Meta:
        model = AutomationRun
        fields = [
            "id",
            "trigger",
            "processed_subscriptions",
            "total_tickets_archived",
            "errors",
            "subscription_results",
            "started_at",
            "finished_at",
        ]
        read_only_fields = fields


class SuggestionParamsSerializer(serializers.Serializer):
    limit = serializers.IntegerField(default=50, min_value=1, max_value=200)


class ArchivableParamsSerializer(serializers.Serializer):
    max = serializers.IntegerField(default=100, min_value=1, max_value=500)
