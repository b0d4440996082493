# desk_core/usage/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from desk_core.usage.models import UsageEvent, UsageSummary


class UsageEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = UsageEvent
        fields = [
            "id",
            "subscription_id",
            "ticket_id",
            "action",
            "previous_status",
            "new_status",
            "timestamp",
            "metadata",
        ]
        read_only_fields = fields


class UsageSummarySerializer(serializers.ModelSerializer):
    subscription_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = UsageSummary
        fields = [
            "subscription_id",
            "period",
            "active_count",
            "completed_count",
            "total_count",
            "archived_count",
            "last_updated",
        ]
        read_only_fields = fields


class SummaryRefreshSerializer(serializers.Serializer):
    period = serializers.RegexField(r"^\d{4}-(0[1-9]|1[0-2])$", required=False)


class SummaryListParamsSerializer(serializers.Serializer):
    limit = serializers.IntegerField(default=12, min_value=1, max_value=120)


class ActivityParamsSerializer(serializers.Serializer):
    limit = serializers.IntegerField(default=50, min_value=1, max_value=500)
