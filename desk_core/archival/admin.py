# desk_core/archival/admin.py
from __future__ import annotations

from django.contrib import admin

from desk_core.archival.models import ArchivalConfig, ArchivalRunLock, AutomationRun


@admin.register(ArchivalConfig)
class ArchivalConfigAdmin(admin.ModelAdmin):
    list_display = (
        "subscription",
        "enabled",
        "days_after_completion",
        "max_tickets_per_run",
        "only_when_approaching_limits",
        "limit_threshold_percent",
        "updated_at",
    )
    list_filter = ("enabled", "only_when_approaching_limits")


@admin.register(AutomationRun)
class AutomationRunAdmin(admin.ModelAdmin):
    list_display = ("id", "trigger", "processed_subscriptions", "total_tickets_archived", "errors", "started_at", "finished_at")
    list_filter = ("trigger",)
    ordering = ("-started_at",)
    readonly_fields = ("subscription_results",)


@admin.register(ArchivalRunLock)
class ArchivalRunLockAdmin(admin.ModelAdmin):
    list_display = ("subscription", "owner", "acquired_at", "expires_at")
