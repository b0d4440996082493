# desk_core/usage/admin.py
from __future__ import annotations

from django.contrib import admin

from desk_core.usage.models import UsageEvent, UsageSummary


@admin.register(UsageEvent)
class UsageEventAdmin(admin.ModelAdmin):
    list_display = ("id", "subscription_id", "ticket_id", "action", "previous_status", "new_status", "timestamp")
    list_filter = ("action",)
    search_fields = ("ticket_id", "subscription_id")
    ordering = ("-timestamp", "-id")

    # Append-only
    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(UsageSummary)
class UsageSummaryAdmin(admin.ModelAdmin):
    list_display = ("subscription", "period", "active_count", "completed_count", "archived_count", "last_updated")
    search_fields = ("subscription__id", "period")
    ordering = ("-period",)
