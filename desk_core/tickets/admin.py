# desk_core/tickets/admin.py
from __future__ import annotations

from django.contrib import admin

from desk_core.tickets.models import Ticket, TicketHistory


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "company",
        "team",
        "title",
        "status",
        "assigned_to_id",
        "archived_at",
        "created_at",
        "updated_at",
    )
    list_filter = ("status",)
    search_fields = ("id", "title")
    ordering = ("-created_at",)
    readonly_fields = ("created_at", "updated_at", "archived_at")
    list_select_related = ("company", "team")

    fieldsets = (
        ("Scope", {"fields": ("company", "team")}),
        ("Ticket", {"fields": ("title", "description", "status")}),
        ("People", {"fields": ("submitter_id", "assigned_to_id")}),
        ("Timing", {"fields": ("resolved_at", "closed_at", "archived_at")}),
        ("Audit", {"fields": ("created_at", "updated_at")}),
    )


@admin.register(TicketHistory)
class TicketHistoryAdmin(admin.ModelAdmin):
    list_display = ("ticket", "action", "actor_user_id", "created_at")
    list_filter = ("action",)
    search_fields = ("ticket__id",)
    ordering = ("-created_at",)
