# desk_core/subscriptions/admin.py
from django.contrib import admin

from desk_core.subscriptions.models import Subscription, SubscriptionPlan


@admin.register(SubscriptionPlan)
class SubscriptionPlanAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "slug",
        "active_ticket_limit",
        "completed_ticket_limit",
        "total_ticket_limit",
        "is_active",
    )
    list_filter = ("is_active",)
    search_fields = ("name", "slug")


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = ("id", "company", "plan", "status", "created_at")
    list_filter = ("status", "plan")
    search_fields = ("id", "company__name", "company__code")
    list_select_related = ("company", "plan")
    ordering = ("-created_at",)
