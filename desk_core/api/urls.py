# desk_core/api/urls.py
from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from desk_core.archival.api.views import TicketArchivalViewSet
from desk_core.usage.api.views import TicketUsageHistoryView, UsageViewSet

router = DefaultRouter()

router.register(r"tickets", TicketArchivalViewSet, basename="ticket-archival")
router.register(r"usage", UsageViewSet, basename="usage")

urlpatterns = [
    # Auth
    path("auth/token/", TokenObtainPairView.as_view(), name="token-obtain"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),

    path(
        "usage/tickets/<uuid:ticket_id>/history/",
        TicketUsageHistoryView.as_view(),
        name="usage-ticket-history",
    ),
]

urlpatterns += router.urls
