# desk_core/common/api/scope.py
from __future__ import annotations

from rest_framework.exceptions import ValidationError as DRFValidationError

from desk_core.iam.services.membership import company_ids_for_user
from desk_core.subscriptions.models import Subscription
from desk_core.subscriptions.selectors import SubscriptionSelectors


def subscription_for_request(request) -> Subscription:
    """
    Subscription addressed by a request:
      1) ?subscription_id=
      2) X-Subscription-Id header
      3) live subscription of the caller's first company (primary first)
    Access to the subscription is checked by the service layer.
    """
    subscription_id = request.query_params.get("subscription_id") or request.META.get("HTTP_X_SUBSCRIPTION_ID")
    if subscription_id:
        return SubscriptionSelectors.get(subscription_id)

    for company_id in company_ids_for_user(getattr(request.user, "id", None)):
        subscription = SubscriptionSelectors.live_for_company(company_id)
        if subscription is not None:
            return subscription

    raise DRFValidationError({"detail": "No active subscription found. Provide subscription_id or X-Subscription-Id."})
