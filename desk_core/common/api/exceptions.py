# desk_core/common/api/exceptions.py

from __future__ import annotations

import logging
import uuid
from typing import Any

from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, NotAuthenticated, PermissionDenied, ValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from desk_core.common.exceptions import DomainError

logger = logging.getLogger(__name__)


def ensure_request_id(request) -> str:
    """
    Ensures request has a stable request_id attribute and returns it.
    """
    rid = getattr(request, "request_id", None) if request is not None else None
    if not rid:
        rid = uuid.uuid4().hex
        if request is not None:
            setattr(request, "request_id", rid)
    return rid


def build_error_envelope(*, request=None, code: str, message: str, details: Any = None) -> dict[str, Any]:
    """
    Canonical error envelope:
      {"error": {"code", "message", "details", "request_id"}}
    """
    rid = ensure_request_id(request)
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
            "request_id": rid,
        }
    }


def _code_for(exc: Exception, http_status: int) -> str:
    if isinstance(exc, ValidationError):
        return "validation_error"
    if isinstance(exc, NotAuthenticated):
        return "not_authenticated"
    if isinstance(exc, PermissionDenied):
        return "permission_denied"
    if isinstance(exc, Http404):
        return "not_found"
    if isinstance(exc, APIException):
        return getattr(exc, "default_code", "api_error") or "api_error"
    if http_status >= 500:
        return "server_error"
    return "error"


def api_exception_handler(exc: Exception, context: dict[str, Any]):
    request = context.get("request")

    # Service-layer errors carry their own code/status
    if isinstance(exc, DomainError):
        if exc.http_status >= 500:
            logger.error("Domain error %s: %s", exc.code, exc.message)
        return Response(
            build_error_envelope(
                request=request,
                code=exc.code,
                message=exc.message,
                details=exc.details,
            ),
            status=exc.http_status,
        )

    # Selector-level validation (bad period keys, malformed ids)
    if isinstance(exc, DjangoValidationError):
        exc = ValidationError({"detail": "; ".join(exc.messages)})

    response = drf_exception_handler(exc, context)

    # Truly unhandled error
    if response is None:
        logger.exception("Unhandled API error", exc_info=exc)
        return Response(
            build_error_envelope(
                request=request,
                code="server_error",
                message="Unexpected server error.",
                details=None,
            ),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    http_status = response.status_code
    code = _code_for(exc, http_status)

    data = response.data

    # 1) {"detail": "..."} -> message=detail, details=None
    # 2) {"detail": "...", ...} -> message=detail, details={...without detail}
    # 3) otherwise -> message="Request failed.", details=data
    message = "Request failed."
    details = data

    if isinstance(data, dict) and "detail" in data:
        detail = data.get("detail")
        if isinstance(detail, list) and len(detail) == 1:
            detail = detail[0]
        message = str(detail)
        rest = {k: v for k, v in data.items() if k != "detail"}
        details = rest or None

    return Response(
        build_error_envelope(
            request=request,
            code=code,
            message=message,
            details=details,
        ),
        status=http_status,
        headers=response.headers,
    )
