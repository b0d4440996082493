# desk_core/common/exceptions.py
from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """
    Base class for errors raised by services/selectors.

    Each subclass carries a stable `code` (rendered in the API error envelope)
    and the HTTP status the API layer maps it to.
    """
    code = "error"
    http_status = 400
    default_message = "Request failed."

    def __init__(self, message: str | None = None, *, details: Any = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class NotFound(DomainError):
    code = "not_found"
    http_status = 404
    default_message = "Not found."


class InvalidTransition(DomainError):
    """Illegal state transition (e.g. archiving an open or already-archived ticket)."""
    code = "validation_error"
    http_status = 400
    default_message = "Invalid state transition."


class Forbidden(DomainError):
    code = "permission_denied"
    http_status = 403
    default_message = "You do not have permission to perform this action."


class PersistenceError(DomainError):
    """Datastore write/read failed. Always surfaced for single-item operations."""
    code = "persistence_error"
    http_status = 503
    default_message = "Datastore operation failed."
