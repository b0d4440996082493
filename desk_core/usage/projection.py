# desk_core/usage/projection.py
"""
Pure fold from ordered usage events to per-ticket state and counts.

Input must already be ordered by (timestamp, id); the event log guarantees
that ordering and nothing here re-sorts. Each ticket is classified by its
latest event only, so a ticket lands in exactly one bucket.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable

ACTIVE = "active"
COMPLETED = "completed"
ARCHIVED = "archived"
DELETED = "deleted"

BUCKETS = (ACTIVE, COMPLETED, ARCHIVED, DELETED)

TERMINAL_STATUSES = frozenset({"resolved", "closed", "completed"})


@dataclass(frozen=True)
class UsageStats:
    active: int = 0
    completed: int = 0
    archived: int = 0
    deleted: int = 0

    @property
    def total(self) -> int:
        return self.active + self.completed

    def as_dict(self) -> Dict[str, int]:
        data = asdict(self)
        data["total"] = self.total
        return data


def latest_event_per_ticket(events: Iterable[Any]) -> Dict[Any, Any]:
    latest: Dict[Any, Any] = {}
    for event in events:
        latest[event.ticket_id] = event
    return latest


def classify(event: Any) -> str:
    action = event.action
    if action == "created":
        return ACTIVE
    if action == "completed":
        return COMPLETED
    if action == "archived":
        return ARCHIVED
    if action == "deleted":
        return DELETED
    if action == "restored":
        status = (event.new_status or "").lower()
        return COMPLETED if status in TERMINAL_STATUSES else ACTIVE
    raise ValueError(f"Unknown usage action: {action!r}")


def ticket_states(events: Iterable[Any]) -> Dict[Any, str]:
    """ticket_id -> bucket for every ticket present in `events`."""
    return {ticket_id: classify(ev) for ticket_id, ev in latest_event_per_ticket(events).items()}


def project(events: Iterable[Any]) -> UsageStats:
    counts = {bucket: 0 for bucket in BUCKETS}
    for bucket in ticket_states(events).values():
        counts[bucket] += 1
    return UsageStats(**counts)
