from types import SimpleNamespace
from uuid import uuid4

import pytest

from desk_core.usage import projection


def ev(ticket_id, action, new_status=None):
    return SimpleNamespace(ticket_id=ticket_id, action=action, new_status=new_status)


def test_each_ticket_lands_in_exactly_one_bucket():
    a, b, c, d, e = (uuid4() for _ in range(5))
    events = [
        ev(a, "created"),
        ev(b, "created"),
        ev(b, "completed"),
        ev(c, "created"),
        ev(c, "completed"),
        ev(c, "archived"),
        ev(d, "created"),
        ev(d, "deleted"),
        ev(e, "created"),
        ev(e, "completed"),
        ev(e, "archived"),
        ev(e, "restored", new_status="resolved"),
    ]

    states = projection.ticket_states(events)
    assert states == {
        a: projection.ACTIVE,
        b: projection.COMPLETED,
        c: projection.ARCHIVED,
        d: projection.DELETED,
        e: projection.COMPLETED,
    }

    stats = projection.project(events)
    assert (stats.active, stats.completed, stats.archived, stats.deleted) == (1, 2, 1, 1)
    assert stats.total == 3
    assert stats.active + stats.completed + stats.archived + stats.deleted == len(states)


def test_archived_ticket_is_not_also_active_or_completed():
    t = uuid4()
    stats = projection.project([ev(t, "created"), ev(t, "completed"), ev(t, "archived")])
    assert stats.as_dict() == {"active": 0, "completed": 0, "archived": 1, "deleted": 0, "total": 0}


def test_restored_bucket_follows_carried_status():
    assert projection.classify(ev(uuid4(), "restored", new_status="CLOSED")) == projection.COMPLETED
    assert projection.classify(ev(uuid4(), "restored", new_status="in_progress")) == projection.ACTIVE
    assert projection.classify(ev(uuid4(), "restored")) == projection.ACTIVE


def test_latest_event_is_last_in_input_order():
    t = uuid4()
    first, second = ev(t, "archived"), ev(t, "restored", new_status="open")
    assert projection.latest_event_per_ticket([first, second])[t] is second


def test_unknown_action_is_rejected():
    with pytest.raises(ValueError):
        projection.classify(ev(uuid4(), "merged"))


def test_empty_log_projects_to_zero():
    assert projection.project([]) == projection.UsageStats()
