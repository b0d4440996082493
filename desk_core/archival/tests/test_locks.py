from datetime import timedelta

import pytest
from django.utils.timezone import now

from desk_core.archival import locks
from desk_core.archival.models import ArchivalRunLock

pytestmark = pytest.mark.django_db


def test_second_acquire_fails_until_release(subscription):
    owner = locks.acquire(subscription.id)

    assert owner
    assert locks.is_locked(subscription.id)
    assert locks.acquire(subscription.id) is None

    assert locks.release(subscription.id, "someone-else") is False
    assert locks.release(subscription.id, owner) is True
    assert locks.acquire(subscription.id) is not None


def test_expired_lock_is_reclaimed(subscription):
    locks.acquire(subscription.id, owner="crashed-worker")
    ArchivalRunLock.objects.filter(subscription_id=subscription.id).update(expires_at=now() - timedelta(seconds=1))

    assert locks.is_locked(subscription.id) is False
    assert locks.acquire(subscription.id, owner="next-worker") == "next-worker"


def test_context_manager_releases_on_error(subscription):
    with pytest.raises(RuntimeError):
        with locks.subscription_lock(subscription.id):
            raise RuntimeError("fail inside")

    assert not ArchivalRunLock.objects.filter(subscription_id=subscription.id).exists()


def test_context_manager_raises_when_held(subscription):
    locks.acquire(subscription.id)

    with pytest.raises(locks.LockHeld):
        with locks.subscription_lock(subscription.id):
            pass
