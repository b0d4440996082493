# desk_core/archival/locks.py
from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import timedelta
from typing import Iterator, Optional
from uuid import UUID

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils.timezone import now

from desk_core.archival.models import ArchivalRunLock

logger = logging.getLogger(__name__)


class LockHeld(Exception):
    pass


def _ttl_seconds() -> int:
    cfg = getattr(settings, "ARCHIVAL_AUTOMATION", {}) or {}
    return int(cfg.get("LOCK_TTL_SECONDS", 3600))


def acquire(subscription_id: UUID, *, owner: Optional[str] = None, ttl_seconds: Optional[int] = None) -> Optional[str]:
    """
    Try to take the subscription's run lock. Returns the owner token, or None if
    another live holder exists. An expired lock is reclaimed.
    """
    owner = owner or uuid.uuid4().hex
    ttl = _ttl_seconds() if ttl_seconds is None else ttl_seconds
    expires_at = now() + timedelta(seconds=ttl)

    # Reclaim a stale lock first; only rows already past expiry are touched.
    ArchivalRunLock.objects.filter(subscription_id=subscription_id, expires_at__lte=now()).delete()

    try:
        with transaction.atomic():
            ArchivalRunLock.objects.create(subscription_id=subscription_id, owner=owner, expires_at=expires_at)
    except IntegrityError:
        logger.info("Archival lock for subscription %s is held", subscription_id)
        return None
    return owner


def release(subscription_id: UUID, owner: str) -> bool:
    deleted, _ = ArchivalRunLock.objects.filter(subscription_id=subscription_id, owner=owner).delete()
    return bool(deleted)


def is_locked(subscription_id: UUID) -> bool:
    return ArchivalRunLock.objects.filter(subscription_id=subscription_id, expires_at__gt=now()).exists()


@contextmanager
def subscription_lock(subscription_id: UUID, *, ttl_seconds: Optional[int] = None) -> Iterator[str]:
    owner = acquire(subscription_id, ttl_seconds=ttl_seconds)
    if owner is None:
        raise LockHeld(f"Archival run already in progress for subscription {subscription_id}.")
    try:
        yield owner
    finally:
        release(subscription_id, owner)
