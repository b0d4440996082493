# desk_core/archival/scheduler.py
from __future__ import annotations

import logging
import threading
from datetime import timezone

from apscheduler.schedulers.background import BackgroundScheduler
from django.conf import settings
from django.db import close_old_connections

logger = logging.getLogger(__name__)

JOB_ID = "desk_core.archival.automated_run"


class ArchivalScheduler:
    """
    In-process interval timer for the automated archival run.

    Only one process should start it; the per-subscription run locks keep
    overlapping runs from archiving the same subscription twice.
    """

    def __init__(self):
        self._scheduler = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self, *, interval_hours: int | None = None) -> None:
        with self._lock:
            if self.running:
                logger.warning("Archival scheduler is already running")
                return

            cfg = getattr(settings, "ARCHIVAL_AUTOMATION", {}) or {}
            hours = interval_hours or int(cfg.get("INTERVAL_HOURS", 24))

            self._scheduler = BackgroundScheduler(timezone=timezone.utc)
            self._scheduler.add_job(
                func=self._run_job,
                trigger="interval",
                hours=hours,
                id=JOB_ID,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=300,
                replace_existing=True,
            )
            logger.info("Starting archival scheduler (every %s hours)", hours)
            self._scheduler.start()

    def shutdown(self, wait: bool = False) -> None:
        with self._lock:
            if not self.running:
                logger.warning("Archival scheduler is not running")
                return
            logger.info("Stopping archival scheduler")
            self._scheduler.shutdown(wait=wait)
            self._scheduler = None

    def next_run_time(self):
        if not self.running:
            return None
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    @staticmethod
    def _run_job() -> None:
        from desk_core.archival.automation import AutomationController

        close_old_connections()
        try:
            AutomationController.run()
        except Exception:
            logger.exception("Scheduled archival run failed")
        finally:
            close_old_connections()


scheduler = ArchivalScheduler()
