# desk_core/archival/apps.py
import logging
import os
import sys

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


class ArchivalConfigApp(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "desk_core.archival"
    label = "archival"

    def ready(self):
        cfg = getattr(settings, "ARCHIVAL_AUTOMATION", {}) or {}
        if not cfg.get("AUTOSTART"):
            return

        # runserver's autoreloader imports the project twice
        if "runserver" in sys.argv and os.environ.get("RUN_MAIN") != "true":
            return

        from desk_core.archival.scheduler import scheduler

        scheduler.start()
