# desk_core/usage/apps.py
from django.apps import AppConfig


class UsageConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "desk_core.usage"
