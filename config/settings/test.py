# config/settings/test.py
from .base import *  # noqa

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

ARCHIVAL_AUTOMATION = {
    **ARCHIVAL_AUTOMATION,  # noqa: F405
    "AUTOSTART": False,
}
