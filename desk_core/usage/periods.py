# desk_core/usage/periods.py
from __future__ import annotations

import re
from datetime import datetime
from typing import Tuple

from django.core.exceptions import ValidationError
from django.utils import timezone

_PERIOD_RE = re.compile(r"^(\d{4})-(0[1-9]|1[0-2])$")


def period_key(dt: datetime | None = None) -> str:
    dt = timezone.localtime(dt or timezone.now())
    return f"{dt.year:04d}-{dt.month:02d}"


def period_bounds(period: str) -> Tuple[datetime, datetime]:
    """
    Calendar month as a half-open range [start, end) in the current timezone.
    """
    match = _PERIOD_RE.match(period or "")
    if not match:
        raise ValidationError("period is invalid. Use YYYY-MM.")

    year, month = int(match.group(1)), int(match.group(2))
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime(year, month, 1), tz)
    if month == 12:
        end = timezone.make_aware(datetime(year + 1, 1, 1), tz)
    else:
        end = timezone.make_aware(datetime(year, month + 1, 1), tz)
    return start, end
