"""Wall-clock helpers.

Services call ``clock.utcnow()`` through the module so tests can patch
``hrms.common.clock.utcnow`` to freeze time.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from hrms.config import settings


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from stores without tz support."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_date(moment: datetime) -> date:
    """Calendar date of ``moment`` in the configured business timezone."""
    return as_utc(moment).astimezone(ZoneInfo(settings.TIMEZONE)).date()


def today() -> date:
    return local_date(utcnow())
