"""Time source for handlers and the due scan.

Core functions never read the wall clock themselves; entry points call
now_local() once per unit of work and pass the value down.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo


def now_local(timezone_name: str | None = None) -> datetime:
    """Current time as an aware datetime in the configured timezone."""
    if timezone_name is None:
        from src.config import settings
        timezone_name = settings.TIMEZONE
    return datetime.now(ZoneInfo(timezone_name))
