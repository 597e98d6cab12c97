"""Maps named planning times (``lunch``, ``tomorrow_dinner``...) to concrete instants."""

from __future__ import annotations

from datetime import datetime, time, timedelta
from typing import Dict, Optional, Tuple

NOW = "now"

# name -> (clock time, always next day)
DAYPARTS: Dict[str, Tuple[time, bool]] = {
    "breakfast": (time(8, 0), False),
    "lunch": (time(12, 0), False),
    "dinner": (time(19, 0), False),
    "tomorrow_breakfast": (time(8, 0), True),
    "tomorrow_lunch": (time(12, 0), True),
    "tomorrow_dinner": (time(19, 0), True),
}


class UnknownDaypartError(ValueError):
    """Raised for planned-time names that are neither ``now`` nor a known daypart."""


def resolve_planned_time(name: Optional[str], now: datetime) -> datetime:
    """Return the instant a search should be evaluated at.

    Same-day dayparts roll forward a day once ``now`` is past their clock time.
    """
    key = (name or NOW).strip().lower()
    if key == NOW:
        return now
    if key not in DAYPARTS:
        raise UnknownDaypartError(f"unknown planned time {name!r}; expected one of: {', '.join([NOW, *DAYPARTS])}")

    clock, next_day = DAYPARTS[key]
    target = now.replace(hour=clock.hour, minute=clock.minute, second=0, microsecond=0)
    if next_day or now > target:
        target += timedelta(days=1)
    return target
