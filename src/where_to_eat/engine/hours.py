"""Open/closed resolution from weekly opening hours.

Two input shapes are accepted: structured periods as returned by Google Places
(``{"open": {"day": 1, "time": "1100"}, "close": {...}}``) and free-text weekly
tables such as ``["Mon: 11:00 AM - 10:00 PM", "Tue: Closed"]``. Both are turned
into ``OpeningPeriod`` values and checked with the same predicate, so overnight
spans behave identically. Missing or unparsable data resolves to open: a venue
is never hidden just because its hours are unknown.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from where_to_eat.core.models import OpeningPeriod, OpenStatus, TimeOfWeek

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60
OPEN_24_HOURS = "24 hours"
DAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")

TIME_RANGE_REGEX = re.compile(
    r"(\d{1,2}):?(\d{2})?\s*(AM|PM)?\s*-\s*(\d{1,2}):?(\d{2})?\s*(AM|PM)?",
    re.IGNORECASE,
)
DAY_LINE_REGEX = re.compile(r"^\s*([A-Za-z]{3,})\.?\s*:?\s*(.*)$")
_DASHES = str.maketrans({"\u2013": "-", "\u2014": "-", "\u2012": "-", "\u202f": " ", "\u2009": " ", "\xa0": " "})

HoursData = Union[None, Sequence[str], Sequence[Mapping[str, Any]], Sequence[OpeningPeriod], Mapping[str, Any]]


def day_of_week(at: datetime) -> int:
    """Day index with Sunday as 0."""
    return (at.weekday() + 1) % 7


def format_minutes(minutes: int) -> str:
    hour, minute = divmod(minutes % MINUTES_PER_DAY, 60)
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12}:{minute:02d} {suffix}"


def period_covers(period: OpeningPeriod, day: int, minutes: int, *, inclusive_close: bool = True) -> bool:
    """True when ``period`` is open at ``minutes`` past midnight on ``day``.

    Handles same-day spans, spans opening today and closing tomorrow, and spans
    that opened yesterday and close today.
    """
    if period.close is None:
        return True

    def before_close(close_minutes: int) -> bool:
        return minutes <= close_minutes if inclusive_close else minutes < close_minutes

    opened, closed = period.open, period.close
    if opened.day == day and closed.day == day and opened.minutes <= closed.minutes:
        return opened.minutes <= minutes and before_close(closed.minutes)
    if opened.day == day and closed.day == (day + 1) % 7:
        return minutes >= opened.minutes
    if opened.day == (day - 1) % 7 and closed.day == day:
        return before_close(closed.minutes)
    return False


def evaluate_periods(periods: Iterable[OpeningPeriod], at: datetime, *, inclusive_close: bool = True) -> OpenStatus:
    day = day_of_week(at)
    minutes = at.hour * 60 + at.minute
    for period in periods:
        if period_covers(period, day, minutes, inclusive_close=inclusive_close):
            if period.close is None:
                return OpenStatus(is_open=True, open_until=OPEN_24_HOURS)
            return OpenStatus(is_open=True, open_until=format_minutes(period.close.minutes))
    return OpenStatus(is_open=False)


# ---------- Structured periods ----------


def _parse_hhmm(value: Any) -> Optional[int]:
    text = str(value or "").strip()
    if len(text) != 4 or not text.isdigit():
        return None
    hour, minute = int(text[:2]), int(text[2:])
    if hour > 24 or minute > 59:
        return None
    return hour * 60 + minute


def _parse_point(raw: Any) -> Optional[TimeOfWeek]:
    if isinstance(raw, TimeOfWeek):
        return raw
    if not isinstance(raw, Mapping):
        return None
    minutes = _parse_hhmm(raw.get("time"))
    try:
        day = int(raw.get("day"))
    except (TypeError, ValueError):
        return None
    if minutes is None or not 0 <= day <= 6:
        return None
    return TimeOfWeek(day=day, minutes=minutes)


def parse_periods(raw_periods: Iterable[Any]) -> List[OpeningPeriod]:
    """Convert Google Places ``opening_hours.periods`` entries, skipping malformed ones."""
    periods: List[OpeningPeriod] = []
    for raw in raw_periods or []:
        if isinstance(raw, OpeningPeriod):
            periods.append(raw)
            continue
        if not isinstance(raw, Mapping):
            continue
        opened = _parse_point(raw.get("open"))
        if opened is None:
            logger.debug("Skipping malformed opening period: %s", raw)
            continue
        closed = _parse_point(raw.get("close")) if raw.get("close") else None
        periods.append(OpeningPeriod(open=opened, close=closed))
    return periods


def resolve_periods(raw_periods: Iterable[Any], at: datetime) -> OpenStatus:
    periods = parse_periods(raw_periods)
    if not periods:
        return OpenStatus(is_open=True)
    return evaluate_periods(periods, at, inclusive_close=True)


# ---------- Free-text weekly tables ----------


def _to_minutes(hour: str, minute: Optional[str], marker: Optional[str]) -> int:
    h = int(hour)
    m = int(minute) if minute else 0
    marker = (marker or "").upper()
    if marker == "PM" and h != 12:
        h += 12
    if marker == "AM" and h == 12:
        h = 0
    return h * 60 + m


def _range_minutes(match: "re.Match[str]") -> Tuple[int, int]:
    opens = _to_minutes(match.group(1), match.group(2), match.group(3))
    closes = _to_minutes(match.group(4), match.group(5), match.group(6))
    if closes < opens:
        closes += MINUTES_PER_DAY
    return opens, closes


def parse_time_ranges(text: str) -> List[Tuple[int, int]]:
    """Every ``<open> - <close>`` range on a line, e.g. split lunch and dinner services."""
    return [_range_minutes(match) for match in TIME_RANGE_REGEX.finditer(text.translate(_DASHES))]


def parse_time_range(text: str) -> Optional[Tuple[int, int]]:
    """Parse ``<open> - <close>`` into minutes since midnight; close may exceed 24h."""
    ranges = parse_time_ranges(text)
    return ranges[0] if ranges else None


def _split_line(line: str) -> Tuple[Optional[int], str]:
    match = DAY_LINE_REGEX.match(line)
    if not match:
        return None, line
    prefix = match.group(1).lower()[:3]
    if prefix not in DAY_NAMES:
        return None, line
    return DAY_NAMES.index(prefix), match.group(2).strip()


def _line_periods(day: int, text: str) -> Union[List[OpeningPeriod], str, None]:
    lowered = text.lower()
    if "24 hours" in lowered:
        return OPEN_24_HOURS
    if "closed" in lowered:
        return "closed"
    ranges = parse_time_ranges(text)
    if not ranges:
        return None
    return [
        OpeningPeriod(
            open=TimeOfWeek(day=day, minutes=opens),
            close=TimeOfWeek(day=(day + closes // MINUTES_PER_DAY) % 7, minutes=closes % MINUTES_PER_DAY),
        )
        for opens, closes in ranges
    ]


def resolve_weekday_text(lines: Iterable[str], at: datetime) -> OpenStatus:
    """Yesterday's overnight span still covers the early hours of a day marked "Closed"."""
    today = day_of_week(at)
    entries: Dict[int, str] = {}
    for line in lines or []:
        day, text = _split_line(str(line))
        if day is not None and day not in entries:
            entries[day] = text

    yesterday = (today - 1) % 7
    if today not in entries:
        # Nothing known about today; only yesterday's overnight span can say more.
        spill = _line_periods(yesterday, entries.get(yesterday, ""))
        if isinstance(spill, list):
            status = evaluate_periods(spill, at, inclusive_close=False)
            if status.is_open:
                return status
        return OpenStatus(is_open=True)

    todays = _line_periods(today, entries[today])
    if todays == OPEN_24_HOURS:
        return OpenStatus(is_open=True, open_until=OPEN_24_HOURS)
    if todays is None:
        logger.debug("Unparsable hours for today: %r", entries[today])
        return OpenStatus(is_open=True)

    periods: List[OpeningPeriod] = []
    for day in (yesterday, today):
        if day not in entries:
            continue
        parsed = todays if day == today else _line_periods(day, entries[day])
        if isinstance(parsed, list):
            periods.extend(parsed)
    return evaluate_periods(periods, at, inclusive_close=False)


# ---------- Dispatch ----------


def resolve(hours: HoursData, at: datetime) -> OpenStatus:
    """Decide whether a venue is open at ``at`` and until when.

    ``hours`` may be a Google ``opening_hours`` mapping (``periods`` preferred,
    ``weekday_text`` as fallback), a list of periods, or a list of text lines.
    """
    if not hours:
        return OpenStatus(is_open=True)

    if isinstance(hours, Mapping):
        if hours.get("periods"):
            return resolve_periods(hours["periods"], at)
        if hours.get("weekday_text"):
            return resolve_weekday_text(hours["weekday_text"], at)
        return OpenStatus(is_open=True)

    items = list(hours)
    if all(isinstance(item, str) for item in items):
        return resolve_weekday_text(items, at)
    return resolve_periods(items, at)
