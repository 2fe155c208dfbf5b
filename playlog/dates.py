"""Calendar date helpers shared by every derivation.

Play sessions, purchases and completions are recorded as calendar days. They
are never instants, so this module only ever produces :class:`datetime.date`
values and never consults the host timezone. ``"2024-01-15"`` is January 15th
everywhere.
"""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime
from typing import Any

_DATE_PREFIX = re.compile(r"^\s*(\d{4})-(\d{2})-(\d{2})")


def parse_local_date(value: Any) -> date | None:
    """Return the calendar day encoded by ``value`` or ``None``.

    ``datetime`` values keep their own calendar day. Strings must start with
    ``YYYY-MM-DD``. Any time component that follows (``T00:00:00Z``,
    ``+08:00``) is ignored rather than converted.
    """

    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    match = _DATE_PREFIX.match(value)
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def require_date(value: Any, label: str) -> date:
    """Parse user input, raising ``ValueError`` with a readable message."""

    parsed = parse_local_date(value)
    if parsed is None:
        raise ValueError(f"{label} must be a valid YYYY-MM-DD date")
    return parsed


def days_between(start: date, end: date) -> int:
    return (end - start).days


def shift_days(day: date, days: int) -> date:
    """``day`` moved by ``days``, pinned to ``date.min`` / ``date.max``."""

    ordinal = day.toordinal() + days
    if ordinal < date.min.toordinal():
        return date.min
    if ordinal > date.max.toordinal():
        return date.max
    return date.fromordinal(ordinal)


def add_months(day: date, months: int) -> date:
    """Shift ``day`` by whole calendar months, clamping to the month's end.

    Results outside the supported calendar are pinned to ``date.min`` or
    ``date.max``.
    """

    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    if year < date.min.year:
        return date.min
    if year > date.max.year:
        return date.max
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def month_start(day: date) -> date:
    return day.replace(day=1)


def month_end(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def week_start(day: date) -> date:
    """Sunday on or before ``day``."""

    # weekday(): Monday == 0 ... Sunday == 6
    return shift_days(day, -((day.weekday() + 1) % 7))


def quarter_start(day: date) -> date:
    return date(day.year, 3 * ((day.month - 1) // 3) + 1, 1)


def quarter_end(day: date) -> date:
    return month_end(add_months(quarter_start(day), 2))


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"
