"""Expiry policy: decide the ``exp`` claim for a new token.

Precedence, highest first:

1. an explicit absolute timestamp, returned verbatim;
2. an explicit relative period such as ``"+2 hours"``, applied to ``now``;
3. the expire mode (STRICT: one day, MIDDLE: one week, LOW: one month);
4. no mode at all: ten years, which is as good as "never".

Month and year arithmetic is calendar based. A day of month that does not
exist in the target month rolls forward, so Jan 31 + 1 month is Mar 3 (or
Mar 2 in a leap year).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jtokens.enums import ExpireMode
from jtokens.errors import InvalidPeriodError


@dataclass(frozen=True, slots=True)
class Period:
    """A relative offset split into calendar months and fixed seconds."""

    months: int = 0
    seconds: int = 0

    def apply(self, now: float) -> int:
        try:
            start = datetime.fromtimestamp(int(now), tz=UTC)
            shifted = _add_months(start, self.months) + timedelta(seconds=self.seconds)
        except (ValueError, OverflowError, OSError) as e:
            raise InvalidPeriodError(f"Wrong time string: period out of range ({e})") from e
        return int(shifted.timestamp())


_SECONDS_PER_UNIT: dict[str, int] = {
    "sec": 1,
    "second": 1,
    "min": 60,
    "minute": 60,
    "hour": 3600,
    "day": 86400,
    "week": 7 * 86400,
    "fortnight": 14 * 86400,
}

_MONTHS_PER_UNIT: dict[str, int] = {
    "month": 1,
    "year": 12,
}

_TERM_RE = re.compile(r"\s*([+-]?)\s*(\d+)\s*([A-Za-z]+)\s*,?")

MODE_PERIODS: dict[ExpireMode, Period] = {
    ExpireMode.STRICT: Period(seconds=86400),
    ExpireMode.MIDDLE: Period(seconds=7 * 86400),
    ExpireMode.LOW: Period(months=1),
}

NO_MODE_PERIOD = Period(months=10 * 12)

# Periods beyond this many years in either direction are rejected when parsed.
MAX_PERIOD_YEARS = 1000


def _add_months(dt: datetime, months: int) -> datetime:
    if not months:
        return dt
    index = dt.year * 12 + (dt.month - 1) + months
    year, month0 = divmod(index, 12)
    first = dt.replace(year=year, month=month0 + 1, day=1)
    return first + timedelta(days=dt.day - 1)


def _normalize_unit(unit: str) -> str:
    unit = unit.lower()
    if unit in _SECONDS_PER_UNIT or unit in _MONTHS_PER_UNIT:
        return unit
    if unit.endswith("s") and (unit[:-1] in _SECONDS_PER_UNIT or unit[:-1] in _MONTHS_PER_UNIT):
        return unit[:-1]
    raise InvalidPeriodError(f"Wrong time string: unknown unit {unit!r}")


def parse_period(text: str) -> Period:
    """Parse ``"[+|-] N unit"`` terms (e.g. ``"+1 week 2 days"``) into a Period."""

    if not isinstance(text, str):
        raise InvalidPeriodError("Wrong time string: expected a str")

    raw = text.strip()
    if not raw:
        raise InvalidPeriodError("Wrong time string: empty")

    months = 0
    seconds = 0
    pos = 0
    while pos < len(raw):
        m = _TERM_RE.match(raw, pos)
        if m is None or m.end() == pos:
            raise InvalidPeriodError(f"Wrong time string: {text!r}")
        sign = -1 if m.group(1) == "-" else 1
        amount = sign * int(m.group(2))
        unit = _normalize_unit(m.group(3))
        if unit in _MONTHS_PER_UNIT:
            months += amount * _MONTHS_PER_UNIT[unit]
        else:
            seconds += amount * _SECONDS_PER_UNIT[unit]
        pos = m.end()

    if abs(months) > MAX_PERIOD_YEARS * 12 or abs(seconds) > MAX_PERIOD_YEARS * 366 * 86400:
        raise InvalidPeriodError(f"Wrong time string: period out of range: {text!r}")

    return Period(months=months, seconds=seconds)


def resolve_expires(
    explicit_ts: int | float | None,
    period: Period | str | None,
    mode: ExpireMode | None,
    now: float,
) -> int | float:
    """Return the expiry timestamp for a token issued at ``now``."""

    if explicit_ts is not None:
        return explicit_ts

    if period is not None:
        if isinstance(period, str):
            period = parse_period(period)
        return period.apply(now)

    if mode is None:
        return NO_MODE_PERIOD.apply(now)

    return MODE_PERIODS[mode].apply(now)
