"""
Window calculator - Canonical day/week/month boundaries.

Pure functions computing window boundaries from a reference instant.

Key behaviors:
- Boundaries are computed on the local wall clock of the reference instant
- Weeks start on Monday (ISO)
- Month arithmetic is calendar based (never fixed 30-day offsets)
- Windows are half-open: start <= ts < end
- DST safe: a local day may last 23 or 25 hours
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo

from src.core.errors import ValidationError

WEEKDAY_NAMES: tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

ONE_MILLISECOND = timedelta(milliseconds=1)


# --- Boundary Calculation ---


def _at_midnight(day: date, tz: tzinfo | None) -> datetime:
    """Local midnight of a calendar date in tz (naive when tz is None)."""
    naive = datetime.combine(day, time.min)
    return naive.replace(tzinfo=tz) if tz is not None else naive


def start_of_day(d: datetime) -> datetime:
    """d with time fields zeroed in d's own timezone."""
    return _at_midnight(d.date(), d.tzinfo)


def start_of_week(d: datetime) -> datetime:
    """Monday 00:00 on or before d."""
    monday = d.date() - timedelta(days=d.weekday())
    return _at_midnight(monday, d.tzinfo)


def start_of_month(d: datetime) -> datetime:
    """First of d's month, 00:00."""
    return _at_midnight(d.date().replace(day=1), d.tzinfo)


def shift_days(d: datetime, days: int) -> datetime:
    """Move a local midnight by whole calendar days."""
    return _at_midnight(d.date() + timedelta(days=days), d.tzinfo)


def shift_months(d: datetime, months: int) -> datetime:
    """First of the month `months` away from d's month, 00:00."""
    index = d.year * 12 + (d.month - 1) + months
    year, month = divmod(index, 12)
    return _at_midnight(date(year, month + 1, 1), d.tzinfo)


def end_before(boundary: datetime) -> datetime:
    """Last representable instant (ms precision) before a boundary."""
    return boundary - ONE_MILLISECOND


def yesterday_start(now: datetime) -> datetime:
    return shift_days(start_of_day(now), -1)


def last_week_start(now: datetime) -> datetime:
    return shift_days(start_of_week(now), -7)


def end_of_last_week(now: datetime) -> datetime:
    return end_before(start_of_week(now))


def last_month_start(now: datetime) -> datetime:
    return shift_months(start_of_month(now), -1)


def end_of_last_month(now: datetime) -> datetime:
    return end_before(start_of_month(now))


def local_date_key(ts: datetime, tz: tzinfo | None = None) -> str:
    """YYYY-MM-DD of ts on the local calendar."""
    local = ts.astimezone(tz) if tz is not None else ts
    return local.strftime("%Y-%m-%d")


def weekday_name(ts: datetime) -> str:
    return WEEKDAY_NAMES[ts.weekday()]


# --- Windows ---


@dataclass(frozen=True)
class Window:
    """Half-open time interval [start, end)."""

    start: datetime
    end: datetime

    def contains(self, ts: datetime) -> bool:
        return self.start <= ts < self.end

    def __contains__(self, ts: datetime) -> bool:
        return self.contains(ts)

    def covers(self, other: Window) -> bool:
        """True when other lies entirely within this window."""
        return self.start <= other.start and other.end <= self.end


def today_window(now: datetime) -> Window:
    start = start_of_day(now)
    return Window(start, shift_days(start, 1))


def yesterday_window(now: datetime) -> Window:
    start = start_of_day(now)
    return Window(shift_days(start, -1), start)


def week_window(now: datetime) -> Window:
    start = start_of_week(now)
    return Window(start, shift_days(start, 7))


def previous_week_window(now: datetime) -> Window:
    start = start_of_week(now)
    return Window(shift_days(start, -7), start)


def month_window(now: datetime) -> Window:
    start = start_of_month(now)
    return Window(start, shift_months(start, 1))


def previous_month_window(now: datetime) -> Window:
    start = start_of_month(now)
    return Window(shift_months(start, -1), start)


def trailing_days_window(now: datetime, days: int) -> Window:
    """The last `days` local calendar days, today included."""
    if days < 1:
        raise ValidationError(f"must be >= 1, got {days}", field_name="days")
    today = start_of_day(now)
    return Window(shift_days(today, -(days - 1)), shift_days(today, 1))


def trailing_date_keys(now: datetime, days: int) -> list[str]:
    """Date keys of trailing_days_window, oldest first."""
    today = now.date()
    return [(today - timedelta(days=offset)).isoformat() for offset in range(days - 1, -1, -1)]


@dataclass(frozen=True)
class WindowSet:
    """All windows anchored to one reference instant (local time)."""

    now: datetime
    today: Window
    yesterday: Window
    week: Window
    previous_week: Window
    month: Window
    previous_month: Window

    @classmethod
    def for_reference(cls, now: datetime) -> WindowSet:
        return cls(
            now=now,
            today=today_window(now),
            yesterday=yesterday_window(now),
            week=week_window(now),
            previous_week=previous_week_window(now),
            month=month_window(now),
            previous_month=previous_month_window(now),
        )


# --- Date Filters ---


def parse_date_bound(
    value: date | datetime | str | None, field_name: str
) -> date | datetime | None:
    """Accept a date, an aware/naive datetime, or an ISO string."""
    if value is None or isinstance(value, datetime | date):
        return value
    text = str(value).strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise ValidationError(f"invalid date '{value}'", field_name=field_name) from e


def date_range(
    start_date: date | datetime | str | None,
    end_date: date | datetime | str | None,
    tz: tzinfo,
) -> tuple[datetime | None, datetime | None]:
    """
    Resolve date filters to a half-open [start, end) range.

    Plain dates cover whole local days: end_date is included through its
    last instant. Datetimes are used as given (naive ones are local).
    """
    start = parse_date_bound(start_date, "start_date")
    end = parse_date_bound(end_date, "end_date")

    def resolve(bound: date | datetime | None, is_end: bool) -> datetime | None:
        if bound is None:
            return None
        if isinstance(bound, datetime):
            aware = bound if bound.tzinfo is not None else bound.replace(tzinfo=tz)
            return aware + timedelta(microseconds=1) if is_end else aware
        return _at_midnight(bound + timedelta(days=1) if is_end else bound, tz)

    start_dt = resolve(start, False)
    end_dt = resolve(end, True)
    if start_dt is not None and end_dt is not None and start_dt >= end_dt:
        raise ValidationError("start_date must not be after end_date", field_name="start_date")
    return start_dt, end_dt
