"""
Activity helpers shared by the download and browsing aggregators.

Trends, habits (peak hour / peak weekday) and daily-series densification,
parameterized by what a single event weighs (1 for a download, its
duration for a visit).

Key behaviors:
- Trend change = current window value - previous window value
- Habit ties break to the lowest hour and the earliest weekday (Monday first)
- Zero samples -> most_active_hour None, most_active_day "N/A"
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, TypeVar

from src.core.services.windows import WEEKDAY_NAMES, Window, WindowSet, trailing_date_keys

NO_ACTIVE_DAY = "N/A"

T = TypeVar("T")


# --- Trends ---


@dataclass(frozen=True)
class TrendMetric:
    """Value in the current window and change versus the previous one."""

    count: float
    change: float


@dataclass(frozen=True)
class ActivityTrend:
    today: TrendMetric
    week: TrendMetric
    month: TrendMetric

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def sum_in_window(
    samples: Iterable[tuple[datetime, float]],
    window: Window,
) -> float:
    """Sum the weights of samples whose timestamp falls in the window."""
    return sum(weight for ts, weight in samples if window.contains(ts))


def compute_trends(samples: Sequence[tuple[datetime, float]], windows: WindowSet) -> ActivityTrend:
    """Today vs yesterday, this week vs last week, this month vs last month."""

    def metric(current: Window, previous: Window) -> TrendMetric:
        now_value = sum_in_window(samples, current)
        return TrendMetric(count=now_value, change=now_value - sum_in_window(samples, previous))

    return ActivityTrend(
        today=metric(windows.today, windows.yesterday),
        week=metric(windows.week, windows.previous_week),
        month=metric(windows.month, windows.previous_month),
    )


# --- Habits ---


@dataclass(frozen=True)
class HabitsData:
    """Peak hour-of-day and weekday over one week of samples."""

    most_active_hour: int | None
    most_active_hour_date: datetime | None
    most_active_hour_total: float | None
    most_active_day: str
    most_active_day_total: float | None

    @property
    def has_data(self) -> bool:
        return self.most_active_hour is not None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


EMPTY_HABITS = HabitsData(
    most_active_hour=None,
    most_active_hour_date=None,
    most_active_hour_total=None,
    most_active_day=NO_ACTIVE_DAY,
    most_active_day_total=None,
)


def compute_habits(samples: Iterable[tuple[datetime, float]]) -> HabitsData:
    """
    Find the most active hour and weekday.

    Sample timestamps must already be in local time. The sample timestamp
    reported for the peak hour is the earliest sample in that hour.
    """
    by_hour: dict[int, float] = {}
    by_day: dict[int, float] = {}
    earliest_in_hour: dict[int, datetime] = {}

    for ts, weight in samples:
        by_hour[ts.hour] = by_hour.get(ts.hour, 0) + weight
        by_day[ts.weekday()] = by_day.get(ts.weekday(), 0) + weight
        first = earliest_in_hour.get(ts.hour)
        if first is None or ts < first:
            earliest_in_hour[ts.hour] = ts

    if not by_hour:
        return EMPTY_HABITS

    # max() keeps the first maximum; iterate in ascending order for the tie-break
    peak_hour = max(sorted(by_hour), key=lambda hour: by_hour[hour])
    peak_day = max(sorted(by_day), key=lambda day: by_day[day])

    return HabitsData(
        most_active_hour=peak_hour,
        most_active_hour_date=earliest_in_hour[peak_hour],
        most_active_hour_total=by_hour[peak_hour],
        most_active_day=WEEKDAY_NAMES[peak_day],
        most_active_day_total=by_day[peak_day],
    )


# --- Daily series ---


def densify_daily(
    rows: Sequence[T],
    now: datetime,
    days: int,
    date_of: Callable[[T], str],
    empty: Callable[[str], T],
) -> list[T]:
    """
    Fill the trailing `days` dates (today included) with zero rows.

    Rows outside the range are dropped; output is oldest first.
    """
    by_date = {date_of(row): row for row in rows}
    return [by_date.get(key) or empty(key) for key in trailing_date_keys(now, days)]
