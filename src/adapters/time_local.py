"""
Clock adapters.

LocalTimeAdapter reads the system clock and reports it in the configured
IANA zone; the analytics windows are cut on that zone's wall clock.
FrozenTimeAdapter pins the instant so window tests are deterministic.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo


def _with_zone(dt: datetime, zone: tzinfo) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=zone)


class LocalTimeAdapter:
    """System clock viewed from one timezone (zoneinfo handles DST)."""

    def __init__(self, tz_name: str = "UTC") -> None:
        self._zone_name = tz_name
        self._zone = ZoneInfo(tz_name)

    @property
    def timezone_name(self) -> str:
        return self._zone_name

    def now_utc(self) -> datetime:
        return datetime.now(UTC)

    def now_local(self) -> datetime:
        return self.to_local(self.now_utc())

    def to_utc(self, local_dt: datetime) -> datetime:
        """Naive input is read as local wall-clock time."""
        return _with_zone(local_dt, self._zone).astimezone(UTC)

    def to_local(self, utc_dt: datetime) -> datetime:
        """Naive input is read as UTC."""
        return _with_zone(utc_dt, UTC).astimezone(self._zone)


class FrozenTimeAdapter(LocalTimeAdapter):
    """A clock that only moves when advance() is called."""

    def __init__(self, frozen_utc: datetime, tz_name: str = "UTC") -> None:
        super().__init__(tz_name)
        self._instant = _with_zone(frozen_utc, UTC).astimezone(UTC)

    @classmethod
    def at_local(cls, local_dt: datetime, tz_name: str = "UTC") -> FrozenTimeAdapter:
        """Freeze at a wall-clock time in tz_name."""
        return cls(_with_zone(local_dt, ZoneInfo(tz_name)), tz_name)

    def now_utc(self) -> datetime:
        return self._instant

    def advance(self, delta: timedelta) -> None:
        self._instant += delta


def create_time_adapter(tz_name: str = "UTC") -> LocalTimeAdapter:
    """Factory function to create a time adapter."""
    return LocalTimeAdapter(tz_name)
