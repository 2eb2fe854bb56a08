"""
Clock port.

Records are stored in UTC. Day, week and month windows are cut on the
local wall clock of the configured zone (rules.yaml: analytics.timezone),
so a local day can be 23 or 25 hours long across a DST change.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class TimePort(Protocol):
    """The current instant, in UTC and in the analytics timezone."""

    @property
    def timezone_name(self) -> str: ...

    def now_utc(self) -> datetime:
        """Aware UTC datetime; stamps created_at/first_seen_at values."""
        ...

    def now_local(self) -> datetime:
        """Aware local datetime; the reference point for calendar windows."""
        ...

    def to_utc(self, local_dt: datetime) -> datetime: ...

    def to_local(self, utc_dt: datetime) -> datetime: ...
