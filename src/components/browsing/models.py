"""
Browsing component input/output models.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from src.core.services.browsing_aggregate import VisitHistoryFilters, VisitPayload

# --- Input Models ---


@dataclass(frozen=True)
class UserQueryInput:
    user_id: str


@dataclass(frozen=True)
class IngestVisitsInput:
    """A batch of raw visit payloads from the browser extension."""

    user_id: str
    events: Sequence[Mapping[str, Any] | VisitPayload]


@dataclass(frozen=True)
class TodayByDomainInput:
    user_id: str
    start: datetime | None = None
    end: datetime | None = None


@dataclass(frozen=True)
class RecentVisitsInput:
    user_id: str
    limit: int = 10


@dataclass(frozen=True)
class VisitHistoryInput:
    user_id: str
    page: int = 1
    limit: int = 20
    domain: str | None = None
    exclude_domains: tuple[str, ...] = ()
    start_date: date | datetime | str | None = None
    end_date: date | datetime | str | None = None

    def filters(self) -> VisitHistoryFilters:
        return VisitHistoryFilters(
            domain=self.domain,
            exclude_domains=self.exclude_domains,
            start_date=self.start_date,
            end_date=self.end_date,
        )
