"""
Downloads component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from uuid import UUID

from src.core.services.download_aggregate import HistoryFilters
from src.domain.entities import DownloadStatus

# --- Input Models ---


@dataclass(frozen=True)
class UserQueryInput:
    """Input for the per-user aggregates that take no further arguments."""

    user_id: str


@dataclass(frozen=True)
class IngestDownloadInput:
    """A download reported by the browser extension."""

    user_id: str
    hash: str
    filename: str
    url: str
    size: int | None = None
    file_extension: str | None = None
    mime_type: str | None = None
    source_domain: str | None = None
    file_category: str | None = None
    duration: float | None = None
    downloaded_at: datetime | None = None


@dataclass(frozen=True)
class FileMetricsInput:
    user_id: str
    filters: HistoryFilters = field(default_factory=HistoryFilters)


@dataclass(frozen=True)
class SourceStatsInput:
    user_id: str
    top_n: int | None = None


@dataclass(frozen=True)
class HistoryQueryInput:
    user_id: str
    page: int = 1
    limit: int = 20
    status: str | None = None
    file_category: str | None = None
    file_extension: str | None = None
    source_domain: str | None = None
    exclude_source_domains: tuple[str, ...] = ()
    start_date: date | datetime | str | None = None
    end_date: date | datetime | str | None = None
    search: str | None = None
    file_id: UUID | None = None
    event_id: UUID | None = None
    hour: int | None = None

    def filters(self) -> HistoryFilters:
        return HistoryFilters(
            status=self.status,
            file_category=self.file_category,
            file_extension=self.file_extension,
            source_domain=self.source_domain,
            exclude_source_domains=self.exclude_source_domains,
            start_date=self.start_date,
            end_date=self.end_date,
            search=self.search,
            file_id=self.file_id,
            event_id=self.event_id,
            hour=self.hour,
        )


@dataclass(frozen=True)
class DownloadEventInput:
    user_id: str
    event_id: UUID


# --- Output Models ---


@dataclass(frozen=True)
class IngestDownloadOutput:
    """Classification outcome of one download."""

    status: DownloadStatus
    event_id: UUID
    file_id: UUID
    downloaded_at: datetime
    first_downloaded_at: datetime

    @property
    def is_duplicate(self) -> bool:
        return self.status == "duplicate"
