"""
Browsing aggregation - Payload parsing and pure functions over visits.

Key behaviors:
- Ingest filter: a payload needs a domain, a start and end time and a
  positive duration; anything else is dropped without failing the batch
- Metrics are in seconds and visits belong to the window of their start_time
- Domain rankings: total seconds desc, ties by domain asc
- site_count counts distinct domains
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict, dataclass, field
from datetime import UTC, date, datetime, tzinfo
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from src.core.services.activity import densify_daily
from src.core.services.ranking import RankedItem, sort_ranked
from src.core.services.windows import Window, WindowSet, local_date_key
from src.domain.entities import DownloadRecord, VisitRecord

logger = logging.getLogger(__name__)


# --- Ingest Payload ---


class VisitPayload(BaseModel):
    """
    One visit as reported by the browser extension.

    Accepts camelCase (startTime) or snake_case (start_time) keys.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    domain: str = Field(min_length=1)
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")
    duration_seconds: float = Field(gt=0, alias="durationSeconds")
    click_link_count: int = Field(default=0, ge=0, alias="clickLinkCount")
    click_button_count: int = Field(default=0, ge=0, alias="clickButtonCount")
    click_other_count: int = Field(default=0, ge=0, alias="clickOtherCount")
    scroll_count: int = Field(default=0, ge=0, alias="scrollCount")
    key_event_count: int = Field(default=0, ge=0, alias="keyEventCount")

    @field_validator("domain")
    @classmethod
    def domain_not_blank(cls, v: str) -> str:
        # stored as supplied; the caller owns normalization
        if not v.strip():
            raise ValueError("domain is empty")
        return v

    @field_validator("start_time", "end_time")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        # naive values stay naive; the ingesting service reads them as local time
        return v if v.tzinfo is None else v.astimezone(UTC)


def parse_visit_payload(raw: Mapping[str, Any] | VisitPayload) -> VisitPayload | None:
    """Validate one payload. Returns None when the item must be dropped."""
    if isinstance(raw, VisitPayload):
        return raw
    try:
        return VisitPayload.model_validate(raw)
    except PydanticValidationError as e:
        logger.debug("Dropping browsing payload (%d errors)", e.error_count())
        return None


def parse_visit_batch(
    raw_items: Iterable[Mapping[str, Any] | VisitPayload],
) -> list[VisitPayload]:
    """Keep the valid payloads of a batch, in input order."""
    parsed = [parse_visit_payload(raw) for raw in raw_items]
    return [p for p in parsed if p is not None]


# --- Summary / Samples ---


@dataclass(frozen=True)
class BrowsingSummary:
    total_seconds_today: float
    total_seconds_week: float
    total_seconds_month: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _seconds_in(records: Iterable[VisitRecord], window: Window) -> float:
    return sum(r.duration_seconds for r in records if window.contains(r.start_time))


def summarize(records: Sequence[VisitRecord], windows: WindowSet) -> BrowsingSummary:
    return BrowsingSummary(
        total_seconds_today=_seconds_in(records, windows.today),
        total_seconds_week=_seconds_in(records, windows.week),
        total_seconds_month=_seconds_in(records, windows.month),
    )


def trend_samples(records: Iterable[VisitRecord]) -> list[tuple[datetime, float]]:
    """Visits weigh their duration."""
    return [(r.start_time, r.duration_seconds) for r in records]


def habit_samples(records: Iterable[VisitRecord], tz: tzinfo) -> list[tuple[datetime, float]]:
    return [(r.start_time.astimezone(tz), r.duration_seconds) for r in records]


# --- Period Metrics ---


@dataclass(frozen=True)
class PeriodMetric:
    total_seconds: float
    visit_count: int
    site_count: int


def period_metric(records: Iterable[VisitRecord], window: Window | None = None) -> PeriodMetric:
    """Totals over records, optionally restricted to a window."""
    selected = [r for r in records if window is None or window.contains(r.start_time)]
    return PeriodMetric(
        total_seconds=sum(r.duration_seconds for r in selected),
        visit_count=len(selected),
        site_count=len({r.domain for r in selected}),
    )


@dataclass(frozen=True)
class PeriodStats:
    week: PeriodMetric
    prev_week: PeriodMetric
    month: PeriodMetric
    prev_month: PeriodMetric

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BrowsingOverview:
    today: PeriodMetric
    yesterday: PeriodMetric
    week: PeriodMetric
    prev_week: PeriodMetric
    month: PeriodMetric
    prev_month: PeriodMetric

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def period_stats(records: Sequence[VisitRecord], windows: WindowSet) -> PeriodStats:
    return PeriodStats(
        week=period_metric(records, windows.week),
        prev_week=period_metric(records, windows.previous_week),
        month=period_metric(records, windows.month),
        prev_month=period_metric(records, windows.previous_month),
    )


def overview(records: Sequence[VisitRecord], windows: WindowSet) -> BrowsingOverview:
    return BrowsingOverview(
        today=period_metric(records, windows.today),
        yesterday=period_metric(records, windows.yesterday),
        week=period_metric(records, windows.week),
        prev_week=period_metric(records, windows.previous_week),
        month=period_metric(records, windows.month),
        prev_month=period_metric(records, windows.previous_month),
    )


# --- Daily Activity ---


@dataclass(frozen=True)
class DailyBrowsingActivity:
    date: str
    total_seconds: float
    visit_count: int
    site_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def daily_activity(records: Iterable[VisitRecord], tz: tzinfo) -> list[DailyBrowsingActivity]:
    """Per local date of start_time, oldest first, sparse."""
    by_date: dict[str, list[VisitRecord]] = {}
    for record in records:
        by_date.setdefault(local_date_key(record.start_time, tz), []).append(record)

    rows = []
    for key in sorted(by_date):
        metric = period_metric(by_date[key])
        rows.append(
            DailyBrowsingActivity(key, metric.total_seconds, metric.visit_count, metric.site_count)
        )
    return rows


def densify_daily_activity(
    rows: Sequence[DailyBrowsingActivity], now: datetime, days: int
) -> list[DailyBrowsingActivity]:
    return densify_daily(
        rows,
        now,
        days,
        date_of=lambda row: row.date,
        empty=lambda key: DailyBrowsingActivity(key, 0, 0, 0),
    )


# --- Domain Rankings ---


@dataclass(frozen=True)
class DomainTime:
    domain: str
    total_seconds: float
    visit_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def time_by_domain(records: Iterable[VisitRecord], limit: int | None = None) -> list[DomainTime]:
    """Total seconds per domain, seconds desc then domain asc."""
    seconds: dict[str, float] = {}
    visits: dict[str, int] = {}
    for r in records:
        seconds[r.domain] = seconds.get(r.domain, 0) + r.duration_seconds
        visits[r.domain] = visits.get(r.domain, 0) + 1

    ranked = sort_ranked(
        RankedItem(key=domain, value=total, secondary_value=visits[domain])
        for domain, total in seconds.items()
    )
    if limit is not None:
        ranked = ranked[:limit]
    return [DomainTime(i.key, i.value, int(i.secondary_value or 0)) for i in ranked]


# --- Recent Visits / History ---


@dataclass(frozen=True)
class InteractionCounts:
    click_link: int = 0
    click_button: int = 0
    click_other: int = 0
    scroll: int = 0
    key_event: int = 0

    @classmethod
    def from_record(cls, record: VisitRecord) -> InteractionCounts:
        return cls(
            click_link=record.click_link_count,
            click_button=record.click_button_count,
            click_other=record.click_other_count,
            scroll=record.scroll_count,
            key_event=record.key_event_count,
        )


@dataclass(frozen=True)
class VisitDownload:
    """A download that happened during a visit."""

    event_id: UUID
    status: str
    downloaded_at: datetime
    filename: str
    size: int
    file_extension: str | None
    file_category: str

    @classmethod
    def from_record(cls, record: DownloadRecord) -> VisitDownload:
        return cls(
            event_id=record.event_id,
            status=record.status,
            downloaded_at=record.downloaded_at,
            filename=record.filename,
            size=record.size_or_zero,
            file_extension=record.file_extension,
            file_category=record.file_category,
        )


@dataclass(frozen=True)
class VisitItem:
    domain: str
    duration_seconds: float
    start_time: datetime
    end_time: datetime
    interactions: InteractionCounts
    downloads: tuple[VisitDownload, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def visit_item(record: VisitRecord, downloads: Iterable[DownloadRecord] = ()) -> VisitItem:
    return VisitItem(
        domain=record.domain,
        duration_seconds=record.duration_seconds,
        start_time=record.start_time,
        end_time=record.end_time,
        interactions=InteractionCounts.from_record(record),
        downloads=tuple(VisitDownload.from_record(d) for d in downloads),
    )


def latest_first(records: Iterable[VisitRecord]) -> list[VisitRecord]:
    """Order by end_time desc, most recently inserted first on ties."""
    return sorted(records, key=lambda r: (r.end_time, r.seq), reverse=True)


def recent_visits(records: Iterable[VisitRecord], limit: int) -> list[VisitItem]:
    return [visit_item(r) for r in latest_first(records)[:limit]]


@dataclass(frozen=True)
class VisitHistoryFilters:
    domain: str | None = None
    exclude_domains: tuple[str, ...] = ()
    start_date: date | datetime | str | None = None
    end_date: date | datetime | str | None = None


@dataclass(frozen=True)
class VisitHistoryPage:
    items: tuple[VisitItem, ...]
    total: int
    page: int
    pages: int
    limit: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def filter_visits(
    records: Iterable[VisitRecord], filters: VisitHistoryFilters
) -> list[VisitRecord]:
    """Domain filters; date filters are applied when fetching."""
    domain = filters.domain.strip().lower() if filters.domain else None
    excluded = {d.strip().lower() for d in filters.exclude_domains}
    return [
        r
        for r in records
        if (domain is None or r.domain.lower() == domain) and r.domain.lower() not in excluded
    ]


def downloads_during(
    visit: VisitRecord, downloads: Iterable[DownloadRecord]
) -> list[DownloadRecord]:
    """Downloads with start_time <= downloaded_at <= end_time, newest first."""
    inside = [d for d in downloads if visit.start_time <= d.downloaded_at <= visit.end_time]
    return sorted(inside, key=lambda d: (d.downloaded_at, d.seq), reverse=True)


def clamp_page(page: int, limit: int, max_limit: int) -> tuple[int, int]:
    """Clamp page to >= 1 and limit to 1..max_limit."""
    return max(1, page), min(max_limit, max(1, limit))


def paginate_visits(
    records: Sequence[VisitRecord],
    downloads: Sequence[DownloadRecord],
    page: int,
    limit: int,
) -> VisitHistoryPage:
    """One page of visits, latest first, each with its downloads."""
    ordered = latest_first(records)
    offset = (page - 1) * limit
    window = ordered[offset : offset + limit]
    return VisitHistoryPage(
        items=tuple(visit_item(r, downloads_during(r, downloads)) for r in window),
        total=len(ordered),
        page=page,
        pages=math.ceil(len(ordered) / limit),
        limit=limit,
    )


@dataclass(frozen=True)
class IngestResult:
    inserted: int
    dropped: int = 0
    new_domains: tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
