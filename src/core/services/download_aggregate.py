"""
Download aggregation - Pure functions over joined download records.

Every function takes the records already fetched for the relevant range
and returns frozen result objects. No storage or clock access here.

Key behaviors:
- Summary: counts and byte totals split by new/duplicate (missing size = 0)
- Daily activity: local-date buckets, sparse (dates without events omitted)
- File metrics: by category and by extension
- Source stats: by source domain, size desc, optional top-N + Others
- History: filter, order newest first, paginate
- Insights: first download, streaks, size and duplicate statistics

Invariants:
- I1: total_count == new_count + duplicate_count (and likewise for sizes)
- I2: the same record set always produces the same output order
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Any
from uuid import UUID

from src.core.errors import ValidationError
from src.core.services.activity import densify_daily
from src.core.services.ranking import RankedItem, rank_with_others
from src.core.services.windows import date_range, local_date_key
from src.domain.entities import FILE_CATEGORIES, DownloadRecord

# --- Summary ---


@dataclass(frozen=True)
class DownloadSummary:
    total_count: int
    new_count: int
    duplicate_count: int
    total_size: int
    new_size: int
    duplicate_size: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class _Tally:
    """Mutable new/duplicate accumulator."""

    new_count: int = 0
    new_size: int = 0
    duplicate_count: int = 0
    duplicate_size: int = 0

    def add(self, record: DownloadRecord) -> None:
        if record.status == "new":
            self.new_count += 1
            self.new_size += record.size_or_zero
        else:
            self.duplicate_count += 1
            self.duplicate_size += record.size_or_zero

    @property
    def count(self) -> int:
        return self.new_count + self.duplicate_count

    @property
    def size(self) -> int:
        return self.new_size + self.duplicate_size


def _tally(records: Iterable[DownloadRecord]) -> _Tally:
    tally = _Tally()
    for record in records:
        tally.add(record)
    return tally


def summarize(records: Iterable[DownloadRecord]) -> DownloadSummary:
    """Counts and sizes of the given records, split by status."""
    tally = _tally(records)
    return DownloadSummary(
        total_count=tally.count,
        new_count=tally.new_count,
        duplicate_count=tally.duplicate_count,
        total_size=tally.size,
        new_size=tally.new_size,
        duplicate_size=tally.duplicate_size,
    )


def trend_samples(records: Iterable[DownloadRecord]) -> list[tuple[datetime, float]]:
    """One unit of weight per download."""
    return [(r.downloaded_at, 1) for r in records]


def habit_samples(records: Iterable[DownloadRecord], tz: tzinfo) -> list[tuple[datetime, float]]:
    return [(r.downloaded_at.astimezone(tz), 1) for r in records]


# --- Daily Activity ---


@dataclass(frozen=True)
class DailyDownloadActivity:
    date: str
    total_downloads: int
    unique_downloads: int
    duplicate_downloads: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def daily_activity(records: Iterable[DownloadRecord], tz: tzinfo) -> list[DailyDownloadActivity]:
    """Per local date counts, oldest first. Dates without events are omitted."""
    by_date: dict[str, _Tally] = {}
    for record in records:
        key = local_date_key(record.downloaded_at, tz)
        by_date.setdefault(key, _Tally()).add(record)

    return [
        DailyDownloadActivity(
            date=key,
            total_downloads=tally.count,
            unique_downloads=tally.new_count,
            duplicate_downloads=tally.duplicate_count,
        )
        for key, tally in sorted(by_date.items())
    ]


def densify_daily_activity(
    rows: Sequence[DailyDownloadActivity], now: datetime, days: int
) -> list[DailyDownloadActivity]:
    """Zero-fill the trailing `days` dates for chart rendering."""
    return densify_daily(
        rows,
        now,
        days,
        date_of=lambda row: row.date,
        empty=lambda key: DailyDownloadActivity(key, 0, 0, 0),
    )


# --- File Metrics ---


@dataclass(frozen=True)
class FileMetricItem:
    name: str
    count: int
    size: int
    new_count: int
    new_size: int
    duplicate_count: int
    duplicate_size: int

    @classmethod
    def from_tally(cls, name: str, tally: _Tally) -> FileMetricItem:
        return cls(
            name=name,
            count=tally.count,
            size=tally.size,
            new_count=tally.new_count,
            new_size=tally.new_size,
            duplicate_count=tally.duplicate_count,
            duplicate_size=tally.duplicate_size,
        )


@dataclass(frozen=True)
class FileMetrics:
    categories: tuple[FileMetricItem, ...]
    extensions: tuple[FileMetricItem, ...]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def file_metrics(records: Iterable[DownloadRecord]) -> FileMetrics:
    """
    Group by category and by extension.

    Every vocabulary category is present, zero-filled when unused.
    Categories: count desc, then vocabulary order.
    Extensions: only those present, count desc, then name asc.
    """
    by_category: dict[str, _Tally] = {name: _Tally() for name in FILE_CATEGORIES}
    by_extension: dict[str, _Tally] = {}
    for record in records:
        by_category.setdefault(record.file_category, _Tally()).add(record)
        if record.file_extension:
            by_extension.setdefault(record.file_extension, _Tally()).add(record)

    def vocab_index(name: str) -> int:
        return FILE_CATEGORIES.index(name) if name in FILE_CATEGORIES else len(FILE_CATEGORIES)

    categories = sorted(
        (FileMetricItem.from_tally(name, t) for name, t in by_category.items()),
        key=lambda item: (-item.count, vocab_index(item.name)),
    )
    extensions = sorted(
        (FileMetricItem.from_tally(name, t) for name, t in by_extension.items()),
        key=lambda item: (-item.count, item.name),
    )
    return FileMetrics(categories=tuple(categories), extensions=tuple(extensions))


# --- Source Stats ---


@dataclass(frozen=True)
class SourceMetricItem:
    domain: str
    total_count: int
    new_count: int
    duplicate_count: int
    total_size: int
    new_size: int
    duplicate_size: int
    others_keys: tuple[str, ...] = ()
    excluded_keys: tuple[str, ...] = ()

    @property
    def is_others(self) -> bool:
        return bool(self.others_keys)


@dataclass(frozen=True)
class SourceStats:
    sources: tuple[SourceMetricItem, ...]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _source_from_ranked(item: RankedItem) -> SourceMetricItem:
    return SourceMetricItem(
        domain=item.key,
        total_count=int(item.secondary_value or 0),
        new_count=int(item.extra["new_count"]),
        duplicate_count=int(item.extra["duplicate_count"]),
        total_size=int(item.value),
        new_size=int(item.extra["new_size"]),
        duplicate_size=int(item.extra["duplicate_size"]),
        others_keys=item.others_keys,
        excluded_keys=item.excluded_keys,
    )


def source_stats(records: Iterable[DownloadRecord], top_n: int | None = None) -> SourceStats:
    """
    Group by source domain, ordered by total size desc then domain asc.

    Records without a source domain are left out. With top_n, domains past
    the first top_n are merged into one "Others" item.
    """
    by_domain: dict[str, _Tally] = {}
    for record in records:
        if record.source_domain:
            by_domain.setdefault(record.source_domain, _Tally()).add(record)

    ranked = [
        RankedItem(
            key=domain,
            value=tally.size,
            secondary_value=tally.count,
            extra={
                "new_count": tally.new_count,
                "duplicate_count": tally.duplicate_count,
                "new_size": tally.new_size,
                "duplicate_size": tally.duplicate_size,
            },
        )
        for domain, tally in by_domain.items()
    ]
    limit = len(ranked) if top_n is None else top_n
    kept = rank_with_others(ranked, limit)
    return SourceStats(sources=tuple(_source_from_ranked(item) for item in kept))


# --- History ---


@dataclass(frozen=True)
class HistoryFilters:
    """Optional filters for the download history. All combine with AND."""

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


@dataclass(frozen=True)
class HistoryItem:
    event_id: UUID
    file_id: UUID
    filename: str
    url: str
    hash: str
    size: int | None
    file_extension: str | None
    file_category: str
    mime_type: str | None
    source_domain: str | None
    status: str
    duration: float | None
    downloaded_at: datetime
    first_downloaded_at: datetime

    @classmethod
    def from_record(cls, record: DownloadRecord) -> HistoryItem:
        return cls(
            event_id=record.event_id,
            file_id=record.file_id,
            filename=record.filename,
            url=record.url,
            hash=record.hash,
            size=record.size,
            file_extension=record.file_extension,
            file_category=record.file_category,
            mime_type=record.mime_type,
            source_domain=record.source_domain,
            status=record.status,
            duration=record.duration,
            downloaded_at=record.downloaded_at,
            first_downloaded_at=record.first_downloaded_at,
        )


@dataclass(frozen=True)
class Pagination:
    current: int
    pages: int
    total: int
    limit: int


@dataclass(frozen=True)
class HistoryPage:
    data: tuple[HistoryItem, ...]
    pagination: Pagination

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def validate_paging(page: int, limit: int, max_limit: int) -> None:
    if page < 1:
        raise ValidationError("must be >= 1", field_name="page")
    if limit < 1 or limit > max_limit:
        raise ValidationError(f"must be between 1 and {max_limit}", field_name="limit")


def validate_filters(filters: HistoryFilters) -> None:
    if filters.status is not None and filters.status not in ("new", "duplicate"):
        raise ValidationError(f"unknown status '{filters.status}'", field_name="status")
    if filters.file_category is not None and filters.file_category.lower() not in FILE_CATEGORIES:
        raise ValidationError(
            f"unknown category '{filters.file_category}'", field_name="file_category"
        )
    if filters.hour is not None and not 0 <= filters.hour <= 23:
        raise ValidationError("must be between 0 and 23", field_name="hour")


def filter_records(
    records: Iterable[DownloadRecord], filters: HistoryFilters, tz: tzinfo
) -> list[DownloadRecord]:
    """Apply every set filter. Text filters are case-insensitive."""
    validate_filters(filters)
    start, end = date_range(filters.start_date, filters.end_date, tz)
    category = filters.file_category.lower() if filters.file_category else None
    extension = filters.file_extension.lower().lstrip(".") if filters.file_extension else None
    domain = filters.source_domain.lower() if filters.source_domain else None
    excluded = {d.lower() for d in filters.exclude_source_domains}
    search = filters.search.strip().lower() if filters.search else None

    def keep(r: DownloadRecord) -> bool:
        source = (r.source_domain or "").lower()
        if filters.status is not None and r.status != filters.status:
            return False
        if category is not None and r.file_category != category:
            return False
        if extension is not None and (r.file_extension or "").lower() != extension:
            return False
        if domain is not None and source != domain:
            return False
        if excluded and source in excluded:
            return False
        if start is not None and r.downloaded_at < start:
            return False
        if end is not None and r.downloaded_at >= end:
            return False
        if search:
            haystacks = (r.filename.lower(), r.url.lower(), source)
            if not any(search in text for text in haystacks):
                return False
        if filters.file_id is not None and r.file_id != filters.file_id:
            return False
        if filters.event_id is not None and r.event_id != filters.event_id:
            return False
        if filters.hour is not None and r.downloaded_at.astimezone(tz).hour != filters.hour:
            return False
        return True

    return [r for r in records if keep(r)]


def newest_first(records: Iterable[DownloadRecord]) -> list[DownloadRecord]:
    return sorted(records, key=lambda r: (r.downloaded_at, r.seq), reverse=True)


def paginate_history(records: Sequence[DownloadRecord], page: int, limit: int) -> HistoryPage:
    """Slice an already filtered list, newest first."""
    ordered = newest_first(records)
    total = len(ordered)
    offset = (page - 1) * limit
    return HistoryPage(
        data=tuple(HistoryItem.from_record(r) for r in ordered[offset : offset + limit]),
        pagination=Pagination(
            current=page,
            pages=math.ceil(total / limit),
            total=total,
            limit=limit,
        ),
    )


# --- Insights ---


@dataclass(frozen=True)
class FileRef:
    file_id: UUID
    filename: str
    size: int | None
    downloaded_at: datetime


@dataclass(frozen=True)
class DuplicatedFile:
    file_id: UUID
    filename: str
    duplicate_count: int


@dataclass(frozen=True)
class DownloadInsights:
    """Lifetime statistics for one user."""

    first_download: FileRef | None
    average_per_day: float
    current_streak: int
    longest_streak: int
    unique_files: int
    average_file_size: float
    largest_file: FileRef | None
    smallest_file: FileRef | None
    total_storage_used: int
    potential_savings_percent: float
    duplicate_rate_percent: float
    most_duplicated_file: DuplicatedFile | None
    average_duplicates_per_file: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _percent(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def streaks(days: set[date], today: date) -> tuple[int, int]:
    """
    (current, longest) runs of consecutive active days.

    The current streak may end yesterday; a day is still open until midnight.
    """
    longest = 0
    for day in days:
        if day - timedelta(days=1) in days:
            continue
        length = 1
        while day + timedelta(days=length) in days:
            length += 1
        longest = max(longest, length)

    anchor = today if today in days else today - timedelta(days=1)
    current = 0
    while anchor - timedelta(days=current) in days:
        current += 1
    return current, longest


def insights(records: Sequence[DownloadRecord], now: datetime) -> DownloadInsights:
    """Compute lifetime insights. `now` is local time; its tz sets the calendar."""
    tz = now.tzinfo
    ordered = sorted(records, key=lambda r: (r.downloaded_at, r.seq))
    tally = _tally(ordered)

    first = ordered[0] if ordered else None
    active_days = {r.downloaded_at.astimezone(tz).date() for r in ordered}
    current_streak, longest_streak = streaks(active_days, now.date())

    average_per_day = 0.0
    if first is not None:
        span_days = (now.date() - first.downloaded_at.astimezone(tz).date()).days + 1
        average_per_day = round(len(ordered) / max(span_days, 1), 2)

    unique: dict[UUID, DownloadRecord] = {}
    duplicates: dict[UUID, int] = {}
    for r in ordered:
        unique.setdefault(r.file_id, r)
        if r.status == "duplicate":
            duplicates[r.file_id] = duplicates.get(r.file_id, 0) + 1

    sized = [r for r in unique.values() if r.size is not None]
    largest = max(sized, key=lambda r: r.size or 0, default=None)
    smallest = min(sized, key=lambda r: r.size or 0, default=None)

    most_duplicated: DuplicatedFile | None = None
    if duplicates:
        file_id = max(duplicates, key=lambda fid: duplicates[fid])
        most_duplicated = DuplicatedFile(
            file_id=file_id,
            filename=unique[file_id].filename,
            duplicate_count=duplicates[file_id],
        )

    def ref(r: DownloadRecord | None) -> FileRef | None:
        if r is None:
            return None
        return FileRef(r.file_id, r.filename, r.size, r.first_downloaded_at)

    return DownloadInsights(
        first_download=ref(first),
        average_per_day=average_per_day,
        current_streak=current_streak,
        longest_streak=longest_streak,
        unique_files=len(unique),
        average_file_size=round(sum(r.size or 0 for r in sized) / len(sized), 2) if sized else 0.0,
        largest_file=ref(largest),
        smallest_file=ref(smallest),
        total_storage_used=tally.new_size,
        potential_savings_percent=_percent(tally.duplicate_size, tally.size),
        duplicate_rate_percent=_percent(tally.duplicate_count, tally.count),
        most_duplicated_file=most_duplicated,
        average_duplicates_per_file=(
            round(tally.duplicate_count / len(duplicates), 2) if duplicates else 0.0
        ),
    )
