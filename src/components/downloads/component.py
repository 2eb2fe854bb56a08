"""
Downloads component - Duplicate classification and download analytics.

Shell layer: maps component inputs onto DownloadAnalyticsService calls.
Errors from the service (ValidationError, UnauthorizedError,
NotFoundError, StoreUnavailableError) propagate unchanged.

Invariants:
- I1: exactly one "new" event per (user, hash)
- I2: aggregates are pure functions of the stored events and "now"
- I3: a user with no events gets zero-filled results, never an error
"""

from __future__ import annotations

from src.core.services.activity import ActivityTrend, HabitsData
from src.core.services.download_aggregate import (
    DailyDownloadActivity,
    DownloadInsights,
    DownloadSummary,
    FileMetrics,
    HistoryItem,
    HistoryPage,
    SourceStats,
)
from src.core.services.file_identity import DownloadMetadata

from ._impl import DownloadAnalyticsService
from .models import (
    DownloadEventInput,
    FileMetricsInput,
    HistoryQueryInput,
    IngestDownloadInput,
    IngestDownloadOutput,
    SourceStatsInput,
    UserQueryInput,
)

# --- Component Entry Points ---


def run_ingest_download(
    inp: IngestDownloadInput,
    service: DownloadAnalyticsService,
) -> IngestDownloadOutput:
    """
    Record a download and classify it as new or duplicate.

    Args:
        inp: Reported download (hash plus metadata).
        service: Download analytics service.

    Returns:
        IngestDownloadOutput with the status and the ids involved.
    """
    metadata = DownloadMetadata(
        filename=inp.filename,
        url=inp.url,
        size=inp.size,
        file_extension=inp.file_extension,
        mime_type=inp.mime_type,
        source_domain=inp.source_domain,
        file_category=inp.file_category,
        duration=inp.duration,
        downloaded_at=inp.downloaded_at,
    )
    result = service.ingest(inp.user_id, inp.hash, metadata)
    return IngestDownloadOutput(
        status=result.status,
        event_id=result.event.id,
        file_id=result.file_identity.id,
        downloaded_at=result.event.downloaded_at,
        first_downloaded_at=result.file_identity.first_downloaded_at,
    )


def run_get_summary(inp: UserQueryInput, service: DownloadAnalyticsService) -> DownloadSummary:
    """All-time totals split by new/duplicate."""
    return service.get_summary(inp.user_id)


def run_get_trends(inp: UserQueryInput, service: DownloadAnalyticsService) -> ActivityTrend:
    """Today/week/month counts with the change versus the previous period."""
    return service.get_trends(inp.user_id)


def run_get_daily_activity(
    inp: UserQueryInput,
    service: DownloadAnalyticsService,
) -> list[DailyDownloadActivity]:
    """Trailing per-day counts; dates without downloads are omitted."""
    return service.get_daily_activity(inp.user_id)


def run_get_habits(inp: UserQueryInput, service: DownloadAnalyticsService) -> HabitsData:
    return service.get_habits(inp.user_id)


def run_get_file_metrics(inp: FileMetricsInput, service: DownloadAnalyticsService) -> FileMetrics:
    return service.get_file_metrics(inp.user_id, inp.filters)


def run_get_source_stats(inp: SourceStatsInput, service: DownloadAnalyticsService) -> SourceStats:
    return service.get_source_stats(inp.user_id, inp.top_n)


def run_get_filtered_history(
    inp: HistoryQueryInput,
    service: DownloadAnalyticsService,
) -> HistoryPage:
    """One page of the filtered history, newest first."""
    return service.get_filtered_history(inp.user_id, inp.page, inp.limit, inp.filters())


def run_get_download_event(
    inp: DownloadEventInput,
    service: DownloadAnalyticsService,
) -> HistoryItem:
    return service.get_download_event(inp.user_id, inp.event_id)


def run_get_insights(inp: UserQueryInput, service: DownloadAnalyticsService) -> DownloadInsights:
    return service.get_insights(inp.user_id)
