"""
DownloadAnalyticsService - Download ingestion and on-demand aggregation.

Reads the user's joined download records for the range each aggregate
needs and hands them to the pure functions in download_aggregate.
Nothing is pre-aggregated; every call recomputes from the event history.

Key behaviors:
- Ingest delegates the new/duplicate decision to FileIdentityService
- Calendar windows come from the TimePort's local time
- Every operation checks the user id first (UnauthorizedError)
"""

from __future__ import annotations

from datetime import UTC, datetime, tzinfo
from uuid import UUID

from src.core.errors import NotFoundError, require_user
from src.core.ports.db import AnalyticsStorePort
from src.core.ports.time import TimePort
from src.core.services import download_aggregate as agg
from src.core.services.activity import ActivityTrend, HabitsData, compute_habits, compute_trends
from src.core.services.file_identity import (
    ClassificationResult,
    DownloadMetadata,
    FileIdentityService,
)
from src.core.services.windows import (
    WindowSet,
    date_range,
    trailing_days_window,
    week_window,
)
from src.domain.entities import DownloadRecord
from src.rules.models import AnalyticsRules


class DownloadAnalyticsService:
    """Download analytics over an injected store and clock."""

    def __init__(
        self,
        store: AnalyticsStorePort,
        time_port: TimePort,
        config: AnalyticsRules | None = None,
    ) -> None:
        self._store = store
        self._time = time_port
        self._config = config or AnalyticsRules()
        self._classifier = FileIdentityService(
            store, time_port, max_conflict_retries=self._config.max_conflict_retries
        )

    def _now(self) -> datetime:
        return self._time.now_local()

    def _tz(self) -> tzinfo:
        return self._now().tzinfo or UTC

    def _records(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[DownloadRecord]:
        with self._store.unit_of_work() as uow:
            return uow.download_events.list_records(user_id, start, end)

    # --- Ingest ---

    def ingest(
        self, user_id: str, content_hash: str, metadata: DownloadMetadata
    ) -> ClassificationResult:
        """Classify and record one download."""
        return self._classifier.classify_and_record(user_id, content_hash, metadata)

    # --- Aggregates ---

    def get_summary(self, user_id: str) -> agg.DownloadSummary:
        """All-time totals."""
        user_id = require_user(user_id)
        return agg.summarize(self._records(user_id))

    def get_trends(self, user_id: str) -> ActivityTrend:
        user_id = require_user(user_id)
        windows = WindowSet.for_reference(self._now())
        start = min(windows.previous_month.start, windows.previous_week.start)
        end = max(windows.month.end, windows.week.end)
        records = self._records(user_id, start, end)
        return compute_trends(agg.trend_samples(records), windows)

    def get_daily_activity(
        self, user_id: str, days: int | None = None
    ) -> list[agg.DailyDownloadActivity]:
        """Sparse per-day counts over the trailing days (today included)."""
        user_id = require_user(user_id)
        now = self._now()
        window = trailing_days_window(
            now, days if days is not None else self._config.daily_activity_days
        )
        records = self._records(user_id, window.start, window.end)
        return agg.daily_activity(records, now.tzinfo or UTC)

    def get_habits(self, user_id: str) -> HabitsData:
        """Peak hour and weekday over the current calendar week."""
        user_id = require_user(user_id)
        now = self._now()
        window = week_window(now)
        records = self._records(user_id, window.start, window.end)
        return compute_habits(agg.habit_samples(records, now.tzinfo or UTC))

    def get_file_metrics(
        self, user_id: str, filters: agg.HistoryFilters | None = None
    ) -> agg.FileMetrics:
        user_id = require_user(user_id)
        records = self._records(user_id)
        if filters is not None:
            records = agg.filter_records(records, filters, self._tz())
        return agg.file_metrics(records)

    def get_source_stats(self, user_id: str, top_n: int | None = None) -> agg.SourceStats:
        user_id = require_user(user_id)
        return agg.source_stats(self._records(user_id), top_n)

    def get_filtered_history(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 20,
        filters: agg.HistoryFilters | None = None,
    ) -> agg.HistoryPage:
        user_id = require_user(user_id)
        agg.validate_paging(page, limit, self._config.history_max_limit)
        filters = filters or agg.HistoryFilters()
        tz = self._tz()
        start, end = date_range(filters.start_date, filters.end_date, tz)
        records = agg.filter_records(self._records(user_id, start, end), filters, tz)
        return agg.paginate_history(records, page, limit)

    def get_download_event(self, user_id: str, event_id: UUID) -> agg.HistoryItem:
        """One event joined with its identity."""
        user_id = require_user(user_id)
        with self._store.unit_of_work() as uow:
            record = uow.download_events.get_record(user_id, event_id)
        if record is None:
            raise NotFoundError("download_event", str(event_id))
        return agg.HistoryItem.from_record(record)

    def get_insights(self, user_id: str) -> agg.DownloadInsights:
        user_id = require_user(user_id)
        return agg.insights(self._records(user_id), self._now())


def create_download_analytics_service(
    store: AnalyticsStorePort,
    time_port: TimePort,
    config: AnalyticsRules | None = None,
) -> DownloadAnalyticsService:
    """Factory function to create a download analytics service."""
    return DownloadAnalyticsService(store, time_port, config)
