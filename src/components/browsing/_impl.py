"""
BrowsingAnalyticsService - Visit ingestion and on-demand aggregation.

Key behaviors:
- Ingest drops invalid payloads, resolves or creates one BrowsingDomain per
  distinct domain, then appends all visits in the same unit of work
- A domain insert that loses a race (ConflictError) retries the whole
  batch; the retry rereads the winner's domain id
- Visits are never deduplicated
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime, timedelta, tzinfo
from typing import Any

from src.core.errors import ConflictError, StoreUnavailableError, ValidationError, require_user
from src.core.ports.db import AnalyticsStorePort, UnitOfWorkPort
from src.core.ports.time import TimePort
from src.core.services import browsing_aggregate as agg
from src.core.services.activity import ActivityTrend, HabitsData, compute_habits, compute_trends
from src.core.services.windows import (
    Window,
    WindowSet,
    date_range,
    today_window,
    trailing_days_window,
    week_window,
)
from src.domain.entities import BrowsingDomain, BrowsingVisit, DownloadRecord, VisitRecord
from src.rules.models import AnalyticsRules

logger = logging.getLogger(__name__)


def _aware(ts: datetime, tz: tzinfo) -> datetime:
    """Naive datetimes are local wall-clock times."""
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=tz)


class BrowsingAnalyticsService:
    """Browsing analytics over an injected store and clock."""

    def __init__(
        self,
        store: AnalyticsStorePort,
        time_port: TimePort,
        config: AnalyticsRules | None = None,
    ) -> None:
        self._store = store
        self._time = time_port
        self._config = config or AnalyticsRules()

    def _now(self) -> datetime:
        return self._time.now_local()

    def _tz(self) -> tzinfo:
        return self._now().tzinfo or UTC

    def _records(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[VisitRecord]:
        with self._store.unit_of_work() as uow:
            return uow.browsing_visits.list_records(user_id, start, end)

    # --- Ingest ---

    def _resolve_domains(
        self, uow: UnitOfWorkPort, user_id: str, domains: Sequence[str]
    ) -> tuple[dict[str, BrowsingDomain], list[str]]:
        resolved: dict[str, BrowsingDomain] = {}
        created: list[str] = []
        for name in domains:
            existing = uow.browsing_domains.get_by_domain(user_id, name)
            if existing is None:
                existing = uow.browsing_domains.insert(
                    BrowsingDomain(user_id=user_id, domain=name, created_at=self._time.now_utc())
                )
                created.append(name)
            resolved[name] = existing
        return resolved, created

    def ingest_visits(
        self,
        user_id: str,
        raw_items: Iterable[Mapping[str, Any] | agg.VisitPayload],
    ) -> agg.IngestResult:
        """Store the valid visits of a batch. Returns how many were inserted."""
        user_id = require_user(user_id)
        items = list(raw_items)
        payloads = agg.parse_visit_batch(items)
        dropped = len(items) - len(payloads)
        if not payloads:
            return agg.IngestResult(inserted=0, dropped=dropped)

        # dict keeps first-seen order
        domains = list(dict.fromkeys(p.domain for p in payloads))

        for attempt in range(self._config.max_conflict_retries + 1):
            with self._store.unit_of_work() as uow:
                try:
                    resolved, created = self._resolve_domains(uow, user_id, domains)
                    visits = [
                        BrowsingVisit(
                            user_id=user_id,
                            domain_id=resolved[p.domain].id,
                            start_time=self._time.to_utc(p.start_time),
                            end_time=self._time.to_utc(p.end_time),
                            duration_seconds=p.duration_seconds,
                            click_link_count=p.click_link_count,
                            click_button_count=p.click_button_count,
                            click_other_count=p.click_other_count,
                            scroll_count=p.scroll_count,
                            key_event_count=p.key_event_count,
                        )
                        for p in payloads
                    ]
                    inserted = uow.browsing_visits.append_many(visits)
                    uow.commit()
                except ConflictError:
                    uow.rollback()
                    logger.info(
                        "Concurrent domain insert for user %s; rereading (attempt %d)",
                        user_id,
                        attempt + 1,
                    )
                    continue

            logger.debug(
                "Stored %d visits for user %s (%d dropped, %d new domains)",
                inserted,
                user_id,
                dropped,
                len(created),
            )
            return agg.IngestResult(inserted=inserted, dropped=dropped, new_domains=tuple(created))

        raise StoreUnavailableError(
            f"Could not store visits after {self._config.max_conflict_retries + 1} attempts"
        )

    # --- Aggregates ---

    def _window_records(self, user_id: str, windows: WindowSet) -> list[VisitRecord]:
        start = min(windows.previous_month.start, windows.previous_week.start)
        end = max(windows.month.end, windows.week.end)
        return self._records(user_id, start, end)

    def get_summary(self, user_id: str) -> agg.BrowsingSummary:
        user_id = require_user(user_id)
        windows = WindowSet.for_reference(self._now())
        return agg.summarize(self._window_records(user_id, windows), windows)

    def get_trends(self, user_id: str) -> ActivityTrend:
        """Seconds per window with the change versus the previous window."""
        user_id = require_user(user_id)
        windows = WindowSet.for_reference(self._now())
        records = self._window_records(user_id, windows)
        return compute_trends(agg.trend_samples(records), windows)

    def get_daily_activity(
        self, user_id: str, days: int | None = None
    ) -> list[agg.DailyBrowsingActivity]:
        user_id = require_user(user_id)
        now = self._now()
        window = trailing_days_window(
            now, days if days is not None else self._config.daily_activity_days
        )
        records = self._records(user_id, window.start, window.end)
        return agg.daily_activity(records, now.tzinfo or UTC)

    def get_habits(self, user_id: str) -> HabitsData:
        """Peak hour and weekday by summed duration over the current week."""
        user_id = require_user(user_id)
        now = self._now()
        window = week_window(now)
        records = self._records(user_id, window.start, window.end)
        return compute_habits(agg.habit_samples(records, now.tzinfo or UTC))

    def get_top_sites(self, user_id: str) -> list[agg.DomainTime]:
        """All-time ranking by total seconds."""
        user_id = require_user(user_id)
        return agg.time_by_domain(self._records(user_id), self._config.top_sites_limit)

    def get_today_by_domain(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[agg.DomainTime]:
        """Per-domain seconds for the current local day, or for [start, end)."""
        user_id = require_user(user_id)
        now = self._now()
        window = today_window(now)
        if start is not None or end is not None:
            tz = now.tzinfo or UTC
            window = Window(
                _aware(start, tz) if start else window.start,
                _aware(end, tz) if end else window.end,
            )
            if window.start >= window.end:
                raise ValidationError("start must be before end", field_name="start")
        records = self._records(user_id, window.start, window.end)
        return agg.time_by_domain(records, self._config.today_by_domain_limit)

    def get_period_stats(self, user_id: str) -> agg.PeriodStats:
        user_id = require_user(user_id)
        windows = WindowSet.for_reference(self._now())
        return agg.period_stats(self._window_records(user_id, windows), windows)

    def get_overview(self, user_id: str) -> agg.BrowsingOverview:
        user_id = require_user(user_id)
        windows = WindowSet.for_reference(self._now())
        return agg.overview(self._window_records(user_id, windows), windows)

    def get_recent_visits(self, user_id: str, limit: int = 10) -> list[agg.VisitItem]:
        """Most recent visits by end time. limit is capped at recent_visits_max."""
        user_id = require_user(user_id)
        if limit < 1:
            raise ValidationError("must be >= 1", field_name="limit")
        limit = min(limit, self._config.recent_visits_max)
        return agg.recent_visits(self._records(user_id), limit)

    def get_visit_history(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 20,
        filters: agg.VisitHistoryFilters | None = None,
    ) -> agg.VisitHistoryPage:
        """Paginated visits, each with the downloads made during it."""
        user_id = require_user(user_id)
        page, limit = agg.clamp_page(page, limit, self._config.visit_history_max_limit)
        filters = filters or agg.VisitHistoryFilters()
        start, end = date_range(filters.start_date, filters.end_date, self._tz())
        records = agg.filter_visits(self._records(user_id, start, end), filters)

        offset = (page - 1) * limit
        on_page = agg.latest_first(records)[offset : offset + limit]
        downloads = self._downloads_during(user_id, on_page)
        return agg.paginate_visits(records, downloads, page, limit)

    def _downloads_during(
        self, user_id: str, visits: Sequence[VisitRecord]
    ) -> list[DownloadRecord]:
        if not visits:
            return []
        start = min(v.start_time for v in visits)
        # end_time is inclusive for the visit/download join
        end = max(v.end_time for v in visits) + timedelta(microseconds=1)
        with self._store.unit_of_work() as uow:
            return uow.download_events.list_records(user_id, start, end)


def create_browsing_analytics_service(
    store: AnalyticsStorePort,
    time_port: TimePort,
    config: AnalyticsRules | None = None,
) -> BrowsingAnalyticsService:
    """Factory function to create a browsing analytics service."""
    return BrowsingAnalyticsService(store, time_port, config)
