"""
Browsing component - Visit ingestion and time-spent analytics.

Shell layer over BrowsingAnalyticsService. Measures seconds of visit
duration rather than counts; a visit belongs to the window of its
start_time.

Invariants:
- I1: one BrowsingDomain per (user, domain), whatever the interleaving
- I2: invalid payloads never fail a batch; only valid ones are counted
"""

from __future__ import annotations

from src.core.services.activity import ActivityTrend, HabitsData
from src.core.services.browsing_aggregate import (
    BrowsingOverview,
    BrowsingSummary,
    DailyBrowsingActivity,
    DomainTime,
    IngestResult,
    PeriodStats,
    VisitHistoryPage,
    VisitItem,
)

from ._impl import BrowsingAnalyticsService
from .models import (
    IngestVisitsInput,
    RecentVisitsInput,
    TodayByDomainInput,
    UserQueryInput,
    VisitHistoryInput,
)

# --- Component Entry Points ---


def run_ingest_visits(inp: IngestVisitsInput, service: BrowsingAnalyticsService) -> IngestResult:
    """
    Store a batch of visits.

    Args:
        inp: User id and raw payloads (camelCase or snake_case keys).
        service: Browsing analytics service.

    Returns:
        IngestResult with the inserted and dropped counts.
    """
    return service.ingest_visits(inp.user_id, inp.events)


def run_get_summary(inp: UserQueryInput, service: BrowsingAnalyticsService) -> BrowsingSummary:
    return service.get_summary(inp.user_id)


def run_get_trends(inp: UserQueryInput, service: BrowsingAnalyticsService) -> ActivityTrend:
    return service.get_trends(inp.user_id)


def run_get_daily_activity(
    inp: UserQueryInput,
    service: BrowsingAnalyticsService,
) -> list[DailyBrowsingActivity]:
    return service.get_daily_activity(inp.user_id)


def run_get_habits(inp: UserQueryInput, service: BrowsingAnalyticsService) -> HabitsData:
    return service.get_habits(inp.user_id)


def run_get_top_sites(inp: UserQueryInput, service: BrowsingAnalyticsService) -> list[DomainTime]:
    """All-time top domains by seconds spent."""
    return service.get_top_sites(inp.user_id)


def run_get_today_by_domain(
    inp: TodayByDomainInput,
    service: BrowsingAnalyticsService,
) -> list[DomainTime]:
    return service.get_today_by_domain(inp.user_id, inp.start, inp.end)


def run_get_period_stats(inp: UserQueryInput, service: BrowsingAnalyticsService) -> PeriodStats:
    """Week vs previous week and month vs previous month."""
    return service.get_period_stats(inp.user_id)


def run_get_overview(inp: UserQueryInput, service: BrowsingAnalyticsService) -> BrowsingOverview:
    return service.get_overview(inp.user_id)


def run_get_recent_visits(
    inp: RecentVisitsInput,
    service: BrowsingAnalyticsService,
) -> list[VisitItem]:
    return service.get_recent_visits(inp.user_id, inp.limit)


def run_get_visit_history(
    inp: VisitHistoryInput,
    service: BrowsingAnalyticsService,
) -> VisitHistoryPage:
    """Paginated visits with the downloads made during each."""
    return service.get_visit_history(inp.user_id, inp.page, inp.limit, inp.filters())
