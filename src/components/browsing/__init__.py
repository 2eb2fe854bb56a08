"""
Browsing component - Visit ingestion and time-spent analytics.
"""

from src.core.services.activity import ActivityTrend, HabitsData, TrendMetric
from src.core.services.browsing_aggregate import (
    BrowsingOverview,
    BrowsingSummary,
    DailyBrowsingActivity,
    DomainTime,
    IngestResult,
    InteractionCounts,
    PeriodMetric,
    PeriodStats,
    VisitDownload,
    VisitHistoryFilters,
    VisitHistoryPage,
    VisitItem,
    VisitPayload,
    densify_daily_activity,
)

from ._impl import BrowsingAnalyticsService, create_browsing_analytics_service
from .component import (
    run_get_daily_activity,
    run_get_habits,
    run_get_overview,
    run_get_period_stats,
    run_get_recent_visits,
    run_get_summary,
    run_get_today_by_domain,
    run_get_top_sites,
    run_get_trends,
    run_get_visit_history,
    run_ingest_visits,
)
from .models import (
    IngestVisitsInput,
    RecentVisitsInput,
    TodayByDomainInput,
    UserQueryInput,
    VisitHistoryInput,
)
from .ports import AnalyticsStorePort, TimePort

__all__ = [
    # Entry points
    "run_get_daily_activity",
    "run_get_habits",
    "run_get_overview",
    "run_get_period_stats",
    "run_get_recent_visits",
    "run_get_summary",
    "run_get_today_by_domain",
    "run_get_top_sites",
    "run_get_trends",
    "run_get_visit_history",
    "run_ingest_visits",
    # Input models
    "IngestVisitsInput",
    "RecentVisitsInput",
    "TodayByDomainInput",
    "UserQueryInput",
    "VisitHistoryFilters",
    "VisitHistoryInput",
    "VisitPayload",
    # Output models
    "ActivityTrend",
    "BrowsingOverview",
    "BrowsingSummary",
    "DailyBrowsingActivity",
    "DomainTime",
    "HabitsData",
    "IngestResult",
    "InteractionCounts",
    "PeriodMetric",
    "PeriodStats",
    "TrendMetric",
    "VisitDownload",
    "VisitHistoryPage",
    "VisitItem",
    # Service
    "BrowsingAnalyticsService",
    "create_browsing_analytics_service",
    "densify_daily_activity",
    # Ports
    "AnalyticsStorePort",
    "TimePort",
]
