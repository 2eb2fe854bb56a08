"""
Downloads component - Duplicate classification and download analytics.
"""

from src.core.services.activity import ActivityTrend, HabitsData, TrendMetric
from src.core.services.download_aggregate import (
    DailyDownloadActivity,
    DownloadInsights,
    DownloadSummary,
    FileMetricItem,
    FileMetrics,
    HistoryFilters,
    HistoryItem,
    HistoryPage,
    Pagination,
    SourceMetricItem,
    SourceStats,
    densify_daily_activity,
)

from ._impl import DownloadAnalyticsService, create_download_analytics_service
from .component import (
    run_get_daily_activity,
    run_get_download_event,
    run_get_file_metrics,
    run_get_filtered_history,
    run_get_habits,
    run_get_insights,
    run_get_source_stats,
    run_get_summary,
    run_get_trends,
    run_ingest_download,
)
from .models import (
    DownloadEventInput,
    FileMetricsInput,
    HistoryQueryInput,
    IngestDownloadInput,
    IngestDownloadOutput,
    SourceStatsInput,
    UserQueryInput,
)
from .ports import AnalyticsStorePort, TimePort

__all__ = [
    # Entry points
    "run_get_daily_activity",
    "run_get_download_event",
    "run_get_file_metrics",
    "run_get_filtered_history",
    "run_get_habits",
    "run_get_insights",
    "run_get_source_stats",
    "run_get_summary",
    "run_get_trends",
    "run_ingest_download",
    # Input models
    "DownloadEventInput",
    "FileMetricsInput",
    "HistoryFilters",
    "HistoryQueryInput",
    "IngestDownloadInput",
    "SourceStatsInput",
    "UserQueryInput",
    # Output models
    "ActivityTrend",
    "DailyDownloadActivity",
    "DownloadInsights",
    "DownloadSummary",
    "FileMetricItem",
    "FileMetrics",
    "HabitsData",
    "HistoryItem",
    "HistoryPage",
    "IngestDownloadOutput",
    "Pagination",
    "SourceMetricItem",
    "SourceStats",
    "TrendMetric",
    # Service
    "DownloadAnalyticsService",
    "create_download_analytics_service",
    "densify_daily_activity",
    # Ports
    "AnalyticsStorePort",
    "TimePort",
]
