"""
Downloads component port definitions.
"""

from __future__ import annotations

from src.core.ports.db import (
    AnalyticsStorePort,
    DownloadEventRepoPort,
    FileIdentityRepoPort,
    UnitOfWorkPort,
)
from src.core.ports.time import TimePort

__all__ = [
    "AnalyticsStorePort",
    "DownloadEventRepoPort",
    "FileIdentityRepoPort",
    "TimePort",
    "UnitOfWorkPort",
]
