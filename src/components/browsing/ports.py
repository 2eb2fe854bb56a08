"""
Browsing component port definitions.
"""

from __future__ import annotations

from src.core.ports.db import (
    AnalyticsStorePort,
    BrowsingDomainRepoPort,
    BrowsingVisitRepoPort,
    UnitOfWorkPort,
)
from src.core.ports.time import TimePort

__all__ = [
    "AnalyticsStorePort",
    "BrowsingDomainRepoPort",
    "BrowsingVisitRepoPort",
    "TimePort",
    "UnitOfWorkPort",
]
