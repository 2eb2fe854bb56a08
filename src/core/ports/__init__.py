# Ports (Protocol Interfaces)
# Store and clock interfaces; implementations live in src/adapters

from src.core.ports.db import (
    AnalyticsStorePort,
    BrowsingDomainRepoPort,
    BrowsingVisitRepoPort,
    DownloadEventRepoPort,
    FileIdentityRepoPort,
    UnitOfWorkPort,
)
from src.core.ports.time import TimePort

__all__ = [
    "AnalyticsStorePort",
    "BrowsingDomainRepoPort",
    "BrowsingVisitRepoPort",
    "DownloadEventRepoPort",
    "FileIdentityRepoPort",
    "TimePort",
    "UnitOfWorkPort",
]
