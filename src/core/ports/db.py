"""
Analytics storage interfaces.

Protocol-based interfaces for the four user-scoped collections.
Implementations: in-memory (tests, dev) and SQLite.

Invariants:
- I1: at most one FileIdentity per (user_id, hash)
- I2: at most one BrowsingDomain per (user_id, domain)
- I3: inserts violating I1/I2 raise ConflictError, never overwrite
- I4: a unit of work applies all of its writes or none of them
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from types import TracebackType
from typing import Protocol
from uuid import UUID

from src.domain.entities import (
    BrowsingDomain,
    BrowsingVisit,
    DownloadEvent,
    DownloadRecord,
    FileIdentity,
    VisitRecord,
)

# -----------------------------------------------------------------------------
# File identities
# -----------------------------------------------------------------------------


class FileIdentityRepoPort(Protocol):
    """Repository for first-seen file records."""

    def get_by_hash(self, user_id: str, content_hash: str) -> FileIdentity | None:
        """Get the identity for (user, hash), or None."""
        ...

    def get_by_id(self, user_id: str, file_id: UUID) -> FileIdentity | None:
        """Get an identity by id, scoped to the user."""
        ...

    def insert(self, identity: FileIdentity) -> FileIdentity:
        """Insert a new identity. Raises ConflictError if (user, hash) exists."""
        ...


# -----------------------------------------------------------------------------
# Download events
# -----------------------------------------------------------------------------


class DownloadEventRepoPort(Protocol):
    """Append-only repository for download events."""

    def append(self, event: DownloadEvent) -> DownloadEvent:
        """Append an event. Returns it with its insertion sequence set."""
        ...

    def get_record(self, user_id: str, event_id: UUID) -> DownloadRecord | None:
        """Get one event joined with its identity."""
        ...

    def list_records(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[DownloadRecord]:
        """List joined events with start <= downloaded_at < end, oldest first."""
        ...


# -----------------------------------------------------------------------------
# Browsing domains
# -----------------------------------------------------------------------------


class BrowsingDomainRepoPort(Protocol):
    """Repository for per-user visited domains."""

    def get_by_domain(self, user_id: str, domain: str) -> BrowsingDomain | None:
        """Get the domain record for (user, domain), or None."""
        ...

    def insert(self, domain: BrowsingDomain) -> BrowsingDomain:
        """Insert a domain. Raises ConflictError if (user, domain) exists."""
        ...


# -----------------------------------------------------------------------------
# Browsing visits
# -----------------------------------------------------------------------------


class BrowsingVisitRepoPort(Protocol):
    """Append-only repository for browsing visits."""

    def append_many(self, visits: Sequence[BrowsingVisit]) -> int:
        """Append visits. Returns the number stored."""
        ...

    def list_records(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[VisitRecord]:
        """List joined visits with start <= start_time < end, oldest first."""
        ...


# -----------------------------------------------------------------------------
# Unit of work
# -----------------------------------------------------------------------------


class UnitOfWorkPort(Protocol):
    """
    Transaction scope over all analytics repositories.

    Leaving the context without commit() discards pending writes.
    """

    @property
    def files(self) -> FileIdentityRepoPort: ...

    @property
    def download_events(self) -> DownloadEventRepoPort: ...

    @property
    def browsing_domains(self) -> BrowsingDomainRepoPort: ...

    @property
    def browsing_visits(self) -> BrowsingVisitRepoPort: ...

    def __enter__(self) -> UnitOfWorkPort: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None: ...

    def commit(self) -> None:
        """Apply pending writes. May raise ConflictError."""
        ...

    def rollback(self) -> None:
        """Discard pending writes."""
        ...


class AnalyticsStorePort(Protocol):
    """Factory for units of work over one backing store."""

    def unit_of_work(self) -> UnitOfWorkPort:
        """Open a new unit of work."""
        ...
