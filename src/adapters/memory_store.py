"""
In-memory analytics store for testing/dev.

Same contract as the SQLite store: writes are staged per unit of work and
applied on commit under one lock, and uniqueness of (user, hash) and
(user, domain) is checked both on insert and again on commit.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence
from datetime import datetime
from types import TracebackType
from uuid import UUID

from src.core.errors import ConflictError
from src.domain.entities import (
    BrowsingDomain,
    BrowsingVisit,
    DownloadEvent,
    DownloadRecord,
    FileIdentity,
    VisitRecord,
)


def _in_range(ts: datetime, start: datetime | None, end: datetime | None) -> bool:
    if start is not None and ts < start:
        return False
    if end is not None and ts >= end:
        return False
    return True


class InMemoryStore:
    """Committed state shared by all units of work."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.files: dict[tuple[str, str], FileIdentity] = {}
        self.files_by_id: dict[UUID, FileIdentity] = {}
        self.events: list[DownloadEvent] = []
        self.domains: dict[tuple[str, str], BrowsingDomain] = {}
        self.domains_by_id: dict[UUID, BrowsingDomain] = {}
        self.visits: list[BrowsingVisit] = []
        self._seq = 0

    def next_seq(self) -> int:
        """Next insertion sequence. Caller holds the lock."""
        self._seq += 1
        return self._seq

    def unit_of_work(self) -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(self)

    def clear(self) -> None:
        """Clear all data (for testing)."""
        with self.lock:
            self.files.clear()
            self.files_by_id.clear()
            self.events.clear()
            self.domains.clear()
            self.domains_by_id.clear()
            self.visits.clear()


# --- Repositories ---


class InMemoryFileIdentityRepo:
    def __init__(self, uow: InMemoryUnitOfWork) -> None:
        self._uow = uow
        self._store = uow.store

    def get_by_hash(self, user_id: str, content_hash: str) -> FileIdentity | None:
        key = (user_id, content_hash)
        staged = self._uow.staged_files.get(key)
        if staged is not None:
            return staged
        with self._store.lock:
            return self._store.files.get(key)

    def get_by_id(self, user_id: str, file_id: UUID) -> FileIdentity | None:
        identity = self._uow.lookup_file(file_id)
        if identity is None or identity.user_id != user_id:
            return None
        return identity

    def insert(self, identity: FileIdentity) -> FileIdentity:
        key = (identity.user_id, identity.hash)
        with self._store.lock:
            if key in self._store.files or key in self._uow.staged_files:
                raise ConflictError("file_identity", key)
        self._uow.staged_files[key] = identity
        return identity


class InMemoryDownloadEventRepo:
    def __init__(self, uow: InMemoryUnitOfWork) -> None:
        self._uow = uow
        self._store = uow.store

    def append(self, event: DownloadEvent) -> DownloadEvent:
        with self._store.lock:
            stored = event.model_copy(update={"seq": self._store.next_seq()})
        self._uow.staged_events.append(stored)
        return stored

    def _join(self, event: DownloadEvent) -> DownloadRecord | None:
        identity = self._uow.lookup_file(event.file_id)
        if identity is None:
            return None
        return DownloadRecord.join(event, identity)

    def get_record(self, user_id: str, event_id: UUID) -> DownloadRecord | None:
        for event in self._uow.all_events():
            if event.id == event_id and event.user_id == user_id:
                return self._join(event)
        return None

    def list_records(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[DownloadRecord]:
        records = []
        for event in self._uow.all_events():
            if event.user_id != user_id or not _in_range(event.downloaded_at, start, end):
                continue
            record = self._join(event)
            if record is not None:
                records.append(record)
        records.sort(key=lambda r: (r.downloaded_at, r.seq))
        return records


class InMemoryBrowsingDomainRepo:
    def __init__(self, uow: InMemoryUnitOfWork) -> None:
        self._uow = uow
        self._store = uow.store

    def get_by_domain(self, user_id: str, domain: str) -> BrowsingDomain | None:
        key = (user_id, domain)
        staged = self._uow.staged_domains.get(key)
        if staged is not None:
            return staged
        with self._store.lock:
            return self._store.domains.get(key)

    def insert(self, domain: BrowsingDomain) -> BrowsingDomain:
        key = (domain.user_id, domain.domain)
        with self._store.lock:
            if key in self._store.domains or key in self._uow.staged_domains:
                raise ConflictError("browsing_domain", key)
        self._uow.staged_domains[key] = domain
        return domain


class InMemoryBrowsingVisitRepo:
    def __init__(self, uow: InMemoryUnitOfWork) -> None:
        self._uow = uow
        self._store = uow.store

    def append_many(self, visits: Sequence[BrowsingVisit]) -> int:
        with self._store.lock:
            stored = [v.model_copy(update={"seq": self._store.next_seq()}) for v in visits]
        self._uow.staged_visits.extend(stored)
        return len(stored)

    def list_records(
        self,
        user_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> list[VisitRecord]:
        records = []
        for visit in self._uow.all_visits():
            if visit.user_id != user_id or not _in_range(visit.start_time, start, end):
                continue
            domain = self._uow.lookup_domain(visit.domain_id)
            if domain is not None:
                records.append(VisitRecord.join(visit, domain))
        records.sort(key=lambda r: (r.start_time, r.seq))
        return records


# --- Unit of Work ---


class InMemoryUnitOfWork:
    """Staged writes over an InMemoryStore."""

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.staged_files: dict[tuple[str, str], FileIdentity] = {}
        self.staged_events: list[DownloadEvent] = []
        self.staged_domains: dict[tuple[str, str], BrowsingDomain] = {}
        self.staged_visits: list[BrowsingVisit] = []

        self._files: InMemoryFileIdentityRepo | None = None
        self._download_events: InMemoryDownloadEventRepo | None = None
        self._browsing_domains: InMemoryBrowsingDomainRepo | None = None
        self._browsing_visits: InMemoryBrowsingVisitRepo | None = None

    @property
    def files(self) -> InMemoryFileIdentityRepo:
        if self._files is None:
            self._files = InMemoryFileIdentityRepo(self)
        return self._files

    @property
    def download_events(self) -> InMemoryDownloadEventRepo:
        if self._download_events is None:
            self._download_events = InMemoryDownloadEventRepo(self)
        return self._download_events

    @property
    def browsing_domains(self) -> InMemoryBrowsingDomainRepo:
        if self._browsing_domains is None:
            self._browsing_domains = InMemoryBrowsingDomainRepo(self)
        return self._browsing_domains

    @property
    def browsing_visits(self) -> InMemoryBrowsingVisitRepo:
        if self._browsing_visits is None:
            self._browsing_visits = InMemoryBrowsingVisitRepo(self)
        return self._browsing_visits

    # Views over committed + staged data

    def lookup_file(self, file_id: UUID) -> FileIdentity | None:
        for identity in self.staged_files.values():
            if identity.id == file_id:
                return identity
        with self.store.lock:
            return self.store.files_by_id.get(file_id)

    def lookup_domain(self, domain_id: UUID) -> BrowsingDomain | None:
        for domain in self.staged_domains.values():
            if domain.id == domain_id:
                return domain
        with self.store.lock:
            return self.store.domains_by_id.get(domain_id)

    def all_events(self) -> list[DownloadEvent]:
        with self.store.lock:
            committed = list(self.store.events)
        return committed + self.staged_events

    def all_visits(self) -> list[BrowsingVisit]:
        with self.store.lock:
            committed = list(self.store.visits)
        return committed + self.staged_visits

    def __enter__(self) -> InMemoryUnitOfWork:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.rollback()

    def commit(self) -> None:
        """Apply staged writes atomically. Raises ConflictError on a lost race."""
        with self.store.lock:
            for key in self.staged_files:
                if key in self.store.files:
                    raise ConflictError("file_identity", key)
            for key in self.staged_domains:
                if key in self.store.domains:
                    raise ConflictError("browsing_domain", key)

            for key, identity in self.staged_files.items():
                self.store.files[key] = identity
                self.store.files_by_id[identity.id] = identity
            for key, domain in self.staged_domains.items():
                self.store.domains[key] = domain
                self.store.domains_by_id[domain.id] = domain
            self.store.events.extend(self.staged_events)
            self.store.visits.extend(self.staged_visits)

        self._clear_staged()

    def rollback(self) -> None:
        self._clear_staged()

    def _clear_staged(self) -> None:
        self.staged_files = {}
        self.staged_events = []
        self.staged_domains = {}
        self.staged_visits = []
