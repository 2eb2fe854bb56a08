"""
Store contract tests.

Both store implementations must behave the same: unique-constrained
inserts, insertion sequence, half-open range queries and discarded
uncommitted writes.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone
from uuid import uuid4

import pytest

from src.adapters.memory_store import InMemoryStore
from src.adapters.sqlite_db import SQLiteStore
from src.core.errors import ConflictError
from src.core.ports.db import AnalyticsStorePort
from src.domain.entities import BrowsingDomain, BrowsingVisit, DownloadEvent, FileIdentity

USER = "user-1"
T0 = datetime(2026, 1, 14, 9, 0, tzinfo=UTC)


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, memory_store: InMemoryStore) -> AnalyticsStorePort:
    if request.param == "memory":
        return memory_store
    sqlite: SQLiteStore = request.getfixturevalue("sqlite_store")
    return sqlite


def identity(content_hash: str = "abc", user_id: str = USER) -> FileIdentity:
    return FileIdentity(
        user_id=user_id,
        hash=content_hash,
        filename=f"{content_hash}.pdf",
        url=f"https://example.com/{content_hash}.pdf",
        size=2048,
        file_extension="pdf",
        file_category="document",
        source_domain="example.com",
        first_downloaded_at=T0,
    )


def event(file: FileIdentity, at: datetime, status: str = "new") -> DownloadEvent:
    return DownloadEvent(user_id=file.user_id, file_id=file.id, status=status, downloaded_at=at)


def add_file(store: AnalyticsStorePort, file: FileIdentity, *times: datetime) -> None:
    with store.unit_of_work() as uow:
        uow.files.insert(file)
        for i, at in enumerate(times):
            uow.download_events.append(event(file, at, "new" if i == 0 else "duplicate"))
        uow.commit()


class TestFileIdentities:
    def test_insert_and_get(self, store: AnalyticsStorePort) -> None:
        file = identity()
        add_file(store, file)

        with store.unit_of_work() as uow:
            by_hash = uow.files.get_by_hash(USER, "abc")
            by_id = uow.files.get_by_id(USER, file.id)
            other_user = uow.files.get_by_id("user-2", file.id)

        assert by_hash is not None
        assert by_hash.id == file.id
        assert by_hash.first_downloaded_at == T0
        assert by_id == by_hash
        assert other_user is None

    def test_unique_per_user_and_hash(self, store: AnalyticsStorePort) -> None:
        add_file(store, identity())

        with store.unit_of_work() as uow, pytest.raises(ConflictError):
            uow.files.insert(identity())

        # a different user may own the same hash
        add_file(store, identity(user_id="user-2"))

    def test_uncommitted_insert_is_discarded(self, store: AnalyticsStorePort) -> None:
        with store.unit_of_work() as uow:
            uow.files.insert(identity())

        with store.unit_of_work() as uow:
            assert uow.files.get_by_hash(USER, "abc") is None

    def test_rollback(self, store: AnalyticsStorePort) -> None:
        with store.unit_of_work() as uow:
            uow.files.insert(identity())
            uow.rollback()
            uow.commit()

        with store.unit_of_work() as uow:
            assert uow.files.get_by_hash(USER, "abc") is None


class TestDownloadEvents:
    def test_sequence_increases(self, store: AnalyticsStorePort) -> None:
        file = identity()
        with store.unit_of_work() as uow:
            uow.files.insert(file)
            first = uow.download_events.append(event(file, T0))
            second = uow.download_events.append(event(file, T0, "duplicate"))
            uow.commit()

        assert first.seq > 0
        assert second.seq > first.seq

    def test_records_join_identity(self, store: AnalyticsStorePort) -> None:
        file = identity()
        add_file(store, file, T0, T0 + timedelta(hours=1))

        with store.unit_of_work() as uow:
            records = uow.download_events.list_records(USER)

        assert [r.status for r in records] == ["new", "duplicate"]
        assert all(r.size == 2048 and r.filename == "abc.pdf" for r in records)
        assert records[1].first_downloaded_at == T0

    def test_range_is_half_open(self, store: AnalyticsStorePort) -> None:
        file = identity()
        add_file(store, file, T0, T0 + timedelta(hours=1), T0 + timedelta(hours=2))

        with store.unit_of_work() as uow:
            records = uow.download_events.list_records(
                USER, T0 + timedelta(hours=1), T0 + timedelta(hours=2)
            )

        assert [r.downloaded_at for r in records] == [T0 + timedelta(hours=1)]

    def test_range_accepts_other_offsets(self, store: AnalyticsStorePort) -> None:
        add_file(store, identity(), T0)
        plus_two = timezone(timedelta(hours=2))

        with store.unit_of_work() as uow:
            records = uow.download_events.list_records(
                USER, datetime(2026, 1, 14, 11, 0, tzinfo=plus_two)
            )

        assert len(records) == 1

    def test_get_record_is_user_scoped(self, store: AnalyticsStorePort) -> None:
        file = identity()
        with store.unit_of_work() as uow:
            uow.files.insert(file)
            stored = uow.download_events.append(event(file, T0))
            uow.commit()

        with store.unit_of_work() as uow:
            found = uow.download_events.get_record(USER, stored.id)
            hidden = uow.download_events.get_record("user-2", stored.id)
            missing = uow.download_events.get_record(USER, uuid4())

        assert found is not None
        assert found.event_id == stored.id
        assert hidden is None
        assert missing is None


class TestBrowsing:
    def test_domains_are_unique_per_user(self, store: AnalyticsStorePort) -> None:
        with store.unit_of_work() as uow:
            uow.browsing_domains.insert(BrowsingDomain(user_id=USER, domain="a.com"))
            uow.commit()

        with store.unit_of_work() as uow:
            assert uow.browsing_domains.get_by_domain(USER, "a.com") is not None
            assert uow.browsing_domains.get_by_domain("user-2", "a.com") is None
            with pytest.raises(ConflictError):
                uow.browsing_domains.insert(BrowsingDomain(user_id=USER, domain="a.com"))

    def test_visits_join_domain(self, store: AnalyticsStorePort) -> None:
        domain = BrowsingDomain(user_id=USER, domain="a.com")
        visits = [
            BrowsingVisit(
                user_id=USER,
                domain_id=domain.id,
                start_time=T0 + timedelta(minutes=i),
                end_time=T0 + timedelta(minutes=i, seconds=30),
                duration_seconds=30,
                scroll_count=i,
            )
            for i in range(3)
        ]
        with store.unit_of_work() as uow:
            uow.browsing_domains.insert(domain)
            assert uow.browsing_visits.append_many(visits) == 3
            uow.commit()

        with store.unit_of_work() as uow:
            records = uow.browsing_visits.list_records(USER, T0 + timedelta(minutes=1))

        assert [r.domain for r in records] == ["a.com", "a.com"]
        assert [r.scroll_count for r in records] == [1, 2]
        assert records[0].seq < records[1].seq

    def test_empty_batch(self, store: AnalyticsStorePort) -> None:
        with store.unit_of_work() as uow:
            assert uow.browsing_visits.append_many([]) == 0
