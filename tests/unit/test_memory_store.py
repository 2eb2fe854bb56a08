"""In-memory store tests: staging, commit-time conflicts and clear()."""

from __future__ import annotations

import pytest

from src.adapters.memory_store import InMemoryStore
from src.core.errors import ConflictError
from src.domain.entities import BrowsingDomain, DownloadEvent, FileIdentity

USER = "user-1"


def identity(content_hash: str = "abc") -> FileIdentity:
    return FileIdentity(user_id=USER, hash=content_hash, filename="a.pdf", url="https://x/a.pdf")


class TestStaging:
    def test_staged_writes_visible_inside_unit(self, memory_store: InMemoryStore) -> None:
        file = identity()
        with memory_store.unit_of_work() as uow:
            uow.files.insert(file)
            uow.download_events.append(
                DownloadEvent(user_id=USER, file_id=file.id, status="new")
            )
            assert uow.files.get_by_hash(USER, "abc") == file
            assert len(uow.download_events.list_records(USER)) == 1
            assert memory_store.files == {}

    def test_second_insert_in_same_unit_conflicts(self, memory_store: InMemoryStore) -> None:
        with memory_store.unit_of_work() as uow:
            uow.files.insert(identity())
            with pytest.raises(ConflictError):
                uow.files.insert(identity())

    def test_commit_detects_lost_race(self, memory_store: InMemoryStore) -> None:
        first = memory_store.unit_of_work()
        second = memory_store.unit_of_work()
        with first, second:
            first.browsing_domains.insert(BrowsingDomain(user_id=USER, domain="a.com"))
            second.browsing_domains.insert(BrowsingDomain(user_id=USER, domain="a.com"))
            first.commit()
            with pytest.raises(ConflictError):
                second.commit()

        assert len(memory_store.domains) == 1

    def test_failed_commit_applies_nothing(self, memory_store: InMemoryStore) -> None:
        with memory_store.unit_of_work() as uow:
            uow.files.insert(identity("taken"))
            uow.commit()

        loser = memory_store.unit_of_work()
        rival = memory_store.unit_of_work()
        with loser, rival:
            file = identity("fresh")
            loser.files.insert(file)
            loser.download_events.append(
                DownloadEvent(user_id=USER, file_id=file.id, status="new")
            )
            loser.browsing_domains.insert(BrowsingDomain(user_id=USER, domain="b.com"))
            rival.browsing_domains.insert(BrowsingDomain(user_id=USER, domain="b.com"))
            rival.commit()
            with pytest.raises(ConflictError):
                loser.commit()

        assert (USER, "fresh") not in memory_store.files
        assert memory_store.events == []

    def test_clear(self, memory_store: InMemoryStore) -> None:
        with memory_store.unit_of_work() as uow:
            uow.files.insert(identity())
            uow.commit()
        memory_store.clear()
        assert memory_store.files == {}
        assert memory_store.files_by_id == {}
