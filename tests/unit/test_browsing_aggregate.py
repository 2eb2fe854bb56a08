"""
Browsing aggregation tests.

Payload filtering, period metrics, domain rankings, recent visits and
visit history with downloads attached.
"""

from __future__ import annotations

import itertools
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from src.core.services import browsing_aggregate as agg
from src.core.services.windows import WindowSet
from src.domain.entities import DownloadRecord, VisitRecord

NOW = datetime(2026, 1, 14, 12, 0, tzinfo=UTC)

_seq = itertools.count(1)


def at(day: int, hour: int = 12, minute: int = 0, month: int = 1, year: int = 2026) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


def visit(
    domain: str,
    start: datetime,
    seconds: float = 60,
    end: datetime | None = None,
    **counts: int,
) -> VisitRecord:
    return VisitRecord(
        visit_id=uuid4(),
        domain_id=uuid4(),
        user_id="user-1",
        domain=domain,
        start_time=start,
        end_time=end or start + timedelta(seconds=seconds),
        duration_seconds=seconds,
        seq=next(_seq),
        **counts,
    )


def download(ts: datetime, filename: str = "file.zip") -> DownloadRecord:
    return DownloadRecord(
        event_id=uuid4(),
        file_id=uuid4(),
        user_id="user-1",
        status="new",
        downloaded_at=ts,
        seq=next(_seq),
        hash=filename,
        filename=filename,
        url=f"https://example.com/{filename}",
        size=None,
        file_extension="zip",
        file_category="archive",
        first_downloaded_at=ts,
    )


# --- Fixtures ---


@pytest.fixture
def visits() -> list[VisitRecord]:
    return [
        visit("a.com", at(14, 9), 600),
        visit("b.com", at(14, 10), 300),
        visit("a.com", at(13, 9), 120),
        visit("c.com", at(12, 9), 900),
        visit("a.com", at(5, 9), 60),
        visit("b.com", at(20, 9, month=12, year=2025), 45),
    ]


class TestPayloadParsing:
    """Invalid payloads are dropped, never fatal."""

    def test_empty_domain_is_dropped(self) -> None:
        start = at(14, 9)
        batch = [
            {
                "domain": "a.com",
                "startTime": start,
                "endTime": start + timedelta(seconds=10),
                "durationSeconds": 10,
            },
            {
                "domain": "",
                "startTime": start,
                "endTime": start + timedelta(seconds=5),
                "durationSeconds": 5,
            },
        ]
        parsed = agg.parse_visit_batch(batch)
        assert [p.domain for p in parsed] == ["a.com"]

    @pytest.mark.parametrize(
        "changes",
        [
            {"domain": "   "},
            {"durationSeconds": 0},
            {"startTime": None},
            {"startTime": "yesterday"},
            {"scrollCount": -1},
        ],
    )
    def test_invalid_payloads(self, changes: dict[str, object]) -> None:
        payload = {
            "domain": "a.com",
            "startTime": "2026-01-14T09:00:00Z",
            "endTime": "2026-01-14T09:01:00Z",
            "durationSeconds": 60,
            **changes,
        }
        assert agg.parse_visit_payload(payload) is None

    def test_snake_case_keys(self) -> None:
        payload = agg.parse_visit_payload(
            {
                "domain": "News.Example.COM",
                "start_time": "2026-01-14T10:00:00+01:00",
                "end_time": "2026-01-14T10:00:30+01:00",
                "duration_seconds": 30,
                "click_link_count": 2,
            }
        )
        assert payload is not None
        assert payload.domain == "News.Example.COM"
        assert payload.start_time == at(14, 9)
        assert payload.start_time.tzinfo == UTC
        assert payload.click_link_count == 2

    def test_naive_times_left_for_the_service(self) -> None:
        payload = agg.parse_visit_payload(
            {
                "domain": "a.com",
                "startTime": "2026-01-14T00:01:00",
                "endTime": "2026-01-14T00:01:10",
                "durationSeconds": 10,
            }
        )
        assert payload is not None
        assert payload.start_time == datetime(2026, 1, 14, 0, 1)
        assert payload.start_time.tzinfo is None

    def test_duration_is_not_derived(self) -> None:
        payload = agg.parse_visit_payload(
            {
                "domain": "a.com",
                "startTime": "2026-01-14T09:00:00Z",
                "endTime": "2026-01-14T09:10:00Z",
                "durationSeconds": 45,
            }
        )
        assert payload is not None
        assert payload.duration_seconds == 45

    def test_mixed_batch_keeps_only_valid(self) -> None:
        valid = {
            "domain": "a.com",
            "startTime": "2026-01-14T09:00:00Z",
            "endTime": "2026-01-14T09:01:00Z",
            "durationSeconds": 60,
        }
        batch = [valid, {**valid, "domain": ""}, {**valid, "durationSeconds": 0}, valid]
        assert len(agg.parse_visit_batch(batch)) == 2


class TestPeriods:
    """Window totals in seconds."""

    def test_summary(self, visits: list[VisitRecord]) -> None:
        summary = agg.summarize(visits, WindowSet.for_reference(NOW))

        assert summary.total_seconds_today == 900
        assert summary.total_seconds_week == 1920
        assert summary.total_seconds_month == 1980

    def test_period_stats(self, visits: list[VisitRecord]) -> None:
        stats = agg.period_stats(visits, WindowSet.for_reference(NOW))

        assert stats.week.visit_count == 4
        assert stats.week.site_count == 3
        assert stats.prev_week.total_seconds == 60
        assert stats.prev_month.total_seconds == 45
        assert stats.prev_month.site_count == 1

    def test_overview_has_today_and_yesterday(self, visits: list[VisitRecord]) -> None:
        view = agg.overview(visits, WindowSet.for_reference(NOW))

        assert view.today.site_count == 2
        assert view.yesterday.total_seconds == 120
        assert view.to_dict()["month"]["visit_count"] == 5

    def test_daily_activity(self, visits: list[VisitRecord]) -> None:
        rows = agg.daily_activity(visits, UTC)
        today = rows[-1]

        assert today.date == "2026-01-14"
        assert today.total_seconds == 900
        assert today.visit_count == 2
        assert today.site_count == 2

    def test_densify_daily_activity(self, visits: list[VisitRecord]) -> None:
        rows = agg.densify_daily_activity(agg.daily_activity(visits, UTC), NOW, 3)
        assert [(r.date, r.total_seconds) for r in rows] == [
            ("2026-01-12", 900),
            ("2026-01-13", 120),
            ("2026-01-14", 900),
        ]


class TestDomainRanking:
    def test_seconds_desc(self, visits: list[VisitRecord]) -> None:
        ranked = agg.time_by_domain(visits)

        assert [d.domain for d in ranked] == ["c.com", "a.com", "b.com"]
        assert ranked[1].total_seconds == 780
        assert ranked[1].visit_count == 3

    def test_ties_by_domain_and_limit(self) -> None:
        records = [
            visit("z.com", at(14), 10),
            visit("m.com", at(14), 10),
            visit("a.com", at(14), 5),
        ]
        ranked = agg.time_by_domain(records, limit=2)
        assert [d.domain for d in ranked] == ["m.com", "z.com"]


class TestRecentVisits:
    def test_latest_end_time_first(self) -> None:
        long_visit = visit("a.com", at(14, 8), 3600)
        short_visit = visit("b.com", at(14, 8, 30), 60)
        items = agg.recent_visits([short_visit, long_visit], 10)
        assert [i.domain for i in items] == ["a.com", "b.com"]

    def test_interactions(self) -> None:
        record = visit("a.com", at(14), 60, click_link_count=3, scroll_count=7)
        item = agg.recent_visits([record], 1)[0]
        assert item.interactions == agg.InteractionCounts(click_link=3, scroll=7)


class TestVisitHistory:
    """Paging and attached downloads."""

    def test_downloads_during_is_inclusive(self) -> None:
        record = visit("a.com", at(14, 9), 600)
        inside = [download(record.start_time, "start.zip"), download(record.end_time, "end.zip")]
        outside = [download(record.end_time + timedelta(seconds=1), "late.zip")]

        found = agg.downloads_during(record, inside + outside)

        assert [d.filename for d in found] == ["end.zip", "start.zip"]

    def test_paginate_visits(self, visits: list[VisitRecord]) -> None:
        downloads = [download(at(14, 9, 5))]
        page = agg.paginate_visits(visits, downloads, 1, 2)

        assert page.total == 6
        assert page.pages == 3
        assert [i.domain for i in page.items] == ["b.com", "a.com"]
        assert len(page.items[1].downloads) == 1
        assert page.items[0].downloads == ()

    def test_empty_history(self) -> None:
        page = agg.paginate_visits([], [], 1, 20)
        assert page.items == ()
        assert page.pages == 0

    def test_domain_filters(self, visits: list[VisitRecord]) -> None:
        only_a = agg.filter_visits(visits, agg.VisitHistoryFilters(domain="A.com"))
        assert {r.domain for r in only_a} == {"a.com"}
        without = agg.filter_visits(visits, agg.VisitHistoryFilters(exclude_domains=("a.com",)))
        assert len(without) == 3

    @pytest.mark.parametrize(
        ("page", "limit", "expected"),
        [(0, 20, (1, 20)), (2, 0, (2, 1)), (1, 500, (1, 50))],
    )
    def test_clamp_page(self, page: int, limit: int, expected: tuple[int, int]) -> None:
        assert agg.clamp_page(page, limit, 50) == expected
