"""
Clock adapter tests.

Offsets around the 2026 Europe/London changes: clocks go forward at
01:00 UTC on 29 March and back at 01:00 UTC on 25 October.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from src.adapters.time_local import FrozenTimeAdapter, LocalTimeAdapter, create_time_adapter


@pytest.fixture
def london() -> LocalTimeAdapter:
    return LocalTimeAdapter("Europe/London")


@pytest.fixture
def midsummer() -> FrozenTimeAdapter:
    return FrozenTimeAdapter(datetime(2026, 6, 15, 12, 0, tzinfo=UTC), "Europe/London")


class TestLocalTimeAdapter:
    def test_clock_readings_are_aware(self, london: LocalTimeAdapter) -> None:
        assert london.now_utc().utcoffset() == timedelta(0)
        assert london.now_local().tzinfo is not None
        assert london.timezone_name == "Europe/London"

    def test_conversions_invert(self, london: LocalTimeAdapter) -> None:
        instant = datetime(2026, 8, 1, 18, 30, tzinfo=UTC)
        assert london.to_utc(london.to_local(instant)) == instant

    def test_naive_input_to_utc_is_wall_clock(self, london: LocalTimeAdapter) -> None:
        summer_noon = datetime(2026, 6, 15, 12, 0, tzinfo=UTC)
        assert london.to_utc(datetime(2026, 6, 15, 13, 0)) == summer_noon

    def test_naive_input_to_local_is_utc(self, london: LocalTimeAdapter) -> None:
        winter = london.to_local(datetime(2026, 1, 15, 12, 0))
        assert (winter.hour, winter.utcoffset()) == (12, timedelta(0))

    def test_default_zone(self) -> None:
        assert create_time_adapter().timezone_name == "UTC"

    @pytest.mark.parametrize(
        ("instant", "hour", "offset_hours"),
        [
            (datetime(2026, 3, 29, 0, 59, tzinfo=UTC), 0, 0),
            (datetime(2026, 3, 29, 1, 0, tzinfo=UTC), 2, 1),
            (datetime(2026, 10, 25, 0, 59, tzinfo=UTC), 1, 1),
            (datetime(2026, 10, 25, 1, 0, tzinfo=UTC), 1, 0),
        ],
    )
    def test_offsets_around_clock_changes(
        self, london: LocalTimeAdapter, instant: datetime, hour: int, offset_hours: int
    ) -> None:
        local = london.to_local(instant)
        assert local.hour == hour
        assert local.utcoffset() == timedelta(hours=offset_hours)


class TestFrozenTimeAdapter:
    def test_reads_do_not_move(self, midsummer: FrozenTimeAdapter) -> None:
        assert midsummer.now_utc() == midsummer.now_utc()
        # BST
        assert midsummer.now_local().hour == 13

    def test_naive_instant_is_utc(self) -> None:
        clock = FrozenTimeAdapter(datetime(2026, 1, 14, 12, 0))
        assert clock.now_utc() == datetime(2026, 1, 14, 12, 0, tzinfo=UTC)

    def test_at_local_keeps_local_date(self) -> None:
        clock = FrozenTimeAdapter.at_local(datetime(2026, 1, 13, 23, 59), "America/New_York")
        assert clock.now_utc() == datetime(2026, 1, 14, 4, 59, tzinfo=UTC)
        assert clock.now_local().date().isoformat() == "2026-01-13"

    def test_advance_crosses_local_midnight(self, midsummer: FrozenTimeAdapter) -> None:
        start = midsummer.now_utc()
        midsummer.advance(timedelta(hours=12))
        assert midsummer.now_utc() - start == timedelta(hours=12)
        assert midsummer.now_local().day == 16
