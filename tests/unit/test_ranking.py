"""
Ranking utility tests.

Top-N ordering, the Others bucket and value conservation.
"""

from __future__ import annotations

import pytest

from src.core.errors import ValidationError
from src.core.services.ranking import OTHERS_KEY, RankedItem, rank_with_others, sort_ranked

# --- Fixtures ---


@pytest.fixture
def domains() -> list[RankedItem]:
    return [
        RankedItem(key="a.com", value=100),
        RankedItem(key="b.com", value=80),
        RankedItem(key="c.com", value=60),
        RankedItem(key="d.com", value=40),
        RankedItem(key="e.com", value=20),
    ]


class TestSortRanked:
    """Ordering rules."""

    def test_value_descending(self, domains: list[RankedItem]) -> None:
        ranked = sort_ranked(reversed(domains))
        assert [item.key for item in ranked] == ["a.com", "b.com", "c.com", "d.com", "e.com"]

    def test_ties_break_by_key(self) -> None:
        ranked = sort_ranked(
            [RankedItem(key="zeta", value=5), RankedItem(key="alpha", value=5)]
        )
        assert [item.key for item in ranked] == ["alpha", "zeta"]


class TestRankWithOthers:
    """Top-N reduction."""

    def test_top_three_plus_others(self, domains: list[RankedItem]) -> None:
        ranked = rank_with_others(domains, 3)

        assert [item.key for item in ranked] == ["a.com", "b.com", "c.com", OTHERS_KEY]
        others = ranked[-1]
        assert others.value == 60
        assert others.others_keys == ("d.com", "e.com")
        assert others.excluded_keys == ("a.com", "b.com", "c.com")
        assert others.is_others

    def test_no_others_when_list_fits(self, domains: list[RankedItem]) -> None:
        ranked = rank_with_others(domains, 5)
        assert OTHERS_KEY not in [item.key for item in ranked]
        assert len(ranked) == 5

    def test_top_zero_merges_everything(self, domains: list[RankedItem]) -> None:
        ranked = rank_with_others(domains, 0)
        assert len(ranked) == 1
        assert ranked[0].key == OTHERS_KEY
        assert ranked[0].value == 300
        assert ranked[0].excluded_keys == ()

    def test_real_entry_named_others(self) -> None:
        items = [
            RankedItem(key=OTHERS_KEY, value=50),
            RankedItem(key="a.com", value=10),
            RankedItem(key="b.com", value=5),
        ]
        ranked = rank_with_others(items, 1)

        assert [item.key for item in ranked] == [OTHERS_KEY, OTHERS_KEY]
        assert [item.is_others for item in ranked] == [False, True]
        assert ranked[1].others_keys == ("a.com", "b.com")
        assert ranked[1].excluded_keys == (OTHERS_KEY,)

    def test_empty_input(self) -> None:
        assert rank_with_others([], 3) == []

    def test_negative_top_n_rejected(self, domains: list[RankedItem]) -> None:
        with pytest.raises(ValidationError):
            rank_with_others(domains, -1)

    def test_secondary_and_extra_values_are_summed(self) -> None:
        items = [
            RankedItem(key="a", value=10, secondary_value=2, extra={"files": 1}),
            RankedItem(key="b", value=5, secondary_value=3, extra={"files": 4}),
            RankedItem(key="c", value=1, secondary_value=1, extra={"files": 2}),
        ]
        others = rank_with_others(items, 1)[-1]
        assert others.secondary_value == 4
        assert others.extra == {"files": 6}

    @pytest.mark.parametrize("top_n", [0, 1, 2, 3, 4, 5, 10])
    def test_values_are_conserved(self, domains: list[RankedItem], top_n: int) -> None:
        ranked = rank_with_others(domains, top_n)
        assert sum(item.value for item in ranked) == sum(item.value for item in domains)

    def test_to_dict_lists_merged_keys(self, domains: list[RankedItem]) -> None:
        data = rank_with_others(domains, 4)[-1].to_dict()
        assert data["key"] == OTHERS_KEY
        assert data["others_keys"] == ["e.com"]
        assert "others_keys" not in domains[0].to_dict()
