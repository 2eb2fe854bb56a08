"""
Ranking utility - Top-N plus "Others" reduction.

Shared by the download and browsing aggregators for category, extension,
domain and source rankings.

Invariants:
- I1: ranked by value desc, ties by key asc
- I2: sum(kept values) + others.value == sum(all values)
- I3: others_keys lists exactly the merged keys, in ranked order, so a
      later "drill into Others" query reproduces the same remainder set
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from src.core.errors import ValidationError

OTHERS_KEY = "Others"


@dataclass(frozen=True)
class RankedItem:
    """One entry of a ranking."""

    key: str
    value: float
    secondary_value: float | None = None
    extra: dict[str, float] = field(default_factory=dict)
    others_keys: tuple[str, ...] = ()
    excluded_keys: tuple[str, ...] = ()

    @property
    def is_others(self) -> bool:
        return bool(self.others_keys)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"key": self.key, "value": self.value}
        if self.secondary_value is not None:
            data["secondary_value"] = self.secondary_value
        data.update(self.extra)
        if self.others_keys:
            data["others_keys"] = list(self.others_keys)
            data["excluded_keys"] = list(self.excluded_keys)
        return data


def sort_ranked(items: Iterable[RankedItem]) -> list[RankedItem]:
    """Sort by value desc, then key asc."""
    return sorted(items, key=lambda item: (-item.value, item.key))


def rank_with_others(items: Iterable[RankedItem], top_n: int) -> list[RankedItem]:
    """
    Keep the top_n items and merge the rest into one "Others" item.

    Returns the full sorted list when it has top_n items or fewer.
    The merged item is keyed OTHERS_KEY, which a real entry may share;
    tell them apart with is_others, not by key.
    """
    if top_n < 0:
        raise ValidationError("must be >= 0", field_name="top_n")

    ranked = sort_ranked(items)
    if len(ranked) <= top_n:
        return ranked

    top = ranked[:top_n]
    rest = ranked[top_n:]

    secondary: float | None = None
    if any(item.secondary_value is not None for item in rest):
        secondary = sum(item.secondary_value or 0 for item in rest)

    extra: dict[str, float] = {}
    for item in rest:
        for name, amount in item.extra.items():
            extra[name] = extra.get(name, 0) + amount

    others = RankedItem(
        key=OTHERS_KEY,
        value=sum(item.value for item in rest),
        secondary_value=secondary,
        extra=extra,
        others_keys=tuple(item.key for item in rest),
        excluded_keys=tuple(item.key for item in top),
    )
    return [*top, others]
