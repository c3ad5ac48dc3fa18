"""
Priority (staleness) score model.
"""

from __future__ import annotations

import functools
import math
from dataclasses import dataclass

from config import PRIORITY_CAP_DAYS


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class PriorityScore:
    """
    Days since a player's last completed match.

    A player who has never played carries the ``unbounded`` variant instead of
    a float infinity. It outranks every finite score and only becomes a number
    through ``capped()``, so normalization math never sees ``inf``.
    """

    days: float = 0.0
    unbounded: bool = False

    def __post_init__(self):
        if self.unbounded:
            return
        if math.isnan(self.days) or math.isinf(self.days):
            raise ValueError(f"Priority days must be finite, got {self.days}")
        if self.days < 0:
            raise ValueError(f"Priority days must be non-negative, got {self.days}")

    @classmethod
    def never_played(cls) -> PriorityScore:
        return cls(unbounded=True)

    @classmethod
    def coerce(cls, value: "PriorityScore | float | int | None") -> PriorityScore:
        """
        Convert a raw priority value into a PriorityScore.

        ``None`` and positive infinity mean "never played".
        """
        if isinstance(value, PriorityScore):
            return value
        if value is None or value == math.inf:
            return cls.never_played()
        return cls(days=float(value))

    @property
    def sort_key(self) -> tuple[int, float]:
        return (1, 0.0) if self.unbounded else (0, self.days)

    def capped(self, cap: float = PRIORITY_CAP_DAYS) -> float:
        """Finite value for cost arithmetic."""
        if self.unbounded:
            return cap
        return min(self.days, cap)

    def __eq__(self, other) -> bool:
        if not isinstance(other, PriorityScore):
            return NotImplemented
        return self.sort_key == other.sort_key

    def __lt__(self, other) -> bool:
        if not isinstance(other, PriorityScore):
            return NotImplemented
        return self.sort_key < other.sort_key

    def __hash__(self) -> int:
        return hash(self.sort_key)

    def __str__(self) -> str:
        return "never played" if self.unbounded else f"{self.days:.1f}d"
