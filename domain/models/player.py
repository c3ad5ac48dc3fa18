"""
Player domain models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from domain.models.priority import PriorityScore


class Role(str, Enum):
    """Match role a player can fill."""

    TANK = "tank"
    DAMAGE = "damage"
    SUPPORT = "support"

    @classmethod
    def parse(cls, value: "str | Role") -> "Role":
        """Parse a role name. Accepts the legacy 'dps' spelling for damage."""
        if isinstance(value, Role):
            return value
        normalized = value.strip().lower()
        if normalized == "dps":
            return cls.DAMAGE
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown role: {value!r}") from None


class Rank(str, Enum):
    """Self-reported competitive rank tier."""

    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"
    DIAMOND = "diamond"
    MASTER = "master"
    GRANDMASTER = "grandmaster"


# Ordinal rank values used by rank-based team balancing
RANK_VALUES: dict[Rank, int] = {
    Rank.BRONZE: 1,
    Rank.SILVER: 2,
    Rank.GOLD: 3,
    Rank.PLATINUM: 4,
    Rank.DIAMOND: 5,
    Rank.MASTER: 6,
    Rank.GRANDMASTER: 7,
}


@dataclass(frozen=True)
class PlayerCandidate:
    """
    A registered player eligible for selection.

    Built fresh from the roster provider for each selection run and never
    mutated during it. ``rank`` only seeds a rating; the optimizer works on ``mu``.
    """

    user_id: str
    tag: str
    roles: tuple[Role, ...]
    mu: float = 25.0
    sigma: float = 8.333
    rank: str | None = None

    def __post_init__(self):
        if not self.roles:
            raise ValueError(f"Player {self.user_id} must have at least one role")
        parsed = tuple(Role.parse(r) for r in self.roles)
        # dedupe while keeping the player's listed order
        object.__setattr__(self, "roles", tuple(dict.fromkeys(parsed)))

    def can_play(self, role: Role) -> bool:
        return role in self.roles

    @property
    def primary_role(self) -> Role:
        return self.roles[0]

    @property
    def rank_value(self) -> int:
        """Ordinal value of the self-reported rank, 0 when missing or unknown."""
        if not self.rank:
            return 0
        try:
            return RANK_VALUES[Rank(self.rank.lower())]
        except ValueError:
            return 0

    def __str__(self) -> str:
        roles = "/".join(r.value for r in self.roles)
        return f"{self.tag} ({roles}, mu={self.mu:.2f})"


@dataclass(frozen=True)
class SelectedPlayer:
    """A candidate locked into exactly one role for a match."""

    player: PlayerCandidate
    assigned_role: Role
    priority_score: PriorityScore = field(default_factory=PriorityScore)

    @property
    def user_id(self) -> str:
        return self.player.user_id

    @property
    def tag(self) -> str:
        return self.player.tag

    @property
    def mu(self) -> float:
        return self.player.mu

    @property
    def sigma(self) -> float:
        return self.player.sigma

    def __str__(self) -> str:
        return f"{self.player.tag}({self.assigned_role.value})"
