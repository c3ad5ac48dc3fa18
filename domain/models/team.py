"""
Team domain models: role quotas and balanced team results.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from domain.models.player import Role, SelectedPlayer


@dataclass(frozen=True)
class RoleComposition:
    """Number of players required per role."""

    tank: int
    damage: int
    support: int

    def for_role(self, role: Role) -> int:
        return getattr(self, role.value)

    def scaled(self, factor: int) -> RoleComposition:
        return RoleComposition(self.tank * factor, self.damage * factor, self.support * factor)

    def total(self) -> int:
        return self.tank + self.damage + self.support

    def as_dict(self) -> dict[str, int]:
        return {"tank": self.tank, "damage": self.damage, "support": self.support}

    def __str__(self) -> str:
        return f"{self.tank} tank / {self.damage} damage / {self.support} support"


# Standard 5v5: 1 tank, 2 damage, 2 support per team
TEAM_COMPOSITION = RoleComposition(tank=1, damage=2, support=2)
MATCH_COMPOSITION = TEAM_COMPOSITION.scaled(2)

# Scarcest roles are filled first during base selection
SELECTION_ORDER: tuple[Role, ...] = (Role.TANK, Role.SUPPORT, Role.DAMAGE)


@dataclass
class TeamState:
    """Running state of one team while the balancer fills it."""

    players: list[SelectedPlayer] = field(default_factory=list)
    total_value: float = 0.0
    role_counts: Counter = field(default_factory=Counter)

    def can_accept(self, role: Role, composition: RoleComposition = TEAM_COMPOSITION) -> bool:
        return self.role_counts[role] < composition.for_role(role)

    def add(self, player: SelectedPlayer, value: float) -> None:
        self.players.append(player)
        self.total_value += value
        self.role_counts[player.assigned_role] += 1


@dataclass
class BalancedTeams:
    """Two disjoint five-player teams, each holding the 1/2/2 role quota."""

    team1: list[SelectedPlayer]
    team2: list[SelectedPlayer]

    def all_players(self) -> list[SelectedPlayer]:
        return self.team1 + self.team2

    def rating_sums(self) -> tuple[float, float]:
        return sum(p.mu for p in self.team1), sum(p.mu for p in self.team2)

    def rating_difference(self) -> float:
        team1_sum, team2_sum = self.rating_sums()
        return abs(team1_sum - team2_sum)

    def team_of(self, user_id: str) -> int | None:
        """Return 1 or 2 for the team holding ``user_id``, or None."""
        if any(p.user_id == user_id for p in self.team1):
            return 1
        if any(p.user_id == user_id for p in self.team2):
            return 2
        return None

    def __str__(self) -> str:
        team1 = ", ".join(str(p) for p in self.team1)
        team2 = ", ".join(str(p) for p in self.team2)
        return f"Team 1: {team1} | Team 2: {team2}"
