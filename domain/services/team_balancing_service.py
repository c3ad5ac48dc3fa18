"""
Team balancing domain service.

Splits a role-assigned ten-player roster into two teams with the 1/2/2 quota
while keeping the teams' rating sums close.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from config import MATCH_SIZE
from domain.exceptions import TeamBalancingInvariantError
from domain.models.player import SelectedPlayer
from domain.models.team import TEAM_COMPOSITION, BalancedTeams, TeamState

logger = logging.getLogger("pug_bot.team_balancing")


class TeamBalancingService:
    """
    Pure domain service for splitting a selected roster into two teams.

    Greedy high-to-low interleaving: players are taken in descending value and
    each goes to the team with the lower running total that still has a slot
    for their role. Deterministic, no backtracking.
    """

    def __init__(self, use_rank: bool = False):
        """
        Initialize team balancing service.

        Args:
            use_rank: Balance on self-reported rank tier instead of mu
        """
        self.use_rank = use_rank

    def player_value(self, player: SelectedPlayer) -> float:
        if self.use_rank:
            return float(player.player.rank_value)
        return player.mu

    def balance_teams(self, players: Sequence[SelectedPlayer]) -> BalancedTeams:
        """
        Balance ten role-assigned players into two teams of five.

        Args:
            players: Exactly ten players with a 2/4/4 role split

        Returns:
            BalancedTeams with each team holding 1 tank, 2 damage, 2 support

        Raises:
            ValueError: If not exactly ten players
            TeamBalancingInvariantError: If a player's role is full on both
                teams, which means the roster did not have a 2/4/4 split
        """
        if len(players) != MATCH_SIZE:
            raise ValueError(f"Need exactly {MATCH_SIZE} players, got {len(players)}")

        team1 = TeamState()
        team2 = TeamState()

        # sorted() is stable, so equal values keep input order
        ordered = sorted(players, key=self.player_value, reverse=True)

        for player in ordered:
            role = player.assigned_role
            value = self.player_value(player)
            team1_open = team1.can_accept(role, TEAM_COMPOSITION)
            team2_open = team2.can_accept(role, TEAM_COMPOSITION)

            if team1_open and team2_open:
                target = team1 if team1.total_value <= team2.total_value else team2
            elif team1_open:
                target = team1
            elif team2_open:
                target = team2
            else:
                logger.error(
                    f"Cannot assign {player.tag} ({role.value}) to either team; "
                    f"team role counts {dict(team1.role_counts)} / {dict(team2.role_counts)}"
                )
                raise TeamBalancingInvariantError(
                    f"Cannot assign player with role {role.value} to any team. "
                    "This indicates a bug in player selection."
                )
            target.add(player, value)

        return BalancedTeams(team1=team1.players, team2=team2.players)

    def calculate_team_value(self, team: Sequence[SelectedPlayer]) -> float:
        return sum(self.player_value(p) for p in team)

    def calculate_value_difference(self, teams: BalancedTeams) -> float:
        return abs(self.calculate_team_value(teams.team1) - self.calculate_team_value(teams.team2))
