"""
Match creation entry point.

Selection is pluggable: priority-only selection and the skill-optimized search
sit behind one SelectionStrategy interface, chosen by OptimizerConfig.strategy.
"""

from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from collections.abc import Sequence

from domain.models.optimizer_config import DEFAULT_OPTIMIZER_CONFIG, OptimizerConfig
from domain.models.player import PlayerCandidate
from domain.models.team import BalancedTeams
from domain.services.priority_selection_service import (
    PriorityFunction,
    PriorityLookup,
    TieBreak,
    select_players_by_priority,
    user_id_tie_break,
)
from domain.services.team_balancing_service import TeamBalancingService
from match_optimizer import MatchSelection, optimize_match_selection

logger = logging.getLogger("pug_bot.matchmaking")


class SelectionStrategy(ABC):
    """Chooses ten role-assigned players from the available pool."""

    name: str = ""

    @abstractmethod
    def select(
        self,
        players: Sequence[PlayerCandidate],
        priority: "PriorityLookup | PriorityFunction",
        config: OptimizerConfig,
        *,
        rng: random.Random | None = None,
        tie_break: TieBreak | None = None,
        balancer: TeamBalancingService | None = None,
    ) -> MatchSelection: ...


class PrioritySelectionStrategy(SelectionStrategy):
    """Longest-waiting players first, no skill optimization."""

    name = "priority"

    def select(
        self, players, priority, config, *, rng=None, tie_break=None, balancer=None
    ) -> MatchSelection:
        if tie_break is None and config.deterministic_tie_break:
            tie_break = user_id_tie_break
        selected = select_players_by_priority(players, priority, rng=rng, tie_break=tie_break)
        return MatchSelection(
            selected_players=selected,
            base_roster=selected,
            fallback_reason="priority-only strategy",
        )


class SkillOptimizedStrategy(SelectionStrategy):
    """Priority-weighted quality search over comparable-skill alternatives."""

    name = "optimized"

    def __init__(self, balancer: TeamBalancingService | None = None):
        self.balancer = balancer

    def select(
        self, players, priority, config, *, rng=None, tie_break=None, balancer=None
    ) -> MatchSelection:
        return optimize_match_selection(
            players,
            priority,
            config,
            rng=rng,
            tie_break=tie_break,
            balancer=balancer or self.balancer,
        )


_STRATEGIES: dict[str, type[SelectionStrategy]] = {
    PrioritySelectionStrategy.name: PrioritySelectionStrategy,
    SkillOptimizedStrategy.name: SkillOptimizedStrategy,
}


def get_selection_strategy(name: str) -> SelectionStrategy:
    """
    Look up a selection strategy by name.

    Raises:
        ValueError: If the name is not a known strategy
    """
    try:
        return _STRATEGIES[name.strip().lower()]()
    except KeyError:
        known = ", ".join(sorted(_STRATEGIES))
        raise ValueError(f"Unknown selection strategy {name!r} (expected one of: {known})") from None


def run_selection(
    candidates: Sequence[PlayerCandidate],
    priority_fn: "PriorityLookup | PriorityFunction",
    config: OptimizerConfig = DEFAULT_OPTIMIZER_CONFIG,
    *,
    strategy: SelectionStrategy | None = None,
    balancer: TeamBalancingService | None = None,
    rng: random.Random | None = None,
    tie_break: TieBreak | None = None,
) -> tuple[MatchSelection, BalancedTeams]:
    """
    Select ten players and split them into two teams.

    Returns:
        The selection details and the balanced teams
    """
    strategy = strategy or get_selection_strategy(config.strategy)
    balancer = balancer or TeamBalancingService()
    lookup = PriorityLookup.wrap(priority_fn)

    selection = strategy.select(
        candidates, lookup, config, rng=rng, tie_break=tie_break, balancer=balancer
    )
    teams = selection.teams or balancer.balance_teams(selection.selected_players)

    team1_sum, team2_sum = teams.rating_sums()
    logger.info(
        f"Teams ready via {strategy.name} strategy "
        f"(team1 mu {team1_sum:.2f}, team2 mu {team2_sum:.2f}, "
        f"diff {abs(team1_sum - team2_sum):.2f})"
    )
    logger.debug(str(teams))
    return selection, teams


def select_and_balance(
    candidates: Sequence[PlayerCandidate],
    priority_fn: "PriorityLookup | PriorityFunction",
    config: OptimizerConfig = DEFAULT_OPTIMIZER_CONFIG,
    *,
    rng: random.Random | None = None,
    tie_break: TieBreak | None = None,
) -> BalancedTeams:
    """
    Pick ten players and return two balanced teams of five.

    Args:
        candidates: Registered players available for the match
        priority_fn: (user_id, role) -> days since last match, or
            PriorityScore / inf / None for players who never played
        config: Optimizer configuration (strategy, weights, band settings)
        rng: Random source for priority tie-breaks
        tie_break: Deterministic tie-break sort key overriding the shuffle

    Raises:
        InsufficientPlayersError: Fewer than ten candidates
        InsufficientRoleCompositionError: A role cannot be filled
    """
    _, teams = run_selection(candidates, priority_fn, config, rng=rng, tie_break=tie_break)
    return teams
