"""
Match creation orchestration: roster lookup, selection, balancing, hand-off.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Iterable
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from domain.exceptions import InsufficientPlayersError, InsufficientRoleCompositionError
from domain.models.optimizer_config import OptimizerConfig
from domain.models.team import BalancedTeams
from domain.services.team_balancing_service import TeamBalancingService
from match_optimizer import MatchSelection
from matchmaking import SelectionStrategy, get_selection_strategy, run_selection
from openskill_rating_system import PugOpenSkillSystem
from repositories.interfaces import IHistoryProvider, IResultSink, IRosterProvider
from services import error_codes
from services.priority_service import build_priority_function, utcnow
from services.result import Result

logger = logging.getLogger("pug_bot.services.matchmaking")

_ERROR_CODES = {
    InsufficientPlayersError: error_codes.INSUFFICIENT_PLAYERS,
    InsufficientRoleCompositionError: error_codes.INSUFFICIENT_ROLE_COMPOSITION,
}


@dataclass
class MatchCreation:
    teams: BalancedTeams
    selection: MatchSelection
    match_id: int | None = None
    team1_win_probability: float = 0.5


class MatchmakingService:
    """
    Builds balanced teams for the players present and records the match.

    Selection itself is pure; this service does the I/O around it. It does not
    serialize concurrent calls: the host application must allow only one
    match creation per guild at a time.
    """

    def __init__(
        self,
        roster_provider: IRosterProvider,
        history_provider: IHistoryProvider,
        result_sink: IResultSink | None = None,
        *,
        config: OptimizerConfig | None = None,
        rating_system: PugOpenSkillSystem | None = None,
        balancer: TeamBalancingService | None = None,
        clock: Callable[[], datetime] = utcnow,
        rng: random.Random | None = None,
    ):
        """
        Initialize MatchmakingService with its collaborators.

        Args:
            roster_provider: Resolves user ids to registered players
            history_provider: Last completed match time per user
            result_sink: Optional sink that materializes the match record
            config: Base optimizer configuration (default: env settings)
            rating_system: Used to predict the win probability of the teams
            balancer: Team balancer (default: mu-based)
            clock: Current time source for priority scores
            rng: Random source for priority tie-breaks
        """
        self.roster_provider = roster_provider
        self.history_provider = history_provider
        self.result_sink = result_sink
        self.config = config or OptimizerConfig.from_settings()
        self.rating_system = rating_system or PugOpenSkillSystem()
        self.balancer = balancer or TeamBalancingService()
        self.clock = clock
        self.rng = rng

    def resolve_config(self, guild_settings: dict[str, Any] | None = None) -> OptimizerConfig:
        """Layer per-guild overrides on the base config."""
        if not guild_settings:
            return self.config
        return OptimizerConfig.from_settings({**asdict(self.config), **guild_settings})

    def create_match_teams(
        self,
        user_ids: Iterable[str],
        guild_settings: dict[str, Any] | None = None,
        *,
        strategy: SelectionStrategy | None = None,
    ) -> Result[MatchCreation]:
        """
        Select and balance teams from the users present.

        Unregistered users are dropped silently. Too few players or a short
        role come back as a failed Result with an error code; a balancer
        invariant violation is logged and re-raised.

        Args:
            user_ids: Users available to play (e.g. in the voice channel)
            guild_settings: Optional per-guild optimizer overrides
            strategy: Override the strategy named by the config

        Returns:
            Result wrapping MatchCreation on success
        """
        try:
            config = self.resolve_config(guild_settings)
            strategy = strategy or get_selection_strategy(config.strategy)
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid optimizer settings {guild_settings}: {e}")
            return Result.fail(str(e), code=error_codes.INVALID_CONFIG)

        requested = list(user_ids)
        candidates = self.roster_provider.resolve(requested)
        if len(candidates) < len(requested):
            logger.info(f"Ignoring {len(requested) - len(candidates)} unregistered users")

        priority_fn = build_priority_function(self.history_provider, self.clock)

        try:
            selection, teams = run_selection(
                candidates,
                priority_fn,
                config,
                strategy=strategy,
                balancer=self.balancer,
                rng=self.rng,
            )
        except (InsufficientPlayersError, InsufficientRoleCompositionError) as e:
            logger.info(f"Cannot create match: {e}")
            return Result.fail(str(e), code=_ERROR_CODES[type(e)])

        win_probability = self.rating_system.predict_win_probability(
            [(p.mu, p.sigma) for p in teams.team1],
            [(p.mu, p.sigma) for p in teams.team2],
        )

        match_id = None
        if self.result_sink is not None:
            match_id = self.result_sink.create_match(teams)
            logger.info(f"Created match {match_id} (team1 win chance {win_probability:.1%})")

        return Result.ok(
            MatchCreation(
                teams=teams,
                selection=selection,
                match_id=match_id,
                team1_win_probability=win_probability,
            )
        )
