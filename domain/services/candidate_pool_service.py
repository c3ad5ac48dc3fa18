"""
Skill band and candidate pool construction for match optimization.

The band is anchored on the priority-selected base roster, so alternatives
considered by the optimizer are players of comparable skill to those who
would have played anyway.
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Sequence
from dataclasses import dataclass

from config import ZERO_SPREAD_BAND_BUFFER
from domain.models.optimizer_config import DEFAULT_OPTIMIZER_CONFIG, OptimizerConfig
from domain.models.player import PlayerCandidate, Role, SelectedPlayer
from domain.models.team import MATCH_COMPOSITION, RoleComposition
from domain.services.priority_selection_service import (
    PriorityFunction,
    PriorityLookup,
    TieBreak,
    select_top_n_by_priority,
)

logger = logging.getLogger("pug_bot.candidate_pools")


@dataclass(frozen=True)
class SkillBand:
    """Acceptable mu range for optimization candidates."""

    min: float
    max: float
    spread: float
    buffer: float

    def contains(self, mu: float) -> bool:
        return self.min <= mu <= self.max

    def expanded(self, factor: float) -> SkillBand:
        """
        Widen the band once by ``factor``.

        The edges move by buffer * (factor - 1) from this band's edges.
        """
        delta = self.buffer * (factor - 1)
        return SkillBand(
            min=self.min - delta,
            max=self.max + delta,
            spread=self.spread,
            buffer=self.buffer * factor,
        )


@dataclass(frozen=True)
class CandidatePools:
    """Per-role candidate lists, each priority sorted. Flex players may repeat across roles."""

    tanks: list[PlayerCandidate]
    damage: list[PlayerCandidate]
    support: list[PlayerCandidate]

    def for_role(self, role: Role) -> list[PlayerCandidate]:
        return {Role.TANK: self.tanks, Role.DAMAGE: self.damage, Role.SUPPORT: self.support}[role]

    def sizes(self) -> RoleComposition:
        return RoleComposition(len(self.tanks), len(self.damage), len(self.support))

    def all_candidates(self) -> list[PlayerCandidate]:
        return [*self.tanks, *self.damage, *self.support]

    def unique_candidates(self) -> dict[str, PlayerCandidate]:
        """Candidates keyed by user id; first occurrence wins (tank, damage, support order)."""
        unique: dict[str, PlayerCandidate] = {}
        for player in self.all_candidates():
            unique.setdefault(player.user_id, player)
        return unique

    def meets(self, composition: RoleComposition) -> bool:
        return (
            len(self.tanks) >= composition.tank
            and len(self.damage) >= composition.damage
            and len(self.support) >= composition.support
        )


@dataclass(frozen=True)
class PoolBuildResult:
    pools: CandidatePools
    band: SkillBand
    expanded_band: bool
    target_sizes: RoleComposition


def calculate_skill_band(
    base_roster: Sequence[SelectedPlayer | PlayerCandidate],
    config: OptimizerConfig = DEFAULT_OPTIMIZER_CONFIG,
) -> SkillBand:
    """
    Derive the skill band from the base roster.

    spread = max(mu) - min(mu); buffer = spread * config.skill_band_buffer, or a
    fixed 5.0 when the spread is zero; band = [min - buffer, max + buffer].

    Raises:
        ValueError: If the roster is empty
    """
    if not base_roster:
        raise ValueError("Cannot derive a skill band from an empty roster")

    mu_values = [p.mu for p in base_roster]
    min_mu = min(mu_values)
    max_mu = max(mu_values)
    spread = max_mu - min_mu
    buffer = ZERO_SPREAD_BAND_BUFFER if spread == 0 else spread * config.skill_band_buffer

    return SkillBand(min=min_mu - buffer, max=max_mu + buffer, spread=spread, buffer=buffer)


def calculate_adaptive_pool_sizes(player_count: int, multiplier: float = 1.0) -> RoleComposition:
    """
    Target pool size per role for a population of ``player_count`` players.

    Small populations get fewer alternatives to keep the search small:
    up to 15 players -> 3/5/5, above that -> 4/6/6. ``multiplier`` scales the
    targets, rounding halves up (3 x 1.5 -> 5), but never below the per-match
    minimum.
    """
    if player_count <= 12:
        base = RoleComposition(tank=3, damage=5, support=5)
    elif player_count <= 15:
        base = RoleComposition(tank=3, damage=5, support=5)
    else:
        base = RoleComposition(tank=4, damage=6, support=6)

    if multiplier == 1.0:
        return base

    def scaled(target: int, minimum: int) -> int:
        return max(minimum, math.floor(target * multiplier + 0.5))

    return RoleComposition(
        tank=scaled(base.tank, MATCH_COMPOSITION.tank),
        damage=scaled(base.damage, MATCH_COMPOSITION.damage),
        support=scaled(base.support, MATCH_COMPOSITION.support),
    )


def _fill_pools(
    all_players: Sequence[PlayerCandidate],
    band: SkillBand,
    targets: RoleComposition,
    lookup: PriorityLookup,
    rng: random.Random | None,
    tie_break: TieBreak | None,
) -> CandidatePools:
    in_band = [p for p in all_players if band.contains(p.mu)]
    picked: dict[Role, list[PlayerCandidate]] = {}
    for role in Role:
        eligible = [p for p in in_band if p.can_play(role)]
        size = min(targets.for_role(role), len(eligible))
        picks = select_top_n_by_priority(eligible, role, size, lookup, rng=rng, tie_break=tie_break)
        picked[role] = [s.player for s in picks]
    return CandidatePools(
        tanks=picked[Role.TANK],
        damage=picked[Role.DAMAGE],
        support=picked[Role.SUPPORT],
    )


def build_candidate_pools(
    all_players: Sequence[PlayerCandidate],
    band: SkillBand,
    priority: "PriorityLookup | PriorityFunction",
    config: OptimizerConfig = DEFAULT_OPTIMIZER_CONFIG,
    *,
    rng: random.Random | None = None,
    tie_break: TieBreak | None = None,
) -> PoolBuildResult:
    """
    Build per-role candidate pools from every player inside the skill band.

    If any pool falls short of its target the band is widened once by
    ``config.band_expansion_factor`` and the pools are rebuilt. Whatever that
    second attempt finds is returned; under-filled pools are not an error.

    Args:
        all_players: Every available player (base roster included)
        band: Skill band from calculate_skill_band
        priority: Priority lookup or raw priority function
        config: Optimizer configuration

    Returns:
        PoolBuildResult with pools, the band used and whether it was widened
    """
    lookup = PriorityLookup.wrap(priority)
    targets = calculate_adaptive_pool_sizes(len(all_players), config.pool_size_multiplier)

    pools = _fill_pools(all_players, band, targets, lookup, rng, tie_break)
    if pools.meets(targets):
        logger.debug(f"Pools filled within band [{band.min:.2f}, {band.max:.2f}]: {pools.sizes()}")
        return PoolBuildResult(pools=pools, band=band, expanded_band=False, target_sizes=targets)

    wider = band.expanded(config.band_expansion_factor)
    logger.debug(
        f"Pools under target ({pools.sizes()} < {targets}); "
        f"widening band to [{wider.min:.2f}, {wider.max:.2f}]"
    )
    pools = _fill_pools(all_players, wider, targets, lookup, rng, tie_break)
    return PoolBuildResult(pools=pools, band=wider, expanded_band=True, target_sizes=targets)
