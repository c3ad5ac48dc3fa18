"""
Priority-weighted quality search for match selection.

Starts from the priority-selected base roster, gathers comparable-skill
alternatives per role, then scores every 2/4/4 combination of them with a
weighted cost that trades team fairness against skipping players who have
waited a long time.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import TypeVar

from config import (
    FAIRNESS_COST_EXPONENT,
    MATCH_SIZE,
    PRIORITY_CAP_DAYS,
    PRIORITY_COST_EXPONENT,
    TEAM_SIZE,
)
from domain.exceptions import InsufficientPlayersError, InsufficientRoleCompositionError
from domain.models.optimizer_config import DEFAULT_OPTIMIZER_CONFIG, OptimizerConfig
from domain.models.player import PlayerCandidate, Role, SelectedPlayer
from domain.models.priority import PriorityScore
from domain.models.team import MATCH_COMPOSITION, BalancedTeams
from domain.services.candidate_pool_service import (
    CandidatePools,
    PoolBuildResult,
    build_candidate_pools,
    calculate_skill_band,
)
from domain.services.priority_selection_service import (
    PriorityFunction,
    PriorityLookup,
    TieBreak,
    select_players_by_priority,
    user_id_tie_break,
)
from domain.services.team_balancing_service import TeamBalancingService
from utils.debug_logging import trace_event

logger = logging.getLogger("pug_bot.optimizer")

T = TypeVar("T")


@dataclass(frozen=True)
class RoleSelection:
    """One candidate combination: 2 tanks, 4 damage, 4 support."""

    tanks: tuple[PlayerCandidate, ...]
    damage: tuple[PlayerCandidate, ...]
    support: tuple[PlayerCandidate, ...]

    def user_ids(self) -> set[str]:
        return {p.user_id for p in (*self.tanks, *self.damage, *self.support)}

    def is_unique(self) -> bool:
        """False if a flex player was drawn into more than one role."""
        return len(self.user_ids()) == len(self.tanks) + len(self.damage) + len(self.support)

    def assigned(self) -> list[tuple[PlayerCandidate, Role]]:
        return [
            *((p, Role.TANK) for p in self.tanks),
            *((p, Role.DAMAGE) for p in self.damage),
            *((p, Role.SUPPORT) for p in self.support),
        ]


@dataclass(frozen=True)
class NormalizationConstants:
    f_max: float  # Largest plausible team rating-sum gap
    p_max: float  # Priority cost of skipping every candidate


@dataclass(frozen=True)
class CostMetrics:
    fairness_cost: float  # |sum(team1.mu) - sum(team2.mu)|
    priority_cost: float  # sum(capped(skipped.priority) ** 1.5)
    normalized_fairness: float
    normalized_priority: float
    total_cost: float


@dataclass
class OptimizationResult:
    selected_players: list[SelectedPlayer]
    teams: BalancedTeams
    metrics: CostMetrics
    total_evaluated: int
    valid_combinations: int


@dataclass
class MatchSelection:
    """
    Outcome of a selection run.

    ``teams`` is set when the optimizer balanced the winning combination;
    otherwise the caller balances ``selected_players`` (the base roster).
    """

    selected_players: list[SelectedPlayer]
    base_roster: list[SelectedPlayer]
    teams: BalancedTeams | None = None
    metrics: CostMetrics | None = None
    optimized: bool = False
    fallback_reason: str | None = None
    expanded_band: bool = False
    total_evaluated: int = 0
    valid_combinations: int = 0
    pool_sizes: dict[str, int] = field(default_factory=dict)


def combinations(items: Sequence[T], k: int) -> Iterator[list[T]]:
    """
    Yield every k-element combination of ``items`` in input order.

    Order-independent and without repetition: C(n, k) results.
    """
    if k == 0:
        yield []
        return
    if k > len(items):
        return
    if k == len(items):
        yield list(items)
        return

    for i in range(len(items) - k + 1):
        first = items[i]
        for rest in combinations(items[i + 1 :], k - 1):
            yield [first, *rest]


def generate_combinations(pools: CandidatePools) -> Iterator[RoleSelection]:
    """
    Yield every 2-tank / 4-damage / 4-support combination from the pools.

    With 4/6/6 pools this is C(4,2) * C(6,4) * C(6,4) = 6 * 15 * 15 = 1,350.
    """
    support_combos = [tuple(c) for c in combinations(pools.support, MATCH_COMPOSITION.support)]
    damage_combos = [tuple(c) for c in combinations(pools.damage, MATCH_COMPOSITION.damage)]
    for tank_combo in combinations(pools.tanks, MATCH_COMPOSITION.tank):
        for damage_combo in damage_combos:
            for support_combo in support_combos:
                yield RoleSelection(
                    tanks=tuple(tank_combo), damage=damage_combo, support=support_combo
                )


def _priority_penalty(score: PriorityScore) -> float:
    return score.capped(PRIORITY_CAP_DAYS) ** PRIORITY_COST_EXPONENT


def candidate_priorities(
    pools: CandidatePools, priority: "PriorityLookup | PriorityFunction"
) -> dict[str, tuple[PlayerCandidate, PriorityScore]]:
    """Map each unique pooled user id to (player, priority for their first listed role)."""
    lookup = PriorityLookup.wrap(priority)
    return {
        user_id: (player, lookup(user_id, player.primary_role))
        for user_id, player in pools.unique_candidates().items()
    }


def calculate_normalization_constants(
    pools: CandidatePools, priority: "PriorityLookup | PriorityFunction"
) -> NormalizationConstants:
    """
    Compute the denominators that put both cost terms on a 0-1 scale.

    F_max = (max(mu) - min(mu)) * 5 over all pooled candidates.
    P_max = sum(capped(priority) ** 1.5) over unique pooled candidates, with
    never-played players capped at PRIORITY_CAP_DAYS.
    Both are floored to 1 when zero.
    """
    all_candidates = pools.all_candidates()
    if not all_candidates:
        return NormalizationConstants(f_max=1.0, p_max=1.0)

    mu_values = [p.mu for p in all_candidates]
    f_max = (max(mu_values) - min(mu_values)) * TEAM_SIZE

    p_max = sum(_priority_penalty(score) for _, score in candidate_priorities(pools, priority).values())

    return NormalizationConstants(f_max=f_max or 1.0, p_max=p_max or 1.0)


def calculate_cost(
    teams: BalancedTeams,
    selection: RoleSelection,
    candidates: dict[str, tuple[PlayerCandidate, PriorityScore]],
    normalization: NormalizationConstants,
    config: OptimizerConfig = DEFAULT_OPTIMIZER_CONFIG,
) -> CostMetrics:
    """
    Score one combination (lower is better).

    cost = fairness_weight * (F / F_max) ** 2 + priority_weight * (P / P_max) ** 1.5

    where F is the team rating-sum gap and P the capped priority penalty of
    every pooled candidate left out of the combination.
    """
    team1_sum, team2_sum = teams.rating_sums()
    fairness_cost = abs(team1_sum - team2_sum)

    selected_ids = selection.user_ids()
    priority_cost = sum(
        _priority_penalty(score)
        for user_id, (_, score) in candidates.items()
        if user_id not in selected_ids
    )

    normalized_fairness = fairness_cost / normalization.f_max
    normalized_priority = priority_cost / normalization.p_max
    total_cost = (
        config.fairness_weight * normalized_fairness**FAIRNESS_COST_EXPONENT
        + config.priority_weight * normalized_priority**PRIORITY_COST_EXPONENT
    )

    return CostMetrics(
        fairness_cost=fairness_cost,
        priority_cost=priority_cost,
        normalized_fairness=normalized_fairness,
        normalized_priority=normalized_priority,
        total_cost=total_cost,
    )


def _to_selected(
    selection: RoleSelection, candidates: dict[str, tuple[PlayerCandidate, PriorityScore]]
) -> list[SelectedPlayer]:
    return [
        SelectedPlayer(player=player, assigned_role=role, priority_score=candidates[player.user_id][1])
        for player, role in selection.assigned()
    ]


def select_optimal_combination(
    pools: CandidatePools,
    candidates: dict[str, tuple[PlayerCandidate, PriorityScore]],
    normalization: NormalizationConstants,
    config: OptimizerConfig = DEFAULT_OPTIMIZER_CONFIG,
    balancer: TeamBalancingService | None = None,
) -> OptimizationResult:
    """
    Evaluate every combination and keep the cheapest.

    Combinations that reuse a flex player across roles are skipped. They still
    count toward ``total_evaluated``; ``valid_combinations`` counts the scored ones.

    Raises:
        InsufficientRoleCompositionError: If no combination is valid
    """
    balancer = balancer or TeamBalancingService()
    best: tuple[list[SelectedPlayer], BalancedTeams, CostMetrics] | None = None
    total_evaluated = 0
    valid_combinations = 0

    for selection in generate_combinations(pools):
        total_evaluated += 1
        if not selection.is_unique():
            continue
        valid_combinations += 1

        selected = _to_selected(selection, candidates)
        teams = balancer.balance_teams(selected)
        metrics = calculate_cost(teams, selection, candidates, normalization, config)

        if best is None or metrics.total_cost < best[2].total_cost:
            best = (selected, teams, metrics)

    if best is None:
        found = {
            role.value: len({p.user_id for p in pools.for_role(role)}) for role in Role
        }
        raise InsufficientRoleCompositionError(MATCH_COMPOSITION.as_dict(), found)

    selected, teams, metrics = best
    return OptimizationResult(
        selected_players=selected,
        teams=teams,
        metrics=metrics,
        total_evaluated=total_evaluated,
        valid_combinations=valid_combinations,
    )


def _fallback(base: list[SelectedPlayer], reason: str, **extra) -> MatchSelection:
    logger.info(f"Optimization skipped ({reason}); using priority-selected roster")
    trace_event("match_optimizer.fallback", reason, {"base": [p.user_id for p in base]})
    return MatchSelection(
        selected_players=base, base_roster=base, fallback_reason=reason, **extra
    )


def optimize_match_selection(
    players: Sequence[PlayerCandidate],
    priority_fn: "PriorityLookup | PriorityFunction",
    config: OptimizerConfig = DEFAULT_OPTIMIZER_CONFIG,
    *,
    rng: random.Random | None = None,
    tie_break: TieBreak | None = None,
    balancer: TeamBalancingService | None = None,
) -> MatchSelection:
    """
    Select ten players, trading waiting time against team fairness.

    1. Select the base roster by priority (this is the guaranteed answer).
    2. Derive a skill band from it and build per-role candidate pools.
    3. Score every valid combination and keep the cheapest.

    Any problem in steps 2-3 falls back to the base roster without raising.

    Raises:
        InsufficientPlayersError: Fewer than ten players
        InsufficientRoleCompositionError: Base selection cannot fill a role
    """
    if len(players) < MATCH_SIZE:
        raise InsufficientPlayersError(MATCH_SIZE, len(players))

    if tie_break is None and config.deterministic_tie_break:
        tie_break = user_id_tie_break
    lookup = PriorityLookup.wrap(priority_fn)

    base = select_players_by_priority(players, lookup, rng=rng, tie_break=tie_break)

    if len(players) == MATCH_SIZE:
        return _fallback(base, "exactly ten players")

    band = calculate_skill_band(base, config)
    try:
        built: PoolBuildResult = build_candidate_pools(
            players, band, lookup, config, rng=rng, tie_break=tie_break
        )
    except Exception as e:
        logger.warning(f"Candidate pool build failed: {e}", exc_info=True)
        return _fallback(base, "pool build failed")

    pools = built.pools
    extra = {"expanded_band": built.expanded_band, "pool_sizes": pools.sizes().as_dict()}

    if not pools.meets(MATCH_COMPOSITION):
        return _fallback(base, "pools below match minimum", **extra)
    if pools.sizes() == MATCH_COMPOSITION:
        return _fallback(base, "no alternative candidates", **extra)

    candidates = candidate_priorities(pools, lookup)
    if len(candidates) < MATCH_SIZE:
        return _fallback(base, "fewer than ten unique candidates", **extra)

    normalization = calculate_normalization_constants(pools, lookup)
    try:
        result = select_optimal_combination(pools, candidates, normalization, config, balancer)
    except InsufficientRoleCompositionError:
        return _fallback(base, "no valid combination", **extra)

    m = result.metrics
    logger.info(
        f"Evaluated {result.valid_combinations}/{result.total_evaluated} combinations "
        f"(pools {extra['pool_sizes']}, band [{built.band.min:.2f}, {built.band.max:.2f}]"
        f"{', expanded' if built.expanded_band else ''})"
    )
    logger.info(
        f"SELECTED: cost={m.total_cost:.4f} fairness={m.fairness_cost:.2f} "
        f"(norm {m.normalized_fairness:.3f}) priority={m.priority_cost:.1f} "
        f"(norm {m.normalized_priority:.3f})"
    )
    trace_event(
        "match_optimizer.selected",
        "best combination",
        {
            "metrics": m.__dict__,
            "players": [p.user_id for p in result.selected_players],
            "evaluated": result.total_evaluated,
            "valid": result.valid_combinations,
        },
    )

    return MatchSelection(
        selected_players=result.selected_players,
        base_roster=base,
        teams=result.teams,
        metrics=m,
        optimized=True,
        total_evaluated=result.total_evaluated,
        valid_combinations=result.valid_combinations,
        **extra,
    )
