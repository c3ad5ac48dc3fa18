"""
Tests for the priority-weighted combination search.
"""

import math
from collections import Counter

import pytest

import match_optimizer
from domain.exceptions import InsufficientRoleCompositionError
from domain.models.optimizer_config import OptimizerConfig
from domain.models.player import Role
from domain.models.team import BalancedTeams
from domain.services.candidate_pool_service import CandidatePools
from domain.services.team_balancing_service import TeamBalancingService
from match_optimizer import (
    NormalizationConstants,
    RoleSelection,
    calculate_cost,
    calculate_normalization_constants,
    candidate_priorities,
    combinations,
    generate_combinations,
    optimize_match_selection,
    select_optimal_combination,
)
from tests.conftest import (
    MATCH_ROLES,
    make_player,
    make_roster,
    make_selected,
    overlapping_flex_population,
    priority_from,
    shared_flex_population,
)

MATCH_QUOTA = {Role.TANK: 2, Role.DAMAGE: 4, Role.SUPPORT: 4}


def pools_from(players):
    """Split single-role players into pools by their only role."""
    by_role = {role: [p for p in players if p.primary_role == role] for role in Role}
    return CandidatePools(
        tanks=by_role[Role.TANK], damage=by_role[Role.DAMAGE], support=by_role[Role.SUPPORT]
    )


class TestCombinations:
    """Tests for the k-combination generator."""

    def test_small_case_in_input_order(self):
        assert list(combinations([1, 2, 3], 2)) == [[1, 2], [1, 3], [2, 3]]

    def test_edge_sizes(self):
        assert list(combinations([1, 2], 0)) == [[]]
        assert list(combinations([1, 2], 2)) == [[1, 2]]
        assert list(combinations([1, 2], 3)) == []

    @pytest.mark.parametrize("n,k", [(4, 2), (6, 4), (5, 4), (3, 2)])
    def test_count_matches_binomial(self, n, k):
        combos = list(combinations(list(range(n)), k))
        assert len(combos) == math.comb(n, k)
        assert len({tuple(c) for c in combos}) == len(combos)

    def test_full_pools_yield_1350_combinations(self):
        pools = pools_from(make_roster(4, 6, 6))
        assert sum(1 for _ in generate_combinations(pools)) == 1350

    def test_minimum_pools_yield_one_combination(self):
        pools = pools_from(make_roster(2, 4, 4))
        combos = list(generate_combinations(pools))
        assert len(combos) == 1
        assert combos[0].is_unique()

    def test_role_selection_detects_reused_flex_player(self):
        flex = make_player(user_id="flex", roles=("tank", "support"))
        others = make_roster(1, 4, 3)
        selection = RoleSelection(
            tanks=(flex, others[0]),
            damage=tuple(others[1:5]),
            support=(flex, *others[5:8]),
        )
        assert not selection.is_unique()
        assert len(selection.assigned()) == 10


class TestNormalization:
    def test_constants_from_pool(self):
        players = make_roster(3, 5, 5)
        players[0] = make_player(user_id="p-tank0", roles=("tank",), mu=30.0)
        players[5] = make_player(user_id="p-damage2", roles=("damage",), mu=22.0)
        pools = pools_from(players)

        norm = calculate_normalization_constants(pools, priority_from({"p-tank0": 4.0, "p-support1": 9.0}))
        assert norm.f_max == pytest.approx((30.0 - 22.0) * 5)
        assert norm.p_max == pytest.approx(4.0**1.5 + 9.0**1.5)

    def test_zero_constants_floor_to_one(self):
        pools = pools_from(make_roster(3, 5, 5))
        norm = calculate_normalization_constants(pools, priority_from({}))
        assert norm.f_max == 1.0
        assert norm.p_max == 1.0

    def test_never_played_is_capped(self):
        pools = pools_from(make_roster(2, 4, 4))
        norm = calculate_normalization_constants(pools, priority_from({}, default=None))
        assert math.isfinite(norm.p_max)
        assert norm.p_max == pytest.approx(10 * 3650.0**1.5)

    def test_flex_player_counted_once(self):
        flex = make_player(user_id="flex", roles=("tank", "support"))
        pools = CandidatePools(tanks=[flex], damage=[], support=[flex])
        norm = calculate_normalization_constants(pools, priority_from({"flex": 4.0}))
        assert norm.p_max == pytest.approx(8.0)


class TestCalculateCost:
    """Tests for the weighted cost function."""

    def test_skipped_priority_cost(self):
        pools = pools_from(make_roster(3, 5, 5))
        priority = priority_from({"p-tank2": 4.0})
        candidates = candidate_priorities(pools, priority)
        norm = calculate_normalization_constants(pools, priority)

        selection = RoleSelection(
            tanks=tuple(pools.tanks[:2]),
            damage=tuple(pools.damage[:4]),
            support=tuple(pools.support[:4]),
        )
        teams = TeamBalancingService().balance_teams(match_optimizer._to_selected(selection, candidates))
        metrics = calculate_cost(teams, selection, candidates, norm, OptimizerConfig())

        assert metrics.fairness_cost == 0
        assert metrics.priority_cost == pytest.approx(8.0)
        assert metrics.normalized_priority == pytest.approx(1.0)
        assert metrics.total_cost == pytest.approx(0.8)

    def test_fairness_normalized_by_f_max(self):
        team1 = [make_selected(f"a{i}", role, mu=25.0) for i, role in enumerate(MATCH_ROLES[::2])]
        team2 = [make_selected(f"b{i}", role, mu=24.0) for i, role in enumerate(MATCH_ROLES[1::2])]
        teams = BalancedTeams(team1=team1, team2=team2)
        players = [p.player for p in team1 + team2]
        selection = RoleSelection(
            tanks=tuple(p for p in players if p.primary_role == Role.TANK),
            damage=tuple(p for p in players if p.primary_role == Role.DAMAGE),
            support=tuple(p for p in players if p.primary_role == Role.SUPPORT),
        )
        candidates = candidate_priorities(pools_from(players), priority_from({}))

        metrics = calculate_cost(
            teams, selection, candidates, NormalizationConstants(f_max=150.0, p_max=1.0)
        )

        assert teams.rating_sums() == (125.0, 120.0)
        assert metrics.fairness_cost == 5.0
        assert metrics.normalized_fairness == pytest.approx(5 / 150)
        assert metrics.total_cost == pytest.approx(
            0.2 * metrics.normalized_fairness**2 + 0.8 * metrics.normalized_priority**1.5
        )

    def test_total_combines_weighted_terms(self):
        players = make_roster(3, 5, 5)
        players[0] = make_player(user_id="p-tank0", roles=("tank",), mu=33.0)
        pools = pools_from(players)
        priority = priority_from({"p-damage4": 2.0, "p-support4": 7.0})
        candidates = candidate_priorities(pools, priority)
        norm = calculate_normalization_constants(pools, priority)
        config = OptimizerConfig(fairness_weight=0.3, priority_weight=0.7)

        selection = RoleSelection(
            tanks=tuple(pools.tanks[:2]),
            damage=tuple(pools.damage[:4]),
            support=tuple(pools.support[:4]),
        )
        teams = TeamBalancingService().balance_teams(match_optimizer._to_selected(selection, candidates))
        metrics = calculate_cost(teams, selection, candidates, norm, config)

        assert metrics.fairness_cost == pytest.approx(8.0)
        assert norm.f_max == pytest.approx(40.0)
        expected = 0.3 * (8.0 / 40.0) ** 2 + 0.7 * (metrics.priority_cost / norm.p_max) ** 1.5
        assert metrics.total_cost == pytest.approx(expected)

    def test_never_played_candidates_keep_cost_finite(self):
        pools = pools_from(make_roster(3, 5, 5))
        priority = priority_from({}, default=None)
        candidates = candidate_priorities(pools, priority)
        norm = calculate_normalization_constants(pools, priority)

        result = select_optimal_combination(pools, candidates, norm, OptimizerConfig())
        assert math.isfinite(result.metrics.total_cost)
        assert result.metrics.normalized_priority == pytest.approx(3 / 13)


class TestSelectOptimalCombination:
    """Tests for the exhaustive search."""

    def test_long_waiting_player_included(self):
        pools = pools_from(make_roster(3, 5, 5))
        priority = priority_from({"p-tank2": 100.0})
        candidates = candidate_priorities(pools, priority)
        norm = calculate_normalization_constants(pools, priority)

        result = select_optimal_combination(pools, candidates, norm, OptimizerConfig())

        assert "p-tank2" in {p.user_id for p in result.selected_players}
        assert result.total_evaluated == 75
        assert result.valid_combinations == 75

    def test_fairness_weight_avoids_outlier(self):
        players = make_roster(3, 5, 5)
        players[7] = make_player(user_id="p-damage4", roles=("damage",), mu=40.0)
        pools = pools_from(players)
        priority = priority_from({})
        candidates = candidate_priorities(pools, priority)
        norm = calculate_normalization_constants(pools, priority)
        config = OptimizerConfig(fairness_weight=1.0, priority_weight=0.0)

        result = select_optimal_combination(pools, candidates, norm, config)

        assert "p-damage4" not in {p.user_id for p in result.selected_players}
        assert result.metrics.fairness_cost == 0

    def test_reused_flex_combinations_skipped(self):
        flex = make_player(user_id="flex", roles=("tank", "support"))
        others = make_roster(2, 4, 4)
        tanks = [flex, *others[:2]]
        damage = others[2:6]
        support = [flex, *others[6:10]]
        pools = CandidatePools(tanks=tanks, damage=damage, support=support)
        priority = priority_from({})
        candidates = candidate_priorities(pools, priority)

        result = select_optimal_combination(
            pools, candidates, calculate_normalization_constants(pools, priority)
        )

        assert result.total_evaluated == 3 * 1 * 5
        assert result.valid_combinations == 7
        assert len({p.user_id for p in result.selected_players}) == 10

    def test_selected_players_keep_role_and_priority(self):
        pools = pools_from(make_roster(3, 5, 5))
        priority = priority_from({"p-support2": 6.0})
        candidates = candidate_priorities(pools, priority)
        result = select_optimal_combination(
            pools, candidates, calculate_normalization_constants(pools, priority)
        )

        by_id = {p.user_id: p for p in result.selected_players}
        assert by_id["p-support2"].assigned_role == Role.SUPPORT
        assert by_id["p-support2"].priority_score.days == 6.0
        assert Counter(p.assigned_role for p in result.selected_players) == {
            Role.TANK: 2,
            Role.DAMAGE: 4,
            Role.SUPPORT: 4,
        }

    def test_no_valid_combination_raises(self):
        flex = make_player(user_id="flex", roles=("tank", "support"))
        others = make_roster(1, 4, 3)
        pools = CandidatePools(tanks=[flex, others[0]], damage=others[1:5], support=[flex, *others[5:8]])
        priority = priority_from({})
        candidates = candidate_priorities(pools, priority)

        with pytest.raises(InsufficientRoleCompositionError):
            select_optimal_combination(
                pools, candidates, calculate_normalization_constants(pools, priority)
            )


class TestOptimizeMatchSelection:
    """Tests for the full optimizer pipeline and its fallbacks."""

    def test_exactly_ten_players_skips_search(self, standard_roster, rng):
        selection = optimize_match_selection(standard_roster, priority_from({}), rng=rng)

        assert selection.optimized is False
        assert selection.fallback_reason == "exactly ten players"
        assert selection.teams is None
        assert {p.user_id for p in selection.selected_players} == {p.user_id for p in standard_roster}

    def test_searches_full_pools(self, rng):
        players = make_roster(4, 6, 6)
        selection = optimize_match_selection(players, priority_from({}), rng=rng)

        assert selection.optimized is True
        assert selection.fallback_reason is None
        assert selection.total_evaluated == 1350
        assert selection.valid_combinations == 1350
        assert selection.pool_sizes == {"tank": 4, "damage": 6, "support": 6}
        assert selection.teams is not None
        assert len({p.user_id for p in selection.selected_players}) == 10

    def test_never_beats_base_roster_fairness(self):
        players = []
        for role, count in (("tank", 4), ("damage", 6), ("support", 6)):
            for i in range(count):
                players.append(
                    make_player(user_id=f"{role}{i}", roles=(role,), mu=20.0 + (len(players) * 7) % 13)
                )
        config = OptimizerConfig(deterministic_tie_break=True)
        balancer = TeamBalancingService()

        selection = optimize_match_selection(players, priority_from({}), config)

        base_gap = balancer.balance_teams(selection.base_roster).rating_difference()
        assert selection.optimized is True
        assert selection.metrics.fairness_cost <= base_gap + 1e-9

    def test_all_never_played_has_finite_metrics(self, rng):
        players = make_roster(4, 6, 6)
        selection = optimize_match_selection(players, priority_from({}, default=None), rng=rng)

        assert selection.optimized is True
        assert math.isfinite(selection.metrics.total_cost)
        assert selection.metrics.normalized_priority == pytest.approx(6 / 16)

    def test_pool_build_failure_falls_back(self, monkeypatch, rng, caplog):
        def boom(*args, **kwargs):
            raise RuntimeError("pool store unavailable")

        monkeypatch.setattr(match_optimizer, "build_candidate_pools", boom)
        selection = optimize_match_selection(make_roster(4, 6, 6), priority_from({}), rng=rng)

        assert selection.optimized is False
        assert selection.fallback_reason == "pool build failed"
        assert selection.selected_players == selection.base_roster
        assert "Candidate pool build failed" in caplog.text

    def test_no_alternatives_falls_back(self, rng):
        players = [*make_roster(2, 4, 4), make_player(user_id="smurf", roles=("damage",), mu=60.0)]
        days = {p.user_id: 5.0 for p in players}
        days["smurf"] = 0.0

        selection = optimize_match_selection(players, priority_from(days), rng=rng)

        assert selection.optimized is False
        assert selection.fallback_reason == "no alternative candidates"
        assert selection.expanded_band is True
        assert "smurf" not in {p.user_id for p in selection.selected_players}

    def test_trace_written_when_enabled(self, monkeypatch, tmp_path, rng):
        path = tmp_path / "trace.jsonl"
        monkeypatch.setenv("OPTIMIZER_TRACE_PATH", str(path))

        optimize_match_selection(make_roster(4, 6, 6), priority_from({}), rng=rng)

        assert "match_optimizer.selected" in path.read_text(encoding="utf-8")

    def test_fewer_than_ten_unique_candidates_falls_back(self, rng):
        players, days = overlapping_flex_population()

        selection = optimize_match_selection(players, priority_from(days), rng=rng)

        assert selection.optimized is False
        assert selection.fallback_reason == "fewer than ten unique candidates"
        assert selection.pool_sizes == {"tank": 3, "damage": 5, "support": 5}
        assert selection.teams is None
        assert selection.selected_players == selection.base_roster
        assert Counter(p.assigned_role for p in selection.selected_players) == MATCH_QUOTA

    def test_no_disjoint_combination_falls_back(self, rng):
        players, days = shared_flex_population()

        selection = optimize_match_selection(players, priority_from(days), rng=rng)

        assert selection.optimized is False
        assert selection.fallback_reason == "no valid combination"
        assert selection.pool_sizes == {"tank": 3, "damage": 5, "support": 5}
        assert selection.teams is None
        assert selection.selected_players == selection.base_roster
        assert Counter(p.assigned_role for p in selection.selected_players) == MATCH_QUOTA
