"""
Priority-based player selection.

Picks the base roster: the ten players who have waited longest, filled role by
role with the scarcest roles first.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from config import MATCH_SIZE
from domain.exceptions import InsufficientPlayersError, InsufficientRoleCompositionError
from domain.models.player import PlayerCandidate, Role, SelectedPlayer
from domain.models.priority import PriorityScore
from domain.models.team import MATCH_COMPOSITION, SELECTION_ORDER

logger = logging.getLogger("pug_bot.priority_selection")

PriorityFunction = Callable[[str, Role], "PriorityScore | float | None"]
TieBreak = Callable[[PlayerCandidate], Any]


def user_id_tie_break(player: PlayerCandidate) -> str:
    """Deterministic tie-break: lower user id first."""
    return player.user_id


class PriorityLookup:
    """
    Memoized view over a caller's priority function for one selection run.

    Raw results are coerced to PriorityScore, so callers may return days as a
    float, ``math.inf`` or ``None`` for players who never played.
    """

    def __init__(self, priority_fn: PriorityFunction):
        self._priority_fn = priority_fn
        self._cache: dict[tuple[str, Role], PriorityScore] = {}

    def __call__(self, user_id: str, role: Role) -> PriorityScore:
        key = (user_id, role)
        score = self._cache.get(key)
        if score is None:
            score = PriorityScore.coerce(self._priority_fn(user_id, role))
            self._cache[key] = score
        return score

    @classmethod
    def wrap(cls, priority: "PriorityLookup | PriorityFunction") -> PriorityLookup:
        return priority if isinstance(priority, PriorityLookup) else cls(priority)


def select_top_n_by_priority(
    pool: Iterable[PlayerCandidate],
    role: Role,
    count: int,
    priority: "PriorityLookup | PriorityFunction",
    exclude: frozenset[str] = frozenset(),
    *,
    rng: random.Random | None = None,
    tie_break: TieBreak | None = None,
) -> list[SelectedPlayer]:
    """
    Select up to ``count`` highest-priority players for ``role``.

    Equal scores are broken by a random shuffle before a stable sort, so equal
    priority players take turns across runs. Passing ``tie_break`` (a sort key)
    makes the order fully deterministic instead.

    Args:
        pool: Players eligible for the role
        role: Role to assign
        count: Maximum number of players to select
        priority: Priority lookup or raw priority function
        exclude: User ids already taken by an earlier pass
        rng: Random source for tie-breaking (default: module random)
        tie_break: Optional sort key replacing the random shuffle

    Returns:
        Selected players, highest priority first (may be shorter than count)
    """
    lookup = PriorityLookup.wrap(priority)
    scored = [(p, lookup(p.user_id, role)) for p in pool if p.user_id not in exclude]

    if tie_break is not None:
        scored.sort(key=lambda item: tie_break(item[0]))
    else:
        (rng or random).shuffle(scored)
    scored.sort(key=lambda item: item[1].sort_key, reverse=True)

    return [
        SelectedPlayer(player=player, assigned_role=role, priority_score=score)
        for player, score in scored[:count]
    ]


def count_role_eligibility(players: Sequence[PlayerCandidate]) -> dict[str, int]:
    """Count how many players can fill each role (flex players count for each)."""
    return {role.value: sum(1 for p in players if p.can_play(role)) for role in Role}


def select_players_by_priority(
    players: Sequence[PlayerCandidate],
    priority: "PriorityLookup | PriorityFunction",
    *,
    rng: random.Random | None = None,
    tie_break: TieBreak | None = None,
) -> list[SelectedPlayer]:
    """
    Select ten players with a valid 2/4/4 role split by priority alone.

    Roles are filled tanks, then support, then damage. Each pass excludes the
    players taken by earlier passes.

    Raises:
        InsufficientPlayersError: Fewer than ten players
        InsufficientRoleCompositionError: A role cannot supply its quota
    """
    if len(players) < MATCH_SIZE:
        raise InsufficientPlayersError(MATCH_SIZE, len(players))

    required = MATCH_COMPOSITION.as_dict()
    eligible = count_role_eligibility(players)
    if any(eligible[role] < count for role, count in required.items()):
        raise InsufficientRoleCompositionError(required, eligible)

    lookup = PriorityLookup.wrap(priority)
    selected: list[SelectedPlayer] = []
    taken: frozenset[str] = frozenset()
    filled: dict[str, int] = {}

    for role in SELECTION_ORDER:
        pool = [p for p in players if p.can_play(role)]
        quota = MATCH_COMPOSITION.for_role(role)
        picks = select_top_n_by_priority(
            pool, role, quota, lookup, taken, rng=rng, tie_break=tie_break
        )
        if len(picks) < quota:
            found = {**eligible, **filled, role.value: len(picks)}
            logger.info(
                f"Role pass for {role.value} came up short: {len(picks)}/{quota} "
                f"after excluding {len(taken)} already selected"
            )
            raise InsufficientRoleCompositionError(required, found)

        selected.extend(picks)
        taken = taken | {p.user_id for p in picks}
        filled[role.value] = quota

    return selected
