"""
Pytest fixtures for tests.

Provides player factories and in-memory fakes for the roster, history,
rating and result collaborators so selection can be exercised end to end
without a database or chat transport.
"""

import itertools
import random
from datetime import datetime, timedelta, timezone

import pytest

from domain.models.player import PlayerCandidate, Role, SelectedPlayer
from domain.models.priority import PriorityScore
from repositories.interfaces import IHistoryProvider, IRatingStore, IResultSink, IRosterProvider

# =============================================================================
# CENTRALIZED CONSTANTS
# =============================================================================

FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
"""Clock value used by service tests so priority scores are exact."""

_id_counter = itertools.count(1)


# =============================================================================
# FACTORIES
# =============================================================================


def make_player(user_id=None, roles=("damage",), mu=25.0, sigma=8.333, rank="gold", tag=None):
    """Create a PlayerCandidate with sensible defaults."""
    if user_id is None:
        user_id = f"user{next(_id_counter)}"
    return PlayerCandidate(
        user_id=user_id,
        tag=tag or f"{user_id}#1234",
        roles=tuple(roles),
        mu=mu,
        sigma=sigma,
        rank=rank,
    )


def make_roster(tanks, damage, support, mu=25.0, prefix="p"):
    """Single-role players: ``tanks`` tanks, ``damage`` damage, ``support`` support."""
    players = []
    for role, count in (("tank", tanks), ("damage", damage), ("support", support)):
        for i in range(count):
            players.append(make_player(user_id=f"{prefix}-{role}{i}", roles=(role,), mu=mu))
    return players


def make_selected(user_id, role, mu=25.0, rank="gold", days=0.0):
    """Create a SelectedPlayer with an assigned role."""
    return SelectedPlayer(
        player=make_player(user_id=user_id, roles=(role,), mu=mu, rank=rank),
        assigned_role=Role.parse(role),
        priority_score=PriorityScore(days=days),
    )


MATCH_ROLES = ["tank"] * 2 + ["damage"] * 4 + ["support"] * 4


def make_selected_roster(mu_values):
    """Ten SelectedPlayers with roles 2/4/4 in order and the given mu values."""
    assert len(mu_values) == 10
    return [
        make_selected(f"s{i}", role, mu=mu)
        for i, (role, mu) in enumerate(zip(MATCH_ROLES, mu_values))
    ]


def priority_from(days_by_user, default=0.0):
    """Priority function returning days from a dict (missing users get ``default``)."""

    def priority_fn(user_id, role):
        return days_by_user.get(user_id, default)

    return priority_fn


def overlapping_flex_population():
    """
    Twelve players whose candidate pools hold only seven distinct people.

    The three long-waiting ``flex`` players can play every role, so they take
    a slot in each 3/5/5 pool. Returns (players, days_by_user).
    """
    players = [make_player(user_id=f"flex{i}", roles=("tank", "damage", "support")) for i in range(3)]
    players.append(make_player(user_id="tank0", roles=("tank",)))
    players += [make_player(user_id=f"dmg{i}", roles=("damage",)) for i in range(4)]
    players += [make_player(user_id=f"sup{i}", roles=("support",)) for i in range(4)]
    days = {p.user_id: 1.0 for p in players}
    days.update({"flex0": 100.0, "flex1": 100.0, "flex2": 100.0})
    return players, days


def shared_flex_population():
    """
    Thirteen players whose pools hold ten distinct people but no disjoint 2/4/4 pick.

    The damage and support pools share three damage/support flex players and
    together cover only seven people, one short of a 4 damage + 4 support
    split. Returns (players, days_by_user).
    """
    players = [make_player(user_id=f"tank{i}", roles=("tank",)) for i in range(3)]
    players += [make_player(user_id=f"flex{i}", roles=("damage", "support")) for i in range(3)]
    players += [make_player(user_id=f"dmg{i}", roles=("damage",)) for i in range(4)]
    players += [make_player(user_id=f"sup{i}", roles=("support",)) for i in range(3)]
    days = {p.user_id: 1.0 for p in players}
    days.update({f"tank{i}": 5.0 for i in range(3)})
    days.update({f"flex{i}": 100.0 for i in range(3)})
    days.update({"dmg0": 10.0, "dmg1": 10.0, "sup0": 10.0, "sup1": 10.0})
    return players, days


# =============================================================================
# COLLABORATOR FAKES
# =============================================================================


class FakeRosterProvider(IRosterProvider):
    def __init__(self, players):
        self.players = {p.user_id: p for p in players}

    def resolve(self, user_ids):
        return [self.players[uid] for uid in user_ids if uid in self.players]


class FakeHistoryProvider(IHistoryProvider):
    def __init__(self, last_played=None):
        self.last_played = dict(last_played or {})

    def last_completed_match_time(self, user_id):
        return self.last_played.get(user_id)


class FakeRatingStore(IRatingStore):
    def __init__(self, ratings=None):
        self.ratings = dict(ratings or {})
        self.puts = []

    def get(self, user_id):
        return self.ratings.get(user_id)

    def put(self, user_id, mu, sigma):
        self.ratings[user_id] = (mu, sigma)
        self.puts.append(user_id)


class FakeResultSink(IResultSink):
    def __init__(self):
        self.matches = []

    def create_match(self, teams):
        self.matches.append(teams)
        return len(self.matches)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def no_optimizer_trace(monkeypatch):
    """Keep optimizer tracing off unless a test turns it on."""
    monkeypatch.delenv("OPTIMIZER_TRACE_PATH", raising=False)


@pytest.fixture
def rng():
    """Seeded random source for reproducible tie-breaks."""
    return random.Random(1234)


@pytest.fixture
def standard_roster():
    """Exactly ten players: 2 tanks, 4 damage, 4 support."""
    return make_roster(2, 4, 4)


@pytest.fixture
def large_roster():
    """Sixteen single-role players with spread-out ratings: 4 tanks, 6 damage, 6 support."""
    players = []
    for role, count in (("tank", 4), ("damage", 6), ("support", 6)):
        for i in range(count):
            players.append(
                make_player(user_id=f"{role}{i}", roles=(role,), mu=22.0 + i * 1.5 + len(players) * 0.1)
            )
    return players


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def days_ago():
    """Timestamp factory relative to FIXED_NOW."""
    return lambda days: FIXED_NOW - timedelta(days=days)
