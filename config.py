"""
Centralized configuration for the PUG matchmaking core.
"""

from __future__ import annotations

import os
from typing import Any

from dotenv import load_dotenv

load_dotenv()


def _parse_int(env_var: str, default: int) -> int:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_float(env_var: str, default: float) -> float:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _parse_bool(env_var: str, default: bool) -> bool:
    raw = os.getenv(env_var)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


# Players per match and per team
MATCH_SIZE = 10
TEAM_SIZE = 5

# "optimized" (priority-weighted quality search) or "priority" (priority only)
MATCHMAKING_STRATEGY = os.getenv("MATCHMAKING_STRATEGY", "optimized").strip().lower()

OPTIMIZER_SETTINGS: dict[str, Any] = {
    "pool_size_multiplier": _parse_float("OPTIMIZER_POOL_SIZE_MULTIPLIER", 1.0),
    "skill_band_buffer": _parse_float("OPTIMIZER_SKILL_BAND_BUFFER", 0.5),
    "fairness_weight": _parse_float("OPTIMIZER_FAIRNESS_WEIGHT", 0.2),
    "priority_weight": _parse_float("OPTIMIZER_PRIORITY_WEIGHT", 0.8),
    "band_expansion_factor": _parse_float("OPTIMIZER_BAND_EXPANSION_FACTOR", 1.25),
    "strategy": MATCHMAKING_STRATEGY,
    # Break priority ties by user id instead of a random shuffle
    "deterministic_tie_break": _parse_bool("OPTIMIZER_DETERMINISTIC_TIE_BREAK", False),
}

# Fixed buffer used when every player in the base roster has the same mu
ZERO_SPREAD_BAND_BUFFER = 5.0

# Ten years of days; stands in for "never played" in cost arithmetic
PRIORITY_CAP_DAYS = _parse_float("PRIORITY_CAP_DAYS", 3650.0)

# Exponents of the optimizer cost function
PRIORITY_COST_EXPONENT = 1.5
FAIRNESS_COST_EXPONENT = 2.0

# Gaussian team rating model (mu/sigma) configuration
RATING_SETTINGS: dict[str, float] = {
    "initial_mu": _parse_float("RATING_INITIAL_MU", 25.0),
    "initial_sigma": _parse_float("RATING_INITIAL_SIGMA", 8.333),
    "beta": _parse_float("RATING_BETA", 4.167),  # Skill gap giving ~76% win chance
    "tau": _parse_float("RATING_TAU", 0.083),  # Additive uncertainty per match
    "draw_probability": _parse_float("RATING_DRAW_PROBABILITY", 0.1),
}

# Self-reported rank -> initial mu for new players
RANK_SEEDING: dict[str, float] = {
    "bronze": 15.0,
    "silver": 20.0,
    "gold": 25.0,
    "platinum": 30.0,
    "diamond": 35.0,
    "master": 40.0,
    "grandmaster": 45.0,
}
SEEDED_SIGMA = _parse_float("RATING_SEEDED_SIGMA", 5.0)
