"""
Domain models - pure data structures for match selection.
"""

from domain.models.optimizer_config import DEFAULT_OPTIMIZER_CONFIG, OptimizerConfig
from domain.models.player import RANK_VALUES, PlayerCandidate, Rank, Role, SelectedPlayer
from domain.models.priority import PriorityScore
from domain.models.team import (
    MATCH_COMPOSITION,
    TEAM_COMPOSITION,
    BalancedTeams,
    RoleComposition,
)

__all__ = [
    "BalancedTeams",
    "DEFAULT_OPTIMIZER_CONFIG",
    "MATCH_COMPOSITION",
    "OptimizerConfig",
    "PlayerCandidate",
    "PriorityScore",
    "RANK_VALUES",
    "Rank",
    "Role",
    "RoleComposition",
    "SelectedPlayer",
    "TEAM_COMPOSITION",
]
