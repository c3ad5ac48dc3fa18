"""
Rating updates after a match, backed by the rating store.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from openskill_rating_system import PugOpenSkillSystem
from repositories.interfaces import IRatingStore
from services import error_codes
from services.result import Result

logger = logging.getLogger("pug_bot.services.rating")


class RatingService:
    """Seeds new players and applies match outcomes to stored ratings."""

    def __init__(self, rating_store: IRatingStore, rating_system: PugOpenSkillSystem | None = None):
        self.rating_store = rating_store
        self.rating_system = rating_system or PugOpenSkillSystem()

    def ensure_seeded(self, user_id: str, rank: str | None) -> tuple[float, float]:
        """
        Return the stored rating, seeding it from ``rank`` if the player has none.
        """
        existing = self.rating_store.get(user_id)
        if existing is not None:
            return existing
        mu, sigma = self.rating_system.seed_rating(rank)
        self.rating_store.put(user_id, mu, sigma)
        logger.info(f"Seeded rating for {user_id} from rank {rank!r}: mu={mu:.2f}, sigma={sigma:.3f}")
        return mu, sigma

    def get_display_rating(self, user_id: str) -> int | None:
        rating = self.rating_store.get(user_id)
        if rating is None:
            return None
        return self.rating_system.display_rating(*rating)

    def record_match(
        self,
        team1_ids: Sequence[str],
        team2_ids: Sequence[str],
        winning_team: int,
    ) -> Result[dict[str, tuple[float, float]]]:
        """
        Update and store ratings for every participant.

        Players without a stored rating use the system defaults.

        Args:
            team1_ids: User ids on team 1
            team2_ids: User ids on team 2
            winning_team: 1 or 2, or 0 for a draw

        Returns:
            Result with user_id -> (new_mu, new_sigma)
        """
        if winning_team not in (0, 1, 2):
            return Result.fail(
                f"winning_team must be 0, 1 or 2, got {winning_team}", code=error_codes.INVALID_RESULT
            )
        if not team1_ids or not team2_ids:
            return Result.fail("Both teams need at least one player", code=error_codes.VALIDATION_ERROR)
        overlap = set(team1_ids) & set(team2_ids)
        if overlap:
            return Result.fail(
                f"Players on both teams: {', '.join(sorted(overlap))}",
                code=error_codes.VALIDATION_ERROR,
            )

        def team_data(ids):
            data = []
            for user_id in ids:
                stored = self.rating_store.get(user_id)
                mu, sigma = stored if stored is not None else (None, None)
                data.append((user_id, mu, sigma))
            return data

        updated = self.rating_system.update_ratings_after_match(
            team_data(team1_ids), team_data(team2_ids), winning_team
        )
        for user_id, (mu, sigma) in updated.items():
            self.rating_store.put(user_id, mu, sigma)

        outcome = "draw" if winning_team == 0 else f"team {winning_team} won"
        logger.info(f"Updated ratings for {len(updated)} players ({outcome})")
        return Result.ok(updated)
