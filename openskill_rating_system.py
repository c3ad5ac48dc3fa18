"""
Gaussian skill rating system (mu/sigma) for PUG players.

Wraps OpenSkill's Thurstone-Mosteller full-pairing model, the TrueSkill-style
Gaussian model, configured with an initial mean and uncertainty, a beta scale,
a tau dynamics factor and a draw probability.

Key points:
- New players are seeded from their self-reported rank with a tight sigma
- Updates are pure: old (mu, sigma) + outcome -> new (mu, sigma)
- Display rating is the conservative estimate (mu - 3 * sigma) * 100
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from statistics import NormalDist

from openskill.models import ThurstoneMostellerFull

from config import RANK_SEEDING, RATING_SETTINGS, SEEDED_SIGMA

logger = logging.getLogger("pug_bot.rating")

RatingTuple = tuple[float, float]


class PugOpenSkillSystem:
    """
    Manages mu/sigma ratings and post-match updates.

    The draw probability is turned into the model's draw margin the way
    TrueSkill does it: epsilon = Phi^-1((p + 1) / 2) * sqrt(n) * beta, where n is
    the number of players in the match. One model is kept per match size.
    """

    # Players whose sigma drops below this are considered calibrated
    CALIBRATION_THRESHOLD = 4.0

    def __init__(
        self,
        initial_mu: float | None = None,
        initial_sigma: float | None = None,
        beta: float | None = None,
        tau: float | None = None,
        draw_probability: float | None = None,
    ):
        self.initial_mu = initial_mu if initial_mu is not None else RATING_SETTINGS["initial_mu"]
        self.initial_sigma = (
            initial_sigma if initial_sigma is not None else RATING_SETTINGS["initial_sigma"]
        )
        self.beta = beta if beta is not None else RATING_SETTINGS["beta"]
        self.tau = tau if tau is not None else RATING_SETTINGS["tau"]
        self.draw_probability = (
            draw_probability
            if draw_probability is not None
            else RATING_SETTINGS["draw_probability"]
        )
        if not 0.0 <= self.draw_probability < 1.0:
            raise ValueError(f"draw_probability must be in [0, 1), got {self.draw_probability}")
        self._models: dict[int, ThurstoneMostellerFull] = {}

    def draw_margin(self, total_players: int) -> float:
        if self.draw_probability == 0:
            return 0.0
        z = NormalDist().inv_cdf((self.draw_probability + 1) / 2)
        return z * math.sqrt(total_players) * self.beta

    def model_for(self, total_players: int) -> ThurstoneMostellerFull:
        model = self._models.get(total_players)
        if model is None:
            model = ThurstoneMostellerFull(
                mu=self.initial_mu,
                sigma=self.initial_sigma,
                beta=self.beta,
                tau=self.tau,
                epsilon=self.draw_margin(total_players),
            )
            self._models[total_players] = model
        return model

    def seed_rating(self, rank: str | None) -> RatingTuple:
        """
        Initial (mu, sigma) for a new player from their self-reported rank.

        Known ranks get the rank's mu and the tighter seeded sigma; missing or
        unknown ranks get the system defaults.
        """
        if rank:
            mu = RANK_SEEDING.get(rank.strip().lower())
            if mu is not None:
                return mu, SEEDED_SIGMA
        return self.initial_mu, self.initial_sigma

    def _rate(
        self,
        team1: Sequence[RatingTuple],
        team2: Sequence[RatingTuple],
        ranks: list[int],
    ) -> tuple[list[RatingTuple], list[RatingTuple]]:
        if not team1 or not team2:
            raise ValueError("Both teams need at least one player")

        model = self.model_for(len(team1) + len(team2))
        teams = [
            [model.rating(mu=mu, sigma=sigma) for mu, sigma in team1],
            [model.rating(mu=mu, sigma=sigma) for mu, sigma in team2],
        ]
        try:
            updated = model.rate(teams, ranks=ranks)
        except Exception as e:
            logger.error(f"OpenSkill rate() failed: {e}")
            raise

        return (
            [(r.mu, r.sigma) for r in updated[0]],
            [(r.mu, r.sigma) for r in updated[1]],
        )

    def calculate_post_match(
        self,
        winners: Sequence[RatingTuple],
        losers: Sequence[RatingTuple],
        is_draw: bool = False,
    ) -> tuple[list[RatingTuple], list[RatingTuple]]:
        """
        New ratings for both sides after a match.

        Ranks are [0, 1] (first side won) or [0, 0] for a draw.

        Args:
            winners: (mu, sigma) for each player on the winning side
            losers: (mu, sigma) for each player on the losing side
            is_draw: Treat the match as a draw

        Returns:
            Tuple of (new_winner_ratings, new_loser_ratings) in input order
        """
        ranks = [0, 0] if is_draw else [0, 1]
        return self._rate(winners, losers, ranks)

    def update_ratings_after_match(
        self,
        team1_data: Sequence[tuple[str, float | None, float | None]],
        team2_data: Sequence[tuple[str, float | None, float | None]],
        winning_team: int,
    ) -> dict[str, RatingTuple]:
        """
        Update ratings for two teams keyed by user id.

        Missing mu/sigma values fall back to the system defaults.

        Args:
            team1_data: (user_id, mu, sigma) for team 1
            team2_data: (user_id, mu, sigma) for team 2
            winning_team: 1 or 2, or 0 for a draw

        Returns:
            Dict mapping user_id -> (new_mu, new_sigma)
        """
        if winning_team not in (0, 1, 2):
            raise ValueError(f"winning_team must be 0, 1 or 2, got {winning_team}")

        def ratings(data):
            return [
                (
                    mu if mu is not None else self.initial_mu,
                    sigma if sigma is not None else self.initial_sigma,
                )
                for _, mu, sigma in data
            ]

        ranks = {0: [0, 0], 1: [0, 1], 2: [1, 0]}[winning_team]
        new_team1, new_team2 = self._rate(ratings(team1_data), ratings(team2_data), ranks)

        results: dict[str, RatingTuple] = {}
        for (user_id, _, _), rating in zip(team1_data, new_team1):
            results[user_id] = rating
        for (user_id, _, _), rating in zip(team2_data, new_team2):
            results[user_id] = rating
        return results

    def predict_win_probability(
        self,
        team1_ratings: Sequence[RatingTuple],
        team2_ratings: Sequence[RatingTuple],
    ) -> float:
        """
        Probability that team1 beats team2.

        Returns 0.5 when either side is empty or the model cannot predict.
        """
        if not team1_ratings or not team2_ratings:
            return 0.5

        model = self.model_for(len(team1_ratings) + len(team2_ratings))
        team1 = [model.rating(mu=mu, sigma=sigma) for mu, sigma in team1_ratings]
        team2 = [model.rating(mu=mu, sigma=sigma) for mu, sigma in team2_ratings]
        try:
            return model.predict_win([team1, team2])[0]
        except Exception as e:
            logger.warning(f"OpenSkill predict_win failed: {e}")
            return 0.5

    def is_calibrated(self, sigma: float) -> bool:
        return sigma <= self.CALIBRATION_THRESHOLD

    @staticmethod
    def display_rating(mu: float, sigma: float) -> int:
        """
        Conservative skill rating shown to players.

        Formula: max(0, round((mu - 3 * sigma) * 100))
        """
        return max(0, int(round((mu - 3 * sigma) * 100)))
