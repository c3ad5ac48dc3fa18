"""
Priority scores from match history.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timezone

from domain.models.player import Role
from domain.models.priority import PriorityScore
from repositories.interfaces import IHistoryProvider

SECONDS_PER_DAY = 86400.0


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def days_since(last_played: datetime, now: datetime) -> float:
    """Days between two timestamps; naive timestamps are treated as UTC."""
    if last_played.tzinfo is None:
        last_played = last_played.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (now - last_played).total_seconds() / SECONDS_PER_DAY


def build_priority_function(
    history: IHistoryProvider,
    clock: Callable[[], datetime] = utcnow,
) -> Callable[[str, Role], PriorityScore]:
    """
    Priority function backed by the history provider.

    Priority is days since the player's last completed match in any role;
    the role argument is accepted but not used. Players with no completed
    match get the unbounded score. Timestamps in the future count as zero days.
    The clock is read once so every player in a run is measured from the same instant.
    """
    now = clock()

    def get_priority_score(user_id: str, role: Role) -> PriorityScore:
        last_played = history.last_completed_match_time(user_id)
        if last_played is None:
            return PriorityScore.never_played()
        return PriorityScore(days=max(0.0, days_since(last_played, now)))

    return get_priority_score
