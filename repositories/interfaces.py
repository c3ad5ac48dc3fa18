"""
Abstract interfaces for the external collaborators of match selection.

Concrete implementations (database, chat roster lookups) live in the host
application; the selection core only depends on these contracts.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from domain.models.player import PlayerCandidate
    from domain.models.team import BalancedTeams


class IRosterProvider(ABC):
    @abstractmethod
    def resolve(self, user_ids: Iterable[str]) -> list["PlayerCandidate"]:
        """Registered players for ``user_ids``; unregistered users are omitted."""
        ...


class IHistoryProvider(ABC):
    @abstractmethod
    def last_completed_match_time(self, user_id: str) -> datetime | None:
        """When the user last finished a match (any role), or None if never."""
        ...


class IRatingStore(ABC):
    @abstractmethod
    def get(self, user_id: str) -> tuple[float, float] | None: ...

    @abstractmethod
    def put(self, user_id: str, mu: float, sigma: float) -> None: ...


class IResultSink(ABC):
    @abstractmethod
    def create_match(self, teams: "BalancedTeams") -> int:
        """Persist a match record for ``teams`` and return its id."""
        ...
