"""
Result type returned by the service layer.

Services report user-facing failures (too few players, a short role, an
unknown player) as values instead of exceptions so callers can render them.

Usage:
    result = matchmaking_service.create_match_teams(user_ids)
    if result:
        announce(result.value.teams)
    else:
        reply(f"{result.error} ({result.error_code})")
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Success or failure of a service call.

    Attributes:
        success: Whether the operation succeeded
        value: Payload on success
        error: Human-readable message on failure
        error_code: Code from services.error_codes on failure
    """

    success: bool
    value: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> Result[T]:
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str, code: str | None = None) -> Result[T]:
        return cls(success=False, error=error, error_code=code)

    def __bool__(self) -> bool:
        return self.success

    def unwrap(self) -> T:
        """
        Return the value of a successful result.

        Raises:
            ValueError: If the result is a failure
        """
        if not self.success:
            raise ValueError(f"Cannot unwrap failed result: {self.error}")
        return self.value  # type: ignore[return-value]

    def unwrap_or(self, default: T) -> T:
        return self.value if self.success else default  # type: ignore[return-value]

    def map(self, fn: Callable[[T], Result[U]]) -> Result[U]:
        """Chain ``fn`` onto a success; failures pass through unchanged."""
        if not self.success:
            return self  # type: ignore[return-value]
        return fn(self.value)  # type: ignore[arg-type]
