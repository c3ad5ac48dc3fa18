"""
Domain exceptions raised by match selection.
"""

from __future__ import annotations


class InsufficientPlayersError(ValueError):
    """Fewer registered players than a match needs."""

    def __init__(self, required: int, found: int):
        self.required = required
        self.found = found
        super().__init__(f"Not enough players. Need {required}+, found {found}.")


class InsufficientRoleCompositionError(ValueError):
    """A role cannot supply its per-match quota."""

    def __init__(self, required: dict[str, int], found: dict[str, int]):
        self.required = dict(required)
        self.found = dict(found)
        super().__init__(
            f"Can't make balanced teams. Need {required['tank']}+ tanks, "
            f"{required['damage']}+ damage, {required['support']}+ support. "
            f"Currently: {found['tank']} tanks, {found['damage']} damage, "
            f"{found['support']} support."
        )


class TeamBalancingInvariantError(RuntimeError):
    """The team balancer reached a state valid role quotas make impossible."""
