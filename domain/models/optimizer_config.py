"""
Optimizer configuration model.
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any

from config import OPTIMIZER_SETTINGS


@dataclass(frozen=True)
class OptimizerConfig:
    """
    Tuning knobs for priority-weighted match selection.

    Defaults come from ``config.OPTIMIZER_SETTINGS`` (env-backed). Per-guild
    overrides are layered on top with ``from_settings``.
    """

    pool_size_multiplier: float = 1.0
    skill_band_buffer: float = 0.5
    fairness_weight: float = 0.2
    priority_weight: float = 0.8
    band_expansion_factor: float = 1.25
    strategy: str = "optimized"
    deterministic_tie_break: bool = False

    def __post_init__(self):
        if self.pool_size_multiplier <= 0:
            raise ValueError("pool_size_multiplier must be positive")
        if self.skill_band_buffer < 0:
            raise ValueError("skill_band_buffer must be non-negative")
        if self.fairness_weight < 0 or self.priority_weight < 0:
            raise ValueError("cost weights must be non-negative")
        if self.band_expansion_factor < 1:
            raise ValueError("band_expansion_factor must be at least 1")

    @classmethod
    def from_settings(cls, overrides: dict[str, Any] | None = None) -> OptimizerConfig:
        """
        Build a config from the global settings plus optional overrides.

        Raises:
            ValueError: If an override key is not a config field
        """
        known = {f.name for f in fields(cls)}
        settings = {k: v for k, v in OPTIMIZER_SETTINGS.items() if k in known}
        if overrides:
            unknown = set(overrides) - known
            if unknown:
                raise ValueError(f"Unknown optimizer settings: {', '.join(sorted(unknown))}")
            settings.update(overrides)
        return cls(**settings)

    def with_overrides(self, **overrides: Any) -> OptimizerConfig:
        return replace(self, **overrides)


# Env-backed defaults, read once at import
DEFAULT_OPTIMIZER_CONFIG = OptimizerConfig.from_settings()
