"""Configuration shared by the session, serializer and commit scheduler."""
from __future__ import annotations

from dataclasses import dataclass

IDENTITY_STRATEGIES = ("position", "name")


@dataclass
class SyncConfig:
    """Tunables for one editing session.

    Delays are expressed in seconds. ``structural_delay`` applies to
    bypass/solo/reorder style edits and is never reset by later edits;
    ``parameter_delay`` applies to knob commits and restarts on every
    commit inside the window.
    """

    structural_delay: float = 0.08
    parameter_delay: float = 0.3
    grid_slots: int = 16
    inject_tags: bool = True
    bus_routing: bool = True
    identity_strategy: str = "position"
    min_bpm: int = 30
    max_bpm: int = 300
    default_beats_per_cycle: int = 4
    default_scale: str = "C4:major"

    def __post_init__(self) -> None:
        if self.structural_delay < 0.0 or self.parameter_delay < 0.0:
            raise ValueError("commit delays must be non-negative")
        if self.grid_slots <= 0:
            raise ValueError("grid_slots must be positive")
        if self.identity_strategy not in IDENTITY_STRATEGIES:
            raise ValueError(
                f"identity_strategy must be one of {IDENTITY_STRATEGIES}, got {self.identity_strategy!r}"
            )
        if not 0 < self.min_bpm <= self.max_bpm:
            raise ValueError("min_bpm must be positive and not exceed max_bpm")

    def clamp_bpm(self, bpm: float) -> int:
        """Round and clamp ``bpm`` to the supported tempo range."""

        return max(self.min_bpm, min(self.max_bpm, int(bpm + 0.5)))


__all__ = ["SyncConfig", "IDENTITY_STRATEGIES"]
