"""Tell the engine's own echoed documents apart from outside edits."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class Provenance(str, Enum):
    """Origin of an inbound document change."""

    INTERNAL = "internal"
    EXTERNAL = "external"


@dataclass(frozen=True)
class Emission:
    """An outbound document the engine is waiting to see echoed back."""

    correlation_id: str
    text: str


class ProvenanceTracker:
    """One-slot state machine over the last outbound emission.

    ``record`` arms the tracker with the emitted text. The next call to
    ``classify`` always disarms it, and reports ``INTERNAL`` only when the
    inbound text is byte-identical to the emission and, if the caller
    supplied a correlation id, that id matches too. Anything ambiguous is
    ``EXTERNAL`` so the caller re-segments.
    """

    def __init__(self) -> None:
        self._outstanding: Emission | None = None
        self._counter = 0

    @property
    def outstanding(self) -> Emission | None:
        return self._outstanding

    def record(self, text: str) -> Emission:
        self._counter += 1
        emission = Emission(correlation_id=f"emission_{self._counter}", text=text)
        self._outstanding = emission
        return emission

    def classify(self, text: str, correlation_id: str | None = None) -> Provenance:
        emission, self._outstanding = self._outstanding, None
        if emission is None or emission.text != text:
            result = Provenance.EXTERNAL
        elif correlation_id is not None and correlation_id != emission.correlation_id:
            result = Provenance.EXTERNAL
        else:
            result = Provenance.INTERNAL
        logger.debug("Inbound document classified as %s", result.value)
        return result

    def reset(self) -> None:
        self._outstanding = None


__all__ = ["Emission", "Provenance", "ProvenanceTracker"]
