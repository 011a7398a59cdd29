"""Two-speed debounced hand-off of committed documents to the renderer.

Structural edits (bypass, solo, reorder, tempo) use a short timer that
is armed once and never pushed back. Parameter commits use a longer
timer that restarts on every commit, so a knob drag produces one render.
Arming the structural timer cancels a pending parameter timer; the
reverse never happens.
"""
from __future__ import annotations

import heapq
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator, List

logger = logging.getLogger(__name__)


class CommitKind(str, Enum):
    STRUCTURAL = "structural"
    PARAMETER = "parameter"


@dataclass(order=True)
class PendingCommit:
    """A commit due at ``due`` seconds on the scheduler clock."""

    due: float
    kind: CommitKind = field(compare=False)


class CommitScheduler:
    """Cooperative timer pair driven by :meth:`poll` from the host loop."""

    def __init__(
        self,
        callback: Callable[[CommitKind], None],
        *,
        structural_delay: float = 0.08,
        parameter_delay: float = 0.3,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if structural_delay < 0.0 or parameter_delay < 0.0:
            raise ValueError("commit delays must be non-negative")
        self._callback = callback
        self._structural_delay = float(structural_delay)
        self._parameter_delay = float(parameter_delay)
        self._clock = clock
        self._queue: List[PendingCommit] = []

    @property
    def pending(self) -> List[PendingCommit]:
        """Return armed timers, earliest first."""

        return sorted(self._queue)

    def is_pending(self, kind: CommitKind) -> bool:
        return any(entry.kind is kind for entry in self._queue)

    def schedule_structural(self) -> None:
        self._discard(CommitKind.PARAMETER)
        if self.is_pending(CommitKind.STRUCTURAL):
            return
        self._push(CommitKind.STRUCTURAL, self._structural_delay)

    def schedule_parameter(self) -> None:
        if self.is_pending(CommitKind.STRUCTURAL):
            # the structural commit already carries the latest document
            return
        self._discard(CommitKind.PARAMETER)
        self._push(CommitKind.PARAMETER, self._parameter_delay)

    def poll(self, now: float | None = None) -> List[CommitKind]:
        """Fire every timer due at ``now`` and return their kinds."""

        now = self._clock() if now is None else now
        fired = [entry.kind for entry in self._pop_due(now)]
        for kind in fired:
            logger.debug("Firing %s commit", kind.value)
            self._callback(kind)
        return fired

    def flush(self) -> List[CommitKind]:
        """Fire every armed timer immediately."""

        return self.poll(float("inf"))

    def cancel(self) -> None:
        self._queue.clear()

    def _pop_due(self, now: float) -> Iterator[PendingCommit]:
        while self._queue and self._queue[0].due <= now + 1e-9:
            yield heapq.heappop(self._queue)

    def _push(self, kind: CommitKind, delay: float) -> None:
        entry = PendingCommit(due=self._clock() + delay, kind=kind)
        heapq.heappush(self._queue, entry)
        logger.debug("Scheduled %s commit at %.3f", kind.value, entry.due)

    def _discard(self, kind: CommitKind) -> None:
        remaining = [entry for entry in self._queue if entry.kind is not kind]
        if len(remaining) != len(self._queue):
            self._queue = remaining
            heapq.heapify(self._queue)

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self._queue)


__all__ = ["CommitKind", "CommitScheduler", "PendingCommit"]
