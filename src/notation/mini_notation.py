"""Mini-notation expansion for step-grid and piano-roll previews.

The expander turns one rhythm/pitch expression such as
``"bd ~ [sd sd] ~"`` or ``"<[c3,e3,g3] [a2,c3,e3]>"`` into discrete events
on a fixed grid of slots. It is a best-effort preview helper: unknown
syntax degrades to a single event on the first slot of its span instead
of raising, because the authoritative renderer lives elsewhere.

Every subdivision uses :func:`slot_boundary` so that sibling spans always
partition their parent exactly. The rounding matches the playback
renderer (half-up), which keeps the preview visually aligned with what
is heard.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List

import numpy as np

RESTS = frozenset({"~", "-"})
OPENERS = "[<{("
CLOSERS = "]>})"

_REPEAT_RE = re.compile(r"^(?P<base>.+)\*(?P<count>\d+)$")

# Groups nested deeper than this render as a single placeholder event.
MAX_NESTING = 64


@dataclass(frozen=True)
class TimedEvent:
    """Single expanded event expressed in grid slots."""

    value: str
    start_step: int
    duration: int


@dataclass(frozen=True)
class DrumRow:
    """One comma-separated layer of a drum pattern rendered to a step grid."""

    sound: str
    steps: np.ndarray


def slot_boundary(index: int, total: int, count: int) -> int:
    """Return ``round(index * total / count)`` with half-up rounding.

    Integer arithmetic keeps the result exact for every slot count.
    """

    if count <= 0:
        return 0
    return (2 * index * total + count) // (2 * count)


def partition(total: int, count: int) -> List[tuple[int, int]]:
    """Split ``total`` slots into ``count`` contiguous ``(start, end)`` spans."""

    return [
        (slot_boundary(i, total, count), slot_boundary(i + 1, total, count))
        for i in range(max(count, 0))
    ]


def split_top_level(expression: str, separator: str = " ") -> List[str]:
    """Split on ``separator`` only where bracket depth is zero.

    A space separator matches any whitespace. Empty pieces are dropped.
    """

    pieces: List[str] = []
    depth = 0
    current: List[str] = []
    for ch in expression:
        if ch in OPENERS:
            depth += 1
        elif ch in CLOSERS:
            depth -= 1
        is_separator = ch.isspace() if separator == " " else ch == separator
        if is_separator and depth == 0:
            piece = "".join(current).strip()
            if piece:
                pieces.append(piece)
            current = []
            continue
        current.append(ch)
    piece = "".join(current).strip()
    if piece:
        pieces.append(piece)
    return pieces


def _is_wrapped(term: str, opener: str, closer: str) -> bool:
    """Return True when ``term`` is exactly one balanced ``opener…closer`` group."""

    if len(term) < 2 or term[0] != opener or term[-1] != closer:
        return False
    depth = 0
    for idx, ch in enumerate(term):
        if ch in OPENERS:
            depth += 1
        elif ch in CLOSERS:
            depth -= 1
            if depth == 0 and idx != len(term) - 1:
                return False
    return depth == 0


def _expand_sequence(
    expression: str, start: int, span: int, cycle: int, out: List[TimedEvent], depth: int = 0
) -> None:
    expression = expression.strip()
    if not expression or span <= 0:
        return
    layers = split_top_level(expression, ",")
    if len(layers) > 1:
        for layer in layers:
            _expand_sequence(layer, start, span, cycle, out, depth)
        return
    terms = split_top_level(expression)
    if len(terms) == 1:
        _expand_term(terms[0], start, span, cycle, out, depth)
        return
    for idx, term in enumerate(terms):
        lo = slot_boundary(idx, span, len(terms))
        hi = slot_boundary(idx + 1, span, len(terms))
        if hi > lo:
            _expand_term(term, start + lo, hi - lo, cycle, out, depth)


def _expand_term(
    term: str, start: int, span: int, cycle: int, out: List[TimedEvent], depth: int = 0
) -> None:
    if term in RESTS:
        return
    if depth >= MAX_NESTING:
        out.append(TimedEvent(value=term, start_step=start, duration=1))
        return
    if _is_wrapped(term, "[", "]"):
        _expand_sequence(term[1:-1], start, span, cycle, out, depth + 1)
        return
    if _is_wrapped(term, "<", ">"):
        children = split_top_level(term[1:-1])
        if children:
            _expand_sequence(children[cycle % len(children)], start, span, cycle, out, depth + 1)
        return
    if "*" in term:
        match = _REPEAT_RE.match(term)
        count = int(match.group("count")) if match else 0
        if match is None or count <= 0:
            base = term.split("*", 1)[0] or term
            out.append(TimedEvent(value=base, start_step=start, duration=1))
            return
        base = match.group("base")
        if count >= span:
            # Each repetition is at most one slot wide, so every slot gets exactly one.
            for offset in range(span):
                _expand_term(base, start + offset, 1, cycle, out, depth + 1)
            return
        for lo, hi in partition(span, count):
            if hi > lo:
                _expand_term(base, start + lo, hi - lo, cycle, out, depth + 1)
        return
    out.append(TimedEvent(value=term, start_step=start, duration=span))


def expand_events(expression: str, total_slots: int = 16, *, cycle: int = 0) -> List[TimedEvent]:
    """Expand ``expression`` over ``total_slots`` into a time-ordered event list."""

    if not expression or total_slots <= 0:
        return []
    events: List[TimedEvent] = []
    _expand_sequence(expression, 0, int(total_slots), cycle, events)
    events.sort(key=lambda event: event.start_step)
    return events


def events_to_steps(events: Iterable[TimedEvent], total_slots: int) -> np.ndarray:
    """Render event onsets into a boolean step array."""

    grid = np.zeros(max(int(total_slots), 0), dtype=bool)
    for event in events:
        if 0 <= event.start_step < grid.size:
            grid[event.start_step] = True
    return grid


def expand_steps(expression: str, total_slots: int = 16, *, cycle: int = 0) -> np.ndarray:
    """Expand ``expression`` into a boolean onset grid of ``total_slots`` entries."""

    return events_to_steps(expand_events(expression, total_slots, cycle=cycle), total_slots)


def layer_sound(layer: str) -> str:
    """Return the first non-rest sound name in a layer, ``bd`` when none is found."""

    stripped = re.sub(r"\*\d+", "", re.sub(r"[\[\]<>{}]", " ", layer))
    for token in stripped.split():
        if token not in RESTS:
            return token
    return "bd"


def drum_rows(pattern: str, total_slots: int = 16) -> List[DrumRow]:
    """Split a drum pattern into comma layers, one step grid per layer."""

    if not pattern or not pattern.strip():
        return []
    return [
        DrumRow(sound=layer_sound(layer), steps=expand_steps(layer, total_slots))
        for layer in split_top_level(pattern, ",")
    ]


def step_matrix(pattern: str, total_slots: int = 16) -> np.ndarray:
    """Stack :func:`drum_rows` into a ``(layers, slots)`` boolean matrix."""

    rows = drum_rows(pattern, total_slots)
    if not rows:
        return np.zeros((0, max(int(total_slots), 0)), dtype=bool)
    return np.vstack([row.steps for row in rows])


__all__ = [
    "DrumRow",
    "TimedEvent",
    "drum_rows",
    "events_to_steps",
    "expand_events",
    "expand_steps",
    "layer_sound",
    "partition",
    "slot_boundary",
    "split_top_level",
    "step_matrix",
]
