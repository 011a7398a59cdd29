"""Pitch helpers that turn note and scale-degree tokens into MIDI numbers."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Tuple

from .mini_notation import RESTS, TimedEvent, expand_events

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

SCALE_INTERVALS: Dict[str, Tuple[int, ...]] = {
    "major": (0, 2, 4, 5, 7, 9, 11),
    "minor": (0, 2, 3, 5, 7, 8, 10),
    "harmonic minor": (0, 2, 3, 5, 7, 8, 11),
    "major pentatonic": (0, 2, 4, 7, 9),
    "minor pentatonic": (0, 3, 5, 7, 10),
    "blues": (0, 3, 5, 6, 7, 10),
    "dorian": (0, 2, 3, 5, 7, 9, 10),
    "phrygian": (0, 1, 3, 5, 7, 8, 10),
    "lydian": (0, 2, 4, 6, 7, 9, 11),
    "mixolydian": (0, 2, 4, 5, 7, 9, 10),
    "chromatic": tuple(range(12)),
    "whole tone": (0, 2, 4, 6, 8, 10),
    "diminished": (0, 2, 3, 5, 6, 8, 9, 11),
}

_SCALE_RE = re.compile(r"^(?P<root>[A-G]#?)(?P<octave>-?\d+):(?P<mode>.+)$")
_NOTE_RE = re.compile(r"^(?P<letter>[a-g])(?P<accidental>[sb#]?)(?P<octave>-?\d+)$", re.IGNORECASE)
_NATURALS = {"c": 0, "d": 2, "e": 4, "f": 5, "g": 7, "a": 9, "b": 11}


@dataclass(frozen=True)
class Scale:
    """Root, octave and mode parsed from a ``"C4:major"`` style string."""

    root: str = "C"
    octave: int = 4
    mode: str = "major"

    @classmethod
    def parse(cls, value: str) -> "Scale":
        """Parse ``value`` falling back to C4 major on anything unrecognised."""

        match = _SCALE_RE.match((value or "").strip())
        if match is None:
            return cls()
        return cls(match.group("root"), int(match.group("octave")), match.group("mode"))

    @property
    def intervals(self) -> Tuple[int, ...]:
        return SCALE_INTERVALS.get(self.mode, SCALE_INTERVALS["major"])

    @property
    def root_midi(self) -> int:
        return (self.octave + 1) * 12 + NOTE_NAMES.index(self.root)

    def degree_to_midi(self, degree: int) -> int:
        """Map a zero-based scale degree (negative allowed) onto a MIDI note."""

        size = len(self.intervals)
        octave_shift, index = divmod(degree, size)
        return self.root_midi + octave_shift * 12 + self.intervals[index]


@dataclass(frozen=True)
class NoteEvent:
    """Piano-roll preview note."""

    midi: int
    start_step: int
    duration: int


def note_name_to_midi(name: str) -> int | None:
    """Convert ``c3``, ``fs2``, ``eb4`` or ``C#4`` to a MIDI number."""

    match = _NOTE_RE.match(name.strip())
    if match is None:
        return None
    base = _NATURALS[match.group("letter").lower()]
    accidental = match.group("accidental")
    if accidental in ("s", "#"):
        base += 1
    elif accidental == "b":
        base -= 1
    return (int(match.group("octave")) + 1) * 12 + base


def uses_scale_degrees(pattern: str) -> bool:
    """Return True when ``pattern`` is written in numeric scale degrees."""

    cleaned = re.sub(r"[<>\[\],~*\s.\-]", "", pattern)
    if not cleaned:
        return False
    return re.search(r"[a-g]", cleaned, re.IGNORECASE) is None and re.search(r"\d", cleaned) is not None


def resolve_midi(token: str, scale: Scale | None = None, *, degrees: bool = False) -> int | None:
    """Resolve one expanded token to MIDI, ``None`` for rests and unknown tokens."""

    token = token.strip()
    if not token or token in RESTS:
        return None
    if degrees:
        try:
            degree = int(token)
        except ValueError:
            return None
        midi = (scale or Scale()).degree_to_midi(degree)
    else:
        midi = note_name_to_midi(token)
    if midi is None or not 0 <= midi <= 127:
        return None
    return midi


def expand_notes(
    pattern: str, scale: str = "C4:major", total_slots: int = 16, *, cycle: int = 0
) -> List[NoteEvent]:
    """Expand a ``note``/``n`` pattern into MIDI preview notes."""

    if not pattern or not pattern.strip():
        return []
    parsed = Scale.parse(scale)
    degrees = uses_scale_degrees(pattern)
    notes: List[NoteEvent] = []
    for event in expand_events(pattern, total_slots, cycle=cycle):
        midi = resolve_midi(event.value, parsed, degrees=degrees)
        if midi is not None:
            notes.append(NoteEvent(midi=midi, start_step=event.start_step, duration=event.duration))
    return notes


def event_pitch(event: TimedEvent, scale: str = "C4:major") -> int | None:
    """Resolve a single :class:`TimedEvent` as a pitch, trying degrees first."""

    parsed = Scale.parse(scale)
    return resolve_midi(event.value, parsed, degrees=event.value.lstrip("-").isdigit())


__all__ = [
    "NoteEvent",
    "SCALE_INTERVALS",
    "Scale",
    "event_pitch",
    "expand_notes",
    "note_name_to_midi",
    "resolve_midi",
    "uses_scale_degrees",
]
