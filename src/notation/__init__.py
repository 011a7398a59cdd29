"""Mini-notation expansion used by block previews."""

from .mini_notation import (
    DrumRow,
    TimedEvent,
    drum_rows,
    expand_events,
    expand_steps,
    partition,
    slot_boundary,
    split_top_level,
    step_matrix,
)
from .pitch import NoteEvent, Scale, expand_notes, note_name_to_midi

__all__ = [
    "DrumRow",
    "TimedEvent",
    "drum_rows",
    "expand_events",
    "expand_steps",
    "partition",
    "slot_boundary",
    "split_top_level",
    "step_matrix",
    "NoteEvent",
    "Scale",
    "expand_notes",
    "note_name_to_midi",
]
