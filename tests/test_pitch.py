import pytest

from notation.mini_notation import TimedEvent
from notation.pitch import Scale, event_pitch, expand_notes, note_name_to_midi, uses_scale_degrees


@pytest.mark.parametrize(
    "name, midi",
    [("c4", 60), ("a4", 69), ("C#4", 61), ("cs4", 61), ("eb3", 51), ("b3", 59), ("c-1", 0)],
)
def test_note_names_resolve_to_midi(name, midi):
    assert note_name_to_midi(name) == midi


def test_unknown_note_name_is_none():
    assert note_name_to_midi("h4") is None
    assert note_name_to_midi("bd") is None


def test_scale_parse_and_degrees():
    scale = Scale.parse("D3:minor")

    assert scale == Scale("D", 3, "minor")
    assert scale.root_midi == 50
    assert scale.degree_to_midi(0) == 50
    assert scale.degree_to_midi(2) == 53
    assert scale.degree_to_midi(7) == 62
    assert scale.degree_to_midi(-1) == 48


def test_unrecognised_scale_falls_back_to_c_major():
    assert Scale.parse("nonsense") == Scale()
    assert Scale.parse("C4:unknown-mode").intervals == Scale().intervals


def test_expand_notes_from_scale_degrees():
    notes = expand_notes("0 2 4 ~", "C4:major", 16)

    assert [note.midi for note in notes] == [60, 64, 67]
    assert [note.start_step for note in notes] == [0, 4, 8]
    assert all(note.duration == 4 for note in notes)


def test_expand_notes_from_note_names_and_chords():
    notes = expand_notes("<[c3,e3,g3] [a2,c3,e3]>", "C4:major", 16)

    assert sorted(note.midi for note in notes) == [48, 52, 55]
    assert uses_scale_degrees("<c2 f2>") is False
    assert uses_scale_degrees("0 [2 4]") is True


def test_event_pitch_tries_degrees_for_numeric_tokens():
    assert event_pitch(TimedEvent("2", 0, 4), "C4:major") == 64
    assert event_pitch(TimedEvent("g4", 0, 4)) == 67
    assert event_pitch(TimedEvent("~", 0, 4)) is None
