import pytest
from pydantic import ValidationError

from domain.models import (
    BYPASS_MARKER,
    Block,
    DocumentSettings,
    LayoutPosition,
    ParameterReading,
    analysis_tag,
)


def test_layout_grid_places_three_cards_per_row():
    assert LayoutPosition.for_index(0) == LayoutPosition(x=40, y=40)
    assert LayoutPosition.for_index(2) == LayoutPosition(x=720, y=40)
    assert LayoutPosition.for_index(4) == LayoutPosition(x=380, y=400)


def test_block_label_and_display_name():
    block = Block(id="b1", raw="$lead: n(\"0 2\")", sound="gm_piano")

    assert block.label == "lead"
    assert block.display_name == "lead"
    assert Block(id="b2", raw="$: s(\"bd\")", sound="bd").display_name == "bd"
    assert Block(id="b3", raw="$: s(\"bd\")", name="Kick").display_name == "Kick"


def test_block_value_falls_back_when_unread():
    block = Block(
        id="b1",
        raw="$: s(\"bd\").gain(0.8)",
        readings={"gain": ParameterReading(name="gain", value=0.8, present=True)},
    )

    assert block.value("gain") == 0.8
    assert block.value("lpf", 20000) == 20000
    assert block.reading("lpf") is None


def test_block_rejects_prefixed_raw_text_even_with_indentation():
    with pytest.raises(ValidationError):
        Block(id="b1", raw="  " + BYPASS_MARKER + "$: s(\"bd\")")


def test_document_settings_validate_ranges():
    with pytest.raises(ValidationError):
        DocumentSettings(tempo_bpm=-1)
    with pytest.raises(ValidationError):
        DocumentSettings(beats_per_cycle=0)


def test_analysis_tag_is_keyed_by_position():
    assert analysis_tag(0) == "block-0"
    assert analysis_tag(7) == "block-7"
