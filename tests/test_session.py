import numpy as np
import pytest

from domain.models import BYPASS_MARKER
from editor.config import SyncConfig
from editor.errors import BlockNotFoundError, DocumentTypeError, PatternSyncError
from editor.provenance import Provenance
from editor.scheduler import CommitKind
from editor.session import PatternSession


class Recorder:
    def __init__(self) -> None:
        self.documents: list[tuple[str, str]] = []
        self.commits: list[str] = []

    def on_document(self, text: str, correlation_id: str) -> None:
        self.documents.append((text, correlation_id))

    def on_commit(self, text: str) -> None:
        self.commits.append(text)


@pytest.fixture()
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture()
def session(sample_document, plain_config, recorder, clock) -> PatternSession:
    return PatternSession(
        sample_document,
        config=plain_config,
        on_document=recorder.on_document,
        on_commit=recorder.on_commit,
        clock=clock,
    )


def _by_name(session: PatternSession, name: str):
    return next(block for block in session.blocks if block.name == name)


def test_commit_rewrites_only_the_changed_span(session, recorder, sample_document):
    drums = _by_name(session, "Drums")

    assert session.commit_parameter(drums.id, "lpf", 1200)

    expected = sample_document.replace(".lpf(8000)", ".lpf(1200)")
    assert session.document == expected
    assert recorder.documents[-1][0] == expected
    assert session.block(drums.id).value("lpf") == 1200
    edit = session.history[0]
    assert edit.edit_id.startswith("edit_")
    assert edit.block_id == drums.id
    assert ".lpf(8000)" in edit.before and ".lpf(1200)" in edit.after


def test_commit_reaches_renderer_after_parameter_delay(session, recorder, clock):
    drums = _by_name(session, "Drums")
    session.commit_parameter(drums.id, "lpf", 1200)

    assert session.poll(0.29) == []
    assert recorder.commits == []
    assert session.poll(0.3) == [CommitKind.PARAMETER]
    assert recorder.commits == [session.document]


def test_echo_is_internal_and_skips_resegmentation(session, recorder):
    drums = _by_name(session, "Drums")
    session.commit_parameter(drums.id, "gain", 0.5)
    before = session.blocks
    text, correlation_id = recorder.documents[-1]

    assert session.receive_document(text, correlation_id) is Provenance.INTERNAL
    assert all(after is prior for after, prior in zip(session.blocks, before))


def test_external_edit_resegments_and_keeps_identity(session, recorder):
    ids = [block.id for block in session.blocks]
    edited = session.document.replace(".room(0.2)", ".room(0.7)")

    assert session.receive_document(edited) is Provenance.EXTERNAL
    assert [block.id for block in session.blocks] == ids
    assert _by_name(session, "Bass").value("room") == pytest.approx(0.7)
    assert recorder.documents == []


def test_matching_text_with_foreign_correlation_id_is_external(session, recorder):
    drums = _by_name(session, "Drums")
    session.commit_parameter(drums.id, "lpf", 1200)
    text, _ = recorder.documents[-1]

    assert session.receive_document(text, "emission_999") is Provenance.EXTERNAL


def test_neutral_value_removes_the_call(session, sample_document):
    drums = _by_name(session, "Drums")

    assert session.commit_parameter(drums.id, "lpf", 25000)

    assert session.document == sample_document.replace("\n  .lpf(8000)", "")
    assert not session.block(drums.id).reading("lpf").present


def test_unchanged_and_dynamic_commits_are_no_ops(session, recorder):
    drums = _by_name(session, "Drums")
    bass = _by_name(session, "Bass")

    assert not session.commit_parameter(drums.id, "lpf", 8000)
    assert not session.commit_parameter(bass.id, "lpf", 500)
    assert not session.remove_parameter(bass.id, "lpf")
    assert recorder.documents == []
    assert session.history == []


def test_alias_in_text_is_the_call_that_gets_written(plain_config):
    session = PatternSession('$: s("bd*4").cutoff(8000)\n', config=plain_config)
    block = session.blocks[0]

    assert session.display_value(block.id, "lpf") == 8000
    session.commit_parameter(block.id, "lpf", 500)

    assert session.document == '$: s("bd*4").cutoff(500)\n'


def test_preview_is_a_local_draft_until_commit(session, sample_document):
    drums = _by_name(session, "Drums")

    assert session.preview_parameter(drums.id, "lpf", 99999) == 20000
    assert session.display_value(drums.id, "lpf") == 20000
    assert session.document == sample_document

    session.commit_parameter(drums.id, "lpf", 5000)
    assert session.display_value(drums.id, "lpf") == 5000


def test_bypass_toggle_twice_restores_the_document(session, sample_document):
    bass = _by_name(session, "Bass")

    assert session.toggle_bypass(bass.id) is True
    assert BYPASS_MARKER + '$: note("<c2 f2>")' in session.document
    assert session.block(bass.id).raw.startswith('$: note("<c2 f2>")')

    assert session.toggle_bypass(bass.id) is False
    assert session.document == sample_document


def test_solo_silences_the_rest_without_changing_bypass_flags(sample_document, clock):
    session = PatternSession(sample_document, clock=clock)
    lead = _by_name(session, "Lead")

    assert session.toggle_solo(lead.id) is True

    assert BYPASS_MARKER + '$: s("bd ~ [sd sd] ~, hh*8")' in session.document
    assert BYPASS_MARKER + '$: note("<c2 f2>")' in session.document
    assert [block.bypassed for block in session.blocks] == [False, False, False]
    assert session.monitor_tags() == {lead.id: "block-2"}


def test_reorder_duplicate_and_delete(session):
    drums = _by_name(session, "Drums")
    lead = _by_name(session, "Lead")
    bass = _by_name(session, "Bass")

    assert session.move_block(lead.id, 0) == 0
    assert [block.name for block in session.blocks] == ["Lead", "Drums", "Bass"]
    assert session.document.index("// ── Lead ──") < session.document.index("// ── Drums ──")

    copy = session.duplicate_block(drums.id)
    assert [block.name for block in session.blocks] == ["Lead", "Drums", "Drums copy", "Bass"]
    assert copy.id not in {drums.id, lead.id, bass.id}
    assert copy.position.x == drums.position.x + 40
    assert "// ── Drums copy ──" in session.document

    session.delete_block(bass.id)
    assert "// ── Bass ──" not in session.document
    with pytest.raises(BlockNotFoundError):
        session.block(bass.id)


def test_add_and_rename_blocks(session):
    added = session.add_block("bass")

    assert session.blocks[-1].id == added.id
    assert added.name == "New bass"
    assert session.document.endswith('.scope({color:"#ef4444",thickness:2.5,smear:.96})\n')
    assert '.scale("C4:major")' in added.raw

    renamed = session.rename_block(added.id, "Sub")
    assert renamed.header == "// ── Sub ──"
    assert "// ── Sub ──" in session.document


def test_layout_changes_never_emit(session, recorder):
    drums = _by_name(session, "Drums")

    moved = session.set_layout(drums.id, 500, 80)

    assert moved.position.x == 500 and moved.position.y == 80
    assert recorder.documents == []


def test_tempo_and_time_signature(session):
    assert session.set_tempo(400) == 300
    assert "setcps(300/60/4) // 300 bpm" in session.document
    assert "setcps(120/60/4)" not in session.document

    session.set_time_signature(3)
    assert "setcps(300/60/3) // 300 bpm" in session.document
    with pytest.raises(ValueError):
        session.set_time_signature(0)


def test_key_applies_to_melodic_blocks_only(session):
    drums = _by_name(session, "Drums")
    bass = _by_name(session, "Bass")
    lead = _by_name(session, "Lead")

    changed = session.set_key("D4:minor")

    assert changed == [bass.id, lead.id]
    assert session.key == "D4:minor"
    assert session.block(bass.id).raw.startswith('$: note("<c2 f2>").scale("D4:minor").s("sawtooth")')
    assert '.scale("D4:minor")' in session.block(lead.id).raw
    assert session.block(drums.id).raw == drums.raw


def test_pattern_sound_and_scale_edits(session):
    drums = _by_name(session, "Drums")
    bass = _by_name(session, "Bass")

    assert session.set_pattern(drums.id, "bd*4, hh*8")
    assert session.block(drums.id).pattern == "bd*4, hh*8"
    assert session.set_sound(drums.id, "RolandTR808")
    assert session.block(drums.id).sound_source == "RolandTR808"
    assert session.set_sound(bass.id, "square")
    assert '.s("square")' in session.block(bass.id).raw
    assert session.set_string_parameter(bass.id, "vowel", "a")
    assert session.block(bass.id).value("vowel") == "a"


def test_structural_edit_preempts_pending_parameter_commit(session, recorder, clock):
    drums = _by_name(session, "Drums")
    session.commit_parameter(drums.id, "lpf", 1200)
    clock.advance(0.1)
    session.toggle_bypass(drums.id)

    assert session.poll(0.17) == []
    assert session.poll(0.18) == [CommitKind.STRUCTURAL]
    assert recorder.commits == [session.document]
    assert session.flush() == []


def test_previews_follow_the_block_pattern(session):
    drums = _by_name(session, "Drums")
    lead = _by_name(session, "Lead")

    steps = session.preview_steps(drums.id)
    assert steps.shape == (16,)
    assert steps[0] and steps[8] and steps[10]
    assert [row.sound for row in session.preview_rows(drums.id)] == ["bd", "hh"]
    assert [note.midi for note in session.preview_notes(lead.id)] == [60, 63, 67, 72]
    assert np.count_nonzero(session.preview_steps(lead.id)) == 4


def test_non_string_documents_are_rejected(session):
    with pytest.raises(DocumentTypeError):
        PatternSession(b"$: s('bd')")
    with pytest.raises(TypeError):
        session.receive_document(None)


def test_unknown_block_ids_raise_key_errors(session):
    with pytest.raises(BlockNotFoundError) as excinfo:
        session.toggle_bypass("missing")

    assert isinstance(excinfo.value, KeyError)
    assert isinstance(excinfo.value, PatternSyncError)


def test_config_validation():
    with pytest.raises(ValueError):
        SyncConfig(identity_strategy="content")
    with pytest.raises(ValueError):
        SyncConfig(min_bpm=400)
    assert SyncConfig().clamp_bpm(12) == 30


def test_neutral_commit_keeps_a_patterned_filter(plain_config, recorder):
    raw = '$: s("bd*4")\n  .lpf("<400 2000>").gain(0.8)'
    session = PatternSession(raw + "\n", config=plain_config, on_document=recorder.on_document)
    block = session.blocks[0]

    assert not session.commit_parameter(block.id, "lpf", 20000)
    assert not session.remove_parameter(block.id, "lpf")

    assert session.block(block.id).raw == raw
    assert recorder.documents == []
