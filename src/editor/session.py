"""Editing session that keeps a block list and a pattern document in sync.

``PatternSession`` is the only surface the node editor talks to. Every
write goes through the mutator (one block's text) and the serializer
(the whole document), is emitted immediately to ``on_document`` and is
handed to the renderer through ``on_commit`` once the matching commit
timer fires. Echoes of the session's own emissions are recognised and
skipped; any other inbound document is re-segmented from scratch.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Sequence

import numpy as np

from domain.models import Block, DocumentSettings, LayoutPosition, SessionSnapshot, analysis_tag
from notation.mini_notation import DrumRow, drum_rows, expand_steps
from notation.pitch import NoteEvent, expand_notes

from . import mutator
from .config import SyncConfig
from .errors import BlockNotFoundError, DocumentTypeError
from .parameters import get_spec
from .provenance import Emission, Provenance, ProvenanceTracker
from .scheduler import CommitKind, CommitScheduler
from .segmenter import segment
from .serializer import is_silenced, serialize
from .sniffer import MELODIC_KINDS, derive_fields, present_name
from .templates import render_template, template_header

logger = logging.getLogger(__name__)

DocumentSink = Callable[[str, str], None]
CommitSink = Callable[[str], None]


@dataclass(frozen=True)
class ParameterEdit:
    """Record of one block-text edit for auditing."""

    edit_id: str
    block_id: str
    name: str
    before: str
    after: str


def header_for(name: str) -> str | None:
    return f"// ── {name} ──" if name else None


class PatternSession:
    """Bidirectional sync controller for one pattern document."""

    def __init__(
        self,
        document: str = "",
        *,
        config: SyncConfig | None = None,
        on_document: DocumentSink | None = None,
        on_commit: CommitSink | None = None,
        clock: Callable[[], float] = time.monotonic,
        blocks: Sequence[Block] = (),
    ) -> None:
        _require_text(document)
        self._config = config or SyncConfig()
        self._on_document = on_document
        self._on_commit = on_commit
        self._tracker = ProvenanceTracker()
        self._scheduler = CommitScheduler(
            self._fire_commit,
            structural_delay=self._config.structural_delay,
            parameter_delay=self._config.parameter_delay,
            clock=clock,
        )
        self._document = document
        self._blocks: List[Block] = list(blocks)
        self._settings = DocumentSettings(beats_per_cycle=self._config.default_beats_per_cycle)
        self._drafts: Dict[tuple[str, str], float] = {}
        self._history: List[ParameterEdit] = []
        self._block_counter = 0
        self._edit_counter = 0
        self._key = ""
        self._resegment(document)

    # ------------------------------------------------------------------
    # Read surface
    # ------------------------------------------------------------------
    @property
    def document(self) -> str:
        """Return the latest document, inbound or emitted."""

        return self._document

    @property
    def blocks(self) -> List[Block]:
        return list(self._blocks)

    @property
    def settings(self) -> DocumentSettings:
        return self._settings

    @property
    def config(self) -> SyncConfig:
        return self._config

    @property
    def key(self) -> str:
        """Return the last scale applied with :meth:`set_key`."""

        return self._key

    @property
    def history(self) -> List[ParameterEdit]:
        """Return recorded block edits in order of execution."""

        return list(self._history)

    @property
    def outstanding(self) -> Emission | None:
        return self._tracker.outstanding

    @property
    def scheduler(self) -> CommitScheduler:
        return self._scheduler

    def block(self, block_id: str) -> Block:
        return self._blocks[self.index_of(block_id)]

    def index_of(self, block_id: str) -> int:
        for index, block in enumerate(self._blocks):
            if block.id == block_id:
                return index
        raise BlockNotFoundError(block_id)

    def display_value(self, block_id: str, name: str) -> float | str | None:
        """Return the knob value to draw: a live draft or the read-model value."""

        block = self.block(block_id)
        spec = get_spec(name)
        canonical = spec.name if spec is not None else name
        draft = self._drafts.get((block_id, canonical))
        if draft is not None:
            return draft
        fallback = spec.default if spec is not None else None
        return block.value(canonical, fallback)

    def monitor_tags(self) -> Dict[str, str]:
        """Map each active, tagged block id to its analysis tag."""

        if not self._config.inject_tags:
            return {}
        solo_active = any(block.solo for block in self._blocks)
        return {
            block.id: analysis_tag(position)
            for position, block in enumerate(self._blocks)
            if not is_silenced(block, solo_active)
        }

    def preview_steps(self, block_id: str, *, cycle: int = 0) -> np.ndarray:
        """Return the onset grid of the block's pattern."""

        block = self.block(block_id)
        return expand_steps(block.pattern, self._config.grid_slots, cycle=cycle)

    def preview_rows(self, block_id: str) -> List[DrumRow]:
        block = self.block(block_id)
        return drum_rows(block.pattern, self._config.grid_slots)

    def preview_notes(self, block_id: str, *, cycle: int = 0) -> List[NoteEvent]:
        """Return piano-roll notes of a melodic block's pattern."""

        block = self.block(block_id)
        scale = block.value("scale") or self._key or self._config.default_scale
        return expand_notes(block.pattern, str(scale), self._config.grid_slots, cycle=cycle)

    # ------------------------------------------------------------------
    # Inbound documents
    # ------------------------------------------------------------------
    def receive_document(self, text: str, correlation_id: str | None = None) -> Provenance:
        """Accept a document from outside; re-segment unless it is our own echo."""

        _require_text(text)
        provenance = self._tracker.classify(text, correlation_id)
        self._document = text
        if provenance is Provenance.EXTERNAL:
            self._drafts.clear()
            self._resegment(text)
        return provenance

    # ------------------------------------------------------------------
    # Parameter edits
    # ------------------------------------------------------------------
    def preview_parameter(self, block_id: str, name: str, value: float) -> float:
        """Record a draft knob value without touching the document."""

        self.block(block_id)
        spec = get_spec(name)
        value = float(value)
        if spec is not None and not spec.is_string:
            value = spec.clamp(value)
        canonical = spec.name if spec is not None else name
        self._drafts[(block_id, canonical)] = value
        return value

    def commit_parameter(self, block_id: str, name: str, value: float | str) -> bool:
        """Write ``value`` into the block's text; neutral values remove the call.

        Returns False when the text did not change, either because the
        value is already there or because the argument is signal-driven.
        """

        block = self.block(block_id)
        spec = get_spec(name)
        target = name
        if spec is not None:
            self._drafts.pop((block_id, spec.name), None)
            target = present_name(block.raw, spec) or spec.name
        if isinstance(value, str):
            return self._edit_text(block, target, mutator.mutate(block.raw, target, value), CommitKind.STRUCTURAL)
        value = float(value)
        if spec is not None and not spec.is_string:
            value = spec.clamp(value)
            if spec.is_neutral(value):
                return self._edit_text(block, target, mutator.mutate(block.raw, target, mutator.REMOVE), CommitKind.PARAMETER)
        return self._edit_text(block, target, mutator.mutate(block.raw, target, value), CommitKind.PARAMETER)

    def remove_parameter(self, block_id: str, name: str) -> bool:
        block = self.block(block_id)
        spec = get_spec(name)
        target = name
        if spec is not None:
            self._drafts.pop((block_id, spec.name), None)
            target = present_name(block.raw, spec) or spec.name
        return self._edit_text(block, target, mutator.mutate(block.raw, target, mutator.REMOVE), CommitKind.PARAMETER)

    def set_string_parameter(self, block_id: str, name: str, value: str) -> bool:
        """Set a quoted parameter such as ``vowel``; an empty value removes it."""

        return self.commit_parameter(block_id, name, str(value))

    def set_pattern(self, block_id: str, pattern: str) -> bool:
        """Replace the mini-notation string of the block's sound or note source."""

        block = self.block(block_id)
        updated = mutator.set_pattern(block.raw, pattern, drums=block.kind == "drums")
        return self._edit_text(block, "pattern", updated, CommitKind.STRUCTURAL)

    def set_sound(self, block_id: str, source: str) -> bool:
        block = self.block(block_id)
        updated = mutator.set_sound(block.raw, source, drums=block.kind == "drums")
        return self._edit_text(block, "sound", updated, CommitKind.STRUCTURAL)

    def set_scale(self, block_id: str, scale: str) -> bool:
        block = self.block(block_id)
        return self._edit_text(block, "scale", mutator.set_string(block.raw, "scale", scale), CommitKind.STRUCTURAL)

    # ------------------------------------------------------------------
    # Structural edits
    # ------------------------------------------------------------------
    def toggle_bypass(self, block_id: str) -> bool:
        """Flip the bypass flag and return its new state."""

        index = self.index_of(block_id)
        block = self._blocks[index]
        self._blocks[index] = block.model_copy(update={"bypassed": not block.bypassed})
        self._emit(CommitKind.STRUCTURAL)
        return not block.bypassed

    def toggle_solo(self, block_id: str) -> bool:
        """Flip the solo flag and return its new state.

        Several blocks may be soloed at once. While any block is soloed,
        every other block is emitted bypassed without touching its own
        bypass flag.
        """

        index = self.index_of(block_id)
        block = self._blocks[index]
        self._blocks[index] = block.model_copy(update={"solo": not block.solo})
        self._emit(CommitKind.STRUCTURAL)
        return not block.solo

    def move_block(self, block_id: str, new_index: int) -> int:
        """Move a block to ``new_index`` (clamped) and return where it landed."""

        index = self.index_of(block_id)
        block = self._blocks.pop(index)
        new_index = max(0, min(len(self._blocks), int(new_index)))
        self._blocks.insert(new_index, block)
        self._emit(CommitKind.STRUCTURAL)
        return new_index

    def duplicate_block(self, block_id: str) -> Block:
        """Insert an active copy of the block directly after it."""

        index = self.index_of(block_id)
        source = self._blocks[index]
        name = f"{source.name} copy" if source.name else ""
        copy = source.model_copy(
            update={
                "id": self._next_block_id(),
                "name": name,
                "header": header_for(name),
                "leading": "",
                "bypassed": False,
                "solo": False,
                "position": LayoutPosition(x=source.position.x + 40, y=source.position.y + 40),
            }
        )
        self._blocks.insert(index + 1, copy)
        self._emit(CommitKind.STRUCTURAL)
        return copy

    def delete_block(self, block_id: str) -> Block:
        index = self.index_of(block_id)
        removed = self._blocks.pop(index)
        for key in [key for key in self._drafts if key[0] == block_id]:
            del self._drafts[key]
        self._emit(CommitKind.STRUCTURAL)
        return removed

    def add_block(self, kind: str = "drums") -> Block:
        """Append a starter block of ``kind`` from the quick-add templates."""

        raw = render_template(kind, scale=self._key or self._config.default_scale)
        name = f"New {kind}"
        block = Block(
            id=self._next_block_id(),
            raw=raw,
            name=name,
            header=template_header(kind),
            position=LayoutPosition.for_index(len(self._blocks)),
            **derive_fields(raw),
        )
        self._blocks.append(block)
        self._emit(CommitKind.STRUCTURAL)
        return block

    def rename_block(self, block_id: str, name: str) -> Block:
        index = self.index_of(block_id)
        name = name.strip()
        renamed = self._blocks[index].model_copy(update={"name": name, "header": header_for(name)})
        self._blocks[index] = renamed
        self._emit(CommitKind.STRUCTURAL)
        return renamed

    def set_layout(self, block_id: str, x: float, y: float) -> Block:
        """Move a card on the canvas; layout never reaches the document."""

        index = self.index_of(block_id)
        moved = self._blocks[index].model_copy(update={"position": LayoutPosition(x=x, y=y)})
        self._blocks[index] = moved
        return moved

    # ------------------------------------------------------------------
    # Document-global edits
    # ------------------------------------------------------------------
    def set_tempo(self, bpm: float) -> int:
        """Clamp and apply ``bpm``; returns the tempo actually written."""

        clamped = self._config.clamp_bpm(bpm)
        self._settings = self._settings.model_copy(update={"tempo_bpm": clamped, "tempo_line": None})
        self._emit(CommitKind.STRUCTURAL)
        return clamped

    def set_time_signature(self, beats_per_cycle: int) -> None:
        if int(beats_per_cycle) <= 0:
            raise ValueError("beats_per_cycle must be positive")
        self._settings = self._settings.model_copy(
            update={"beats_per_cycle": int(beats_per_cycle), "tempo_line": None}
        )
        self._emit(CommitKind.STRUCTURAL)

    def set_key(self, scale: str) -> List[str]:
        """Apply ``scale`` to every melodic block; returns the ids that changed."""

        self._key = scale
        changed: List[str] = []
        for index, block in enumerate(self._blocks):
            if block.kind not in MELODIC_KINDS:
                continue
            updated = mutator.set_string(block.raw, "scale", scale)
            if updated == block.raw:
                continue
            self._record(block, "scale", updated)
            self._blocks[index] = self._rebuild(block, updated)
            changed.append(block.id)
        self._emit(CommitKind.STRUCTURAL)
        return changed

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------
    def poll(self, now: float | None = None) -> List[CommitKind]:
        return self._scheduler.poll(now)

    def flush(self) -> List[CommitKind]:
        """Hand any pending commit to the renderer right away."""

        return self._scheduler.flush()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(document=self._document, settings=self._settings, blocks=self.blocks, key=self._key)

    @classmethod
    def from_snapshot(cls, snapshot: SessionSnapshot, **kwargs) -> PatternSession:
        """Restore a session; UI state is carried onto the re-segmented document."""

        session = cls(snapshot.document, blocks=snapshot.blocks, **kwargs)
        session._key = snapshot.key
        return session

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _resegment(self, text: str) -> None:
        result = segment(text, self._blocks, config=self._config, id_factory=lambda _index: self._next_block_id())
        self._blocks = result.blocks
        self._settings = result.settings
        logger.debug("Re-segmented document: %d block(s)", len(self._blocks))

    def _next_block_id(self) -> str:
        taken = {block.id for block in self._blocks}
        while True:
            self._block_counter += 1
            candidate = f"block_{self._block_counter}"
            if candidate not in taken:
                return candidate

    def _rebuild(self, block: Block, raw: str) -> Block:
        payload = block.model_dump(exclude={"raw", "kind", "sound", "sound_source", "pattern", "readings"})
        return Block.model_validate({**payload, "raw": raw, **derive_fields(raw)})

    def _record(self, block: Block, name: str, updated: str) -> ParameterEdit:
        self._edit_counter += 1
        edit = ParameterEdit(
            edit_id=f"edit_{self._edit_counter}",
            block_id=block.id,
            name=name,
            before=block.raw,
            after=updated,
        )
        self._history.append(edit)
        return edit

    def _edit_text(self, block: Block, name: str, updated: str, kind: CommitKind) -> bool:
        if updated == block.raw:
            logger.debug("Edit of %s on block %s left the text unchanged", name, block.id)
            return False
        self._record(block, name, updated)
        self._blocks[self.index_of(block.id)] = self._rebuild(block, updated)
        self._emit(kind)
        return True

    def _emit(self, kind: CommitKind) -> Emission | None:
        text = serialize(self._blocks, self._settings, config=self._config)
        if text == self._document:
            return None
        self._document = text
        emission = self._tracker.record(text)
        if self._on_document is not None:
            self._on_document(text, emission.correlation_id)
        if kind is CommitKind.STRUCTURAL:
            self._scheduler.schedule_structural()
        else:
            self._scheduler.schedule_parameter()
        return emission

    def _fire_commit(self, kind: CommitKind) -> None:
        if self._on_commit is not None:
            self._on_commit(self._document)


def _require_text(document: object) -> None:
    if not isinstance(document, str):
        raise DocumentTypeError(f"document must be str, got {type(document).__name__}")


__all__ = ["ParameterEdit", "PatternSession", "header_for"]
