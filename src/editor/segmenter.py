"""Split a pattern document into blocks and carry identity across edits.

The scan is line based. A block starts at a ``$:``/``$name:`` line (or
its bypass-prefixed variant) and ends at the next start, at a comment
line that sits directly on top of the next start, or at a blank line
that is followed only by more blanks and then a comment, a start or the
end of the document. Lines that belong to no block are kept: before the
first block they form the preamble, between blocks they travel with the
following block as ``leading`` text, and after the last block they are
folded into it.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from domain.models import BYPASS_MARKER, Block, DocumentSettings, LayoutPosition

from .config import SyncConfig
from .directives import is_tempo_line, parse_tempo
from .serializer import strip_tags
from .sniffer import derive_fields

logger = logging.getLogger(__name__)

MUTED = BYPASS_MARKER.rstrip()
NAME_BORDER_CHARS = "─—-═=*# \t"
_START_RE = re.compile(r"^\$\w*:")
_MUTED_PREFIX_RE = re.compile(r"^[ \t]*" + re.escape(MUTED) + r" ?")

IdFactory = Callable[[int], str]


@dataclass
class SegmentedDocument:
    """Result of segmenting one document."""

    settings: DocumentSettings
    blocks: List[Block] = field(default_factory=list)


@dataclass
class _Draft:
    leading: List[str]
    header: Optional[str]
    lines: List[str]


def is_muted_line(line: str) -> bool:
    return line.lstrip().startswith(MUTED)


def is_block_start(line: str) -> bool:
    """Return True for ``$:``/``$name:`` lines, bypassed or not."""

    stripped = line.strip()
    if stripped.startswith(MUTED):
        stripped = stripped[len(MUTED) :].lstrip()
    return bool(_START_RE.match(stripped))


def is_comment_line(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith("//") and not stripped.startswith(MUTED)


def clean_name(header: str) -> str:
    """Turn ``// ── Drums ──`` into ``Drums``; inner characters are kept."""

    text = header.strip()
    if text.startswith("//"):
        text = text[2:]
    return text.strip(NAME_BORDER_CHARS)


def unmute(lines: Sequence[str]) -> List[str]:
    """Strip exactly one bypass prefix from each line that carries one."""

    return [_MUTED_PREFIX_RE.sub("", line, count=1) for line in lines]


def _next_content(lines: Sequence[str], index: int) -> Optional[str]:
    for line in lines[index:]:
        if line.strip():
            return line
    return None


def scan(lines: Sequence[str]) -> tuple[List[str], List[_Draft]]:
    """Group ``lines`` into the preamble and block drafts."""

    preamble: List[str] = []
    drafts: List[_Draft] = []
    pending: List[str] = []
    current: Optional[_Draft] = None
    started = False

    for index, line in enumerate(lines):
        if is_block_start(line):
            if current is not None:
                drafts.append(current)
            header = None
            if pending and is_comment_line(pending[-1]):
                header = pending.pop()
            if not started:
                preamble, pending = pending, []
                started = True
            current = _Draft(leading=pending, header=header, lines=[line])
            pending = []
            continue
        if current is None:
            pending.append(line)
            continue
        following = lines[index + 1] if index + 1 < len(lines) else None
        if is_comment_line(line) and following is not None and is_block_start(following):
            drafts.append(current)
            current = None
            pending = [line]
            continue
        if not line.strip():
            upcoming = _next_content(lines, index + 1)
            if upcoming is None or is_comment_line(upcoming) or is_block_start(upcoming):
                drafts.append(current)
                current = None
                pending = [line]
                continue
        current.lines.append(line)

    if current is not None:
        drafts.append(current)
    if not started:
        return pending, []
    if any(line.strip() for line in pending):
        drafts[-1].lines.extend(pending)
    for draft in drafts:
        draft.lines = _trim_blank(draft.lines)
    return preamble, drafts


def _trim_blank(lines: Sequence[str]) -> List[str]:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return list(lines[start:end])


def _extract_tempo(lines: List[str], found: List[str]) -> List[str]:
    kept = []
    for line in lines:
        if is_tempo_line(line):
            found.append(line)
        else:
            kept.append(line)
    return kept


def match_previous(
    names: Sequence[str], previous: Sequence[Block], strategy: str = "position"
) -> List[Optional[Block]]:
    """Pair each new block (by index) with the block it continues, if any."""

    matched: List[Optional[Block]] = [None] * len(names)
    used: set[int] = set()
    if strategy == "name":
        previous_names = [block.name for block in previous]
        for index, name in enumerate(names):
            if not name or names.count(name) != 1 or previous_names.count(name) != 1:
                continue
            source = previous_names.index(name)
            matched[index] = previous[source]
            used.add(source)
    for index in range(len(names)):
        if matched[index] is None and index < len(previous) and index not in used:
            matched[index] = previous[index]
            used.add(index)
    return matched


def segment(
    document: str,
    previous: Sequence[Block] = (),
    *,
    config: SyncConfig | None = None,
    id_factory: IdFactory | None = None,
) -> SegmentedDocument:
    """Segment ``document`` into blocks, carrying UI state from ``previous``.

    Identity, canvas position and the bypass/solo flags come from the
    matched previous block. The flags survive only while the text still
    agrees with them; a bypass prefix added or removed by hand wins.
    """

    config = config or SyncConfig()
    id_factory = id_factory or (lambda index: f"block_{index}")
    preamble, drafts = scan(document.split("\n"))

    tempo_lines: List[str] = []
    preamble = _trim_blank(_extract_tempo(preamble, tempo_lines))
    for draft in drafts:
        draft.leading = _trim_blank(_extract_tempo(draft.leading, tempo_lines))

    settings = DocumentSettings(preamble="\n".join(preamble), beats_per_cycle=config.default_beats_per_cycle)
    if tempo_lines:
        tempo = parse_tempo(tempo_lines[0], default_beats=config.default_beats_per_cycle)
        if tempo is not None:
            settings = settings.model_copy(
                update={
                    "tempo_bpm": tempo.bpm,
                    "beats_per_cycle": tempo.beats_per_cycle,
                    "tempo_line": tempo_lines[0].strip(),
                }
            )

    names = [clean_name(draft.header) if draft.header else "" for draft in drafts]
    matched = match_previous(names, previous, config.identity_strategy)
    solo_was_active = any(block.solo for block in previous)

    blocks: List[Block] = []
    for index, draft in enumerate(drafts):
        muted = is_muted_line(draft.lines[0])
        body = unmute(draft.lines) if muted else draft.lines
        raw = strip_tags("\n".join(body))
        prior = matched[index]
        if prior is None:
            block_id = id_factory(index)
            position = LayoutPosition.for_index(index)
            bypassed, solo = muted, False
        else:
            block_id = prior.id
            position = prior.position
            expected = prior.bypassed or (solo_was_active and not prior.solo)
            if expected == muted:
                bypassed, solo = prior.bypassed, prior.solo
            else:
                bypassed, solo = muted, False
        blocks.append(
            Block(
                id=block_id,
                raw=raw,
                name=names[index],
                header=draft.header,
                leading="\n".join(draft.leading),
                bypassed=bypassed,
                solo=solo,
                position=position,
                **derive_fields(raw),
            )
        )

    logger.debug("Segmented document into %d block(s), %d carried over", len(blocks), sum(1 for m in matched if m))
    return SegmentedDocument(settings=settings, blocks=blocks)


__all__ = [
    "NAME_BORDER_CHARS",
    "SegmentedDocument",
    "clean_name",
    "is_block_start",
    "is_comment_line",
    "is_muted_line",
    "match_previous",
    "scan",
    "segment",
    "unmute",
]
