"""Reassemble a block list into one document.

Bypass prefixes and the per-block routing/analysis tags are produced
here, fresh from each block's clean ``raw`` text, and nowhere else. A
block's stored text therefore never accumulates prefixes or tags no
matter how often it is toggled or re-emitted.
"""
from __future__ import annotations

import re
from typing import Sequence

from domain.models import BYPASS_MARKER, Block, DocumentSettings, analysis_tag

from .calls import injection_point
from .config import SyncConfig
from .directives import format_tempo
from .sniffer import has_parameter

TAG_RE = re.compile(r'\.analyze\(\s*"block-(?P<position>\d+)"\s*\)(?P<orbit>\.orbit\(\s*(?P<bus>\d+)\s*\))?')
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def bypass_text(raw: str) -> str:
    """Prefix every line of ``raw`` with the bypass marker."""

    return "\n".join(BYPASS_MARKER + line for line in raw.split("\n"))


def tag_segment(raw: str, position: int, *, bus_routing: bool = True) -> str:
    """Return the chain segment injected into the active block at ``position``."""

    segment = f'.analyze("{analysis_tag(position)}")'
    if bus_routing and not has_parameter(raw, "orbit"):
        segment += f".orbit({position + 1})"
    return segment


def tag_text(raw: str, position: int, *, bus_routing: bool = True) -> str:
    """Inject the analysis (and bus-routing) tag into ``raw``."""

    point = injection_point(raw)
    return raw[:point] + tag_segment(raw, position, bus_routing=bus_routing) + raw[point:]


def strip_tags(text: str) -> str:
    """Remove serializer-injected tags from ``text``.

    A trailing ``.orbit(N)`` goes with the tag only when ``N`` is the bus
    derived from the tag's position; a hand-edited bus is kept.
    """

    return TAG_RE.sub(_untag, text)


def _untag(match: re.Match[str]) -> str:
    orbit = match.group("orbit")
    if orbit is None or int(match.group("bus")) == int(match.group("position")) + 1:
        return ""
    return orbit


def is_silenced(block: Block, solo_active: bool) -> bool:
    """Return True when ``block`` is emitted with the bypass prefix."""

    return block.bypassed or (solo_active and not block.solo)


def render_block(block: Block, position: int, *, solo_active: bool, config: SyncConfig) -> str:
    """Render one block with its header, bypass prefix or tags."""

    if is_silenced(block, solo_active):
        body = bypass_text(block.raw)
    elif config.inject_tags:
        body = tag_text(block.raw, position, bus_routing=config.bus_routing)
    else:
        body = block.raw
    return f"{block.header}\n{body}" if block.header else body


def render_tempo(settings: DocumentSettings) -> str | None:
    if settings.tempo_bpm <= 0:
        return None
    return settings.tempo_line or format_tempo(settings.tempo_bpm, settings.beats_per_cycle)


def serialize(
    blocks: Sequence[Block],
    settings: DocumentSettings | None = None,
    *,
    config: SyncConfig | None = None,
) -> str:
    """Return the document text for ``blocks`` under ``settings``."""

    settings = settings or DocumentSettings()
    config = config or SyncConfig()
    parts: list[str] = []
    preamble = settings.preamble.rstrip()
    if preamble.strip():
        parts.append(preamble)
    tempo = render_tempo(settings)
    if tempo:
        parts.append(tempo)
    if parts:
        parts.append("")
    solo_active = any(block.solo for block in blocks)
    for position, block in enumerate(blocks):
        if block.leading:
            parts.append(block.leading)
        parts.append(render_block(block, position, solo_active=solo_active, config=config))
        parts.append("")
    text = _BLANK_RUN_RE.sub("\n\n", "\n".join(parts))
    return text.rstrip("\n") + "\n"


__all__ = [
    "TAG_RE",
    "bypass_text",
    "is_silenced",
    "render_block",
    "render_tempo",
    "serialize",
    "strip_tags",
    "tag_segment",
    "tag_text",
]
