"""Pydantic-powered domain models for pattern documents and their blocks.

A :class:`Block` is a derived view of one ``$:`` pattern inside the text
document. Everything except the UI-owned fields (identity, layout
position, bypass and solo) is re-derived from ``raw`` whenever the text
changes, so the read-model can never drift from the code it describes.
"""
from __future__ import annotations

import re
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, field_validator

BYPASS_MARKER = "// [muted] "
ANALYSIS_TAG_PREFIX = "block-"
_LABEL_RE = re.compile(r"^\s*\$(?P<label>\w*):")


class LayoutPosition(BaseModel):
    """Canvas coordinates of a block card; owned by the UI."""

    x: float = 0.0
    y: float = 0.0

    @classmethod
    def for_index(cls, index: int, *, columns: int = 3) -> LayoutPosition:
        """Default grid placement for the ``index``-th block."""

        return cls(x=(index % columns) * 340 + 40, y=(index // columns) * 360 + 40)


class ParameterReading(BaseModel):
    """Read-model entry describing one chain parameter of a block."""

    name: str
    value: Union[float, str]
    dynamic: bool = False
    present: bool = False


class Block(BaseModel):
    """One independently addressable pattern inside a document."""

    id: str
    raw: str
    name: str = ""
    header: Optional[str] = Field(None, description="Verbatim name comment line")
    leading: str = Field("", description="Orphan lines emitted before the header")
    bypassed: bool = False
    solo: bool = False
    position: LayoutPosition = Field(default_factory=LayoutPosition)
    kind: str = "other"
    sound: str = ""
    sound_source: str = ""
    pattern: str = ""
    readings: Dict[str, ParameterReading] = Field(default_factory=dict)

    @field_validator("raw")
    @classmethod
    def validate_clean_raw(cls, value: str) -> str:
        first = value.split("\n", 1)[0].lstrip()
        if first.startswith(BYPASS_MARKER.rstrip()):
            raise ValueError("Block raw text must not carry its own bypass prefix")
        return value

    @property
    def label(self) -> str:
        """Return the ``$label:`` name of the pattern start, if any."""

        match = _LABEL_RE.match(self.raw)
        return match.group("label") if match else ""

    @property
    def display_name(self) -> str:
        """Return the best human-readable name for the card header."""

        return self.name or self.label or self.sound

    def reading(self, name: str) -> ParameterReading | None:
        return self.readings.get(name)

    def value(self, name: str, fallback: float | str | None = None) -> float | str | None:
        """Return the read-model value for ``name`` or ``fallback``."""

        reading = self.readings.get(name)
        return reading.value if reading is not None else fallback


class DocumentSettings(BaseModel):
    """Document-global directives that live outside any block."""

    preamble: str = ""
    tempo_bpm: int = Field(0, ge=0, description="0 means no tempo directive is known")
    beats_per_cycle: int = Field(4, gt=0)
    tempo_line: Optional[str] = Field(None, description="Verbatim directive while unchanged")


class SessionSnapshot(BaseModel):
    """Persistable state: the document plus UI-owned block state."""

    document: str
    settings: DocumentSettings = Field(default_factory=DocumentSettings)
    blocks: List[Block] = Field(default_factory=list)
    key: str = ""


def analysis_tag(position: int) -> str:
    """Return the monitoring tag string for the block at ``position``."""

    return f"{ANALYSIS_TAG_PREFIX}{position}"


__all__ = [
    "ANALYSIS_TAG_PREFIX",
    "BYPASS_MARKER",
    "Block",
    "DocumentSettings",
    "LayoutPosition",
    "ParameterReading",
    "SessionSnapshot",
    "analysis_tag",
]
