"""Document-global tempo directive (``setcps``/``setbpm``) helpers."""
from __future__ import annotations

import re
from dataclasses import dataclass

_CPS_FRACTION_RE = re.compile(r"setcps\s*\(\s*([0-9.]+)\s*/\s*60\s*/\s*(\d+)\s*\)")
_CPS_RE = re.compile(r"setcps\s*\(\s*([0-9.]+)\s*\)")
_BPM_RE = re.compile(r"setbpm\s*\(\s*([0-9.]+)\s*\)")


@dataclass(frozen=True)
class Tempo:
    """Tempo in beats per minute and beats per pattern cycle."""

    bpm: int
    beats_per_cycle: int = 4


def is_tempo_line(line: str) -> bool:
    """Return True when ``line`` is a tempo directive."""

    stripped = line.strip()
    return stripped.startswith("setcps") or stripped.startswith("setbpm")


def parse_tempo(text: str, *, default_beats: int = 4) -> Tempo | None:
    """Extract the first tempo directive from ``text``."""

    try:
        match = _CPS_FRACTION_RE.search(text)
        if match:
            return Tempo(int(float(match.group(1)) + 0.5), int(match.group(2)) or default_beats)
        match = _CPS_RE.search(text)
        if match:
            return Tempo(int(float(match.group(1)) * 60 * default_beats + 0.5), default_beats)
        match = _BPM_RE.search(text)
        if match:
            return Tempo(int(float(match.group(1)) + 0.5), default_beats)
    except ValueError:
        return None
    return None


def format_tempo(bpm: int, beats_per_cycle: int = 4) -> str:
    """Render the canonical directive for ``bpm``."""

    return f"setcps({bpm}/60/{beats_per_cycle}) // {bpm} bpm"


__all__ = ["Tempo", "format_tempo", "is_tempo_line", "parse_tempo"]
