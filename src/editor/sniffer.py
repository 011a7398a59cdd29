"""Read parameter values out of one block of pattern code.

The sniffer answers three questions about a parameter without parsing
the whole language: is the call present, is its argument driven by a
signal generator, and what literal value does it currently hold. It
also derives the descriptive fields shown on a block card (kind, sound,
pattern). Callers strip the bypass prefix before asking.
"""
from __future__ import annotations

import re
from typing import Any, Dict, Iterable

from domain.models import ParameterReading

from .calls import ArgumentKind, find_call, iter_calls, number_span, string_span
from .parameters import PARAMETERS, ParameterSpec

_RANGE_RE = re.compile(r"\.range\(\s*(-?[\d.]+)\s*,\s*(-?[\d.]+)")
_IRAND_RE = re.compile(r"^\s*irand\(\s*(\d+)")
_FIRST_NUMBER_RE = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")
_DRUM_SOUNDS_RE = re.compile(
    r"""\bs\s*\(\s*["'].*?(bd|cp|sd|hh|oh|ch|rim|tom|clap|clave|ride|crash)""", re.IGNORECASE
)
_SYNTHS = ("sine", "sawtooth", "square", "triangle", "supersaw")

MELODIC_KINDS = frozenset({"bass", "melody", "chords", "vocal", "pad"})


def has_parameter(text: str, name: str) -> bool:
    """Return True when ``.name(...)`` appears outside comments."""

    return find_call(text, name) is not None


def is_dynamic(text: str, name: str) -> bool:
    """Return True when the argument of ``.name(...)`` starts with a signal generator."""

    call = find_call(text, name)
    return call is not None and call.kind is ArgumentKind.DYNAMIC


def current_value(text: str, name: str, fallback: float) -> float:
    """Return the literal numeric argument of ``.name(...)`` or ``fallback``.

    A ``slider(value, min, max)`` wrapper yields its current value, never
    its bounds. Signal expressions and other non-literal arguments fall
    back, exactly like an absent call.
    """

    call = find_call(text, name)
    if call is None:
        return fallback
    span = number_span(call.argument)
    if span is None:
        return fallback
    return float(call.argument[span[0] : span[1]])


def current_string(text: str, name: str, fallback: str = "") -> str:
    """Return the quoted string argument of ``.name("...")`` or ``fallback``."""

    call = find_call(text, name)
    if call is None:
        return fallback
    span = string_span(call.argument)
    if span is None:
        return fallback
    return call.argument[span[0] : span[1]]


def representative_value(text: str, name: str, fallback: float) -> float:
    """Return a knob position for display, also for signal-driven arguments.

    ``sine.range(a, b)`` shows the midpoint, ``irand(n)`` shows ``n / 2``
    and anything else shows its first number.
    """

    call = find_call(text, name)
    if call is None:
        return fallback
    argument = call.argument
    if call.kind in (ArgumentKind.NUMBER, ArgumentKind.SLIDER):
        return current_value(text, name, fallback)
    if call.kind in (ArgumentKind.STRING, ArgumentKind.EMPTY):
        return fallback
    ranged = _RANGE_RE.search(argument)
    if ranged:
        try:
            return (float(ranged.group(1)) + float(ranged.group(2))) / 2
        except ValueError:
            return fallback
    irand = _IRAND_RE.match(argument)
    if irand:
        return int(irand.group(1)) / 2
    first = _FIRST_NUMBER_RE.search(argument)
    return float(first.group(0)) if first else fallback


def present_name(text: str, spec: ParameterSpec) -> str | None:
    """Return whichever name of ``spec`` (canonical or alias) is called in ``text``."""

    located = []
    for candidate in spec.names:
        call = find_call(text, candidate)
        if call is not None:
            located.append((call.start, candidate))
    if not located:
        return None
    return min(located)[1]


def reading_for(text: str, spec: ParameterSpec, fallback: float | str | None = None) -> ParameterReading:
    """Build the read-model entry for ``spec`` from ``text``."""

    default = spec.default if fallback is None else fallback
    name = present_name(text, spec)
    if name is None:
        return ParameterReading(name=spec.name, value=default, dynamic=False, present=False)
    if spec.is_string:
        return ParameterReading(
            name=spec.name, value=current_string(text, name, str(default)), dynamic=False, present=True
        )
    dynamic = is_dynamic(text, name)
    value = representative_value(text, name, float(default)) if dynamic else current_value(text, name, float(default))
    return ParameterReading(name=spec.name, value=value, dynamic=dynamic, present=True)


def read_model(text: str, specs: Iterable[ParameterSpec] = PARAMETERS) -> Dict[str, ParameterReading]:
    """Return a reading for every catalogued parameter."""

    return {spec.name: reading_for(text, spec) for spec in specs}


# ----------------------------------------------------------------------
# Card descriptors
# ----------------------------------------------------------------------


def detect_kind(text: str) -> str:
    """Classify a block as drums, bass, melody, chords, pad, vocal, fx or other."""

    lowered = text.lower()
    if _DRUM_SOUNDS_RE.search(text):
        return "drums"
    if re.search(r"\.bank\s*\(", text) and not re.search(r"note\s*\(", text):
        return "drums"
    if re.search(r"note\s*\(.*?[12]\b", text) and re.search(r"bass|sub|sine", text, re.IGNORECASE):
        return "bass"
    if "bass" in lowered or "sub" in lowered:
        return "bass"
    if re.search(r"note\s*\(.*?\[.*?,.*?\]", text):
        return "chords"
    if "chord" in lowered or "rhodes" in lowered:
        return "chords"
    if any(word in lowered for word in ("pad", "ambient", "drone", "haze")):
        return "pad"
    if any(word in lowered for word in ("vocal", "voice", "choir", "sing")):
        return "vocal"
    if re.search(r"crackle|rumble|noise|texture", text, re.IGNORECASE):
        return "fx"
    if re.search(r"note\s*\(", text) or re.search(r"\bn\s*\(", text):
        return "melody"
    return "other"


def detect_sound(text: str) -> str:
    """Return the first sound name of ``s(...)``/``sound(...)`` or the bank name."""

    match = re.search(r"""\.?s(?:ound)?\s*\(\s*["']([^"']+)["']""", text)
    if match:
        return re.split(r"[\s*\[\]]", match.group(1))[0]
    return current_string(text, "bank")


def detect_sound_source(text: str) -> str:
    """Return the instrument selector shown in the source dropdown."""

    chained = re.search(r"""\)\.s\s*\(\s*["']([^"']+)["']""", text)
    if chained:
        return chained.group(1)
    bank = current_string(text, "bank")
    if bank:
        return bank
    synth = re.search(rf"""\bs\s*\(\s*["']({'|'.join(_SYNTHS)})["']""", text)
    if synth:
        return synth.group(1)
    general_midi = re.search(r"""\.s\s*\(\s*["'](gm_[^"']+)["']""", text)
    return general_midi.group(1) if general_midi else ""


def detect_pattern(text: str) -> str:
    """Return the mini-notation string that drives the block."""

    for name in ("s", "sound"):
        for call in iter_calls(text, name, bare=True):
            span = string_span(call.argument)
            if span and re.search(r"bd|sd|cp|hh|oh", call.argument, re.IGNORECASE):
                return call.argument[span[0] : span[1]]
    for name in ("note", "n"):
        call = find_call(text, name, bare=True)
        if call is not None:
            span = string_span(call.argument)
            if span:
                return call.argument[span[0] : span[1]]
    return ""


def derive_fields(text: str) -> Dict[str, Any]:
    """Return every text-derived :class:`~domain.models.Block` field for ``text``."""

    return {
        "kind": detect_kind(text),
        "sound": detect_sound(text),
        "sound_source": detect_sound_source(text),
        "pattern": detect_pattern(text),
        "readings": read_model(text),
    }


__all__ = [
    "MELODIC_KINDS",
    "current_string",
    "current_value",
    "derive_fields",
    "detect_kind",
    "detect_pattern",
    "detect_sound",
    "detect_sound_source",
    "has_parameter",
    "is_dynamic",
    "present_name",
    "read_model",
    "reading_for",
    "representative_value",
]
