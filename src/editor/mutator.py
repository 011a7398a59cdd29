"""Minimal, in-place rewrites of one parameter inside one block of code.

Every function here returns either a new string that differs from the
input only inside the touched call, or the input itself when the change
cannot be applied safely. Callers detect a refused change by equality.
"""
from __future__ import annotations

import logging
from typing import Iterable, Union

from .calls import (
    ArgumentKind,
    CallSite,
    find_call,
    injection_point,
    iter_calls,
    number_span,
    string_span,
)
from .parameters import format_number, get_spec

logger = logging.getLogger(__name__)

PITCH_SOURCES = ("note", "n")
DRUM_SOURCES = ("s", "sound")
SYNTH_SOURCES = ("sine", "sawtooth", "square", "triangle", "supersaw")
REPLACE_ONLY = frozenset({"bank", "s", "sound"})

# Argument kinds a removal may delete, keyed by the parameter's value type.
NUMERIC_REMOVABLE = frozenset({ArgumentKind.NUMBER, ArgumentKind.SLIDER, ArgumentKind.EMPTY})
STRING_REMOVABLE = frozenset({ArgumentKind.STRING, ArgumentKind.EMPTY})
UNKNOWN_PROTECTED = frozenset({ArgumentKind.DYNAMIC, ArgumentKind.EXPRESSION})


class _Remove:
    """Sentinel requesting removal of a call."""

    _instance: "_Remove | None" = None

    def __new__(cls) -> "_Remove":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return "REMOVE"


REMOVE = _Remove()

Value = Union[int, float, str, _Remove]


def mutate(text: str, name: str, value: Value) -> str:
    """Set, replace or remove ``.name(...)`` in ``text``.

    Signal-driven arguments are never touched. A ``slider(value, lo, hi)``
    wrapper keeps its bounds. Absent calls are injected ahead of the
    first visualisation call or at the end of the last line of code.
    String values follow the same rules on quoted arguments; an empty
    string removes the call.
    """

    if value is REMOVE:
        return remove_call(text, name)
    if isinstance(value, str):
        return set_string(text, name, value)
    return set_number(text, name, value)


def set_number(text: str, name: str, value: float) -> str:
    """Write a numeric ``value`` into ``.name(...)``."""

    formatted = format_number(name, value)
    call = find_call(text, name)
    if call is None:
        return inject_call(text, f".{name}({formatted})")
    kind = call.kind
    if kind in (ArgumentKind.NUMBER, ArgumentKind.SLIDER):
        return _replace_span(text, call, number_span(call.argument), formatted)
    logger.debug("Refusing to rewrite %s argument of .%s(%s)", kind.value, name, call.argument)
    return text


def set_string(text: str, name: str, value: str) -> str:
    """Write a quoted ``value`` into ``.name("...")``."""

    if value == "":
        return remove_call(text, name)
    call = find_call(text, name)
    if call is not None:
        if call.kind is ArgumentKind.STRING:
            return _replace_span(text, call, string_span(call.argument), _escape(value))
        logger.debug("Refusing to rewrite %s argument of .%s(%s)", call.kind.value, name, call.argument)
        return text
    segment = f'.{name}("{_escape(value)}")'
    if name == "scale":
        source = _pitch_source(text)
        if source is None:
            return text
        return text[: source.end] + segment + text[source.end :]
    if name in REPLACE_ONLY:
        return text
    return inject_call(text, segment)


def remove_call(text: str, name: str) -> str:
    """Delete ``.name(...)`` together with its leading separator.

    Only arguments that :func:`set_number` or :func:`set_string` would
    rewrite are removable, so a patterned ``.lpf("<400 2000>")`` survives.
    """

    call = find_call(text, name)
    if call is None:
        return text
    if not _removable(call.kind, name):
        logger.debug("Refusing to remove %s argument of .%s(...)", call.kind.value, name)
        return text
    line_start = text.rfind("\n", 0, call.start) + 1
    line_end = text.find("\n", call.end)
    if line_end == -1:
        line_end = len(text)
    alone = not text[line_start : call.start].strip() and not text[call.end : line_end].strip()
    if alone:
        if line_end < len(text):
            return text[:line_start] + text[line_end + 1 :]
        if line_start > 0:
            return text[: line_start - 1]
        return ""
    start = call.start
    while start > line_start and text[start - 1] in " \t":
        start -= 1
    if start == line_start:
        start = call.start
    return text[:start] + text[call.end :]


def inject_call(text: str, segment: str) -> str:
    """Insert a chained ``segment`` such as ``.lpf(800)`` into ``text``."""

    point = injection_point(text)
    return text[:point] + segment + text[point:]


def set_pattern(text: str, pattern: str, *, drums: bool = False) -> str:
    """Replace the mini-notation string of the block's primary source call."""

    names: Iterable[str] = DRUM_SOURCES if drums else PITCH_SOURCES
    source = _first_string_call(text, names)
    if source is None:
        return text
    return _replace_span(text, source, string_span(source.argument), _escape(pattern))


def set_sound(text: str, source: str, *, drums: bool = False) -> str:
    """Swap the instrument: the bank for drums, the ``.s(...)`` synth otherwise."""

    if drums:
        return set_string(text, "bank", source)
    for call in iter_calls(text, "s"):
        if call.kind is ArgumentKind.STRING and text[call.start - 1 : call.start] == ")":
            return _replace_span(text, call, string_span(call.argument), _escape(source))
    for call in iter_calls(text, "s", bare=True):
        span = string_span(call.argument)
        if span is None:
            continue
        current = call.argument[span[0] : span[1]]
        if current in SYNTH_SOURCES or current.startswith("gm_"):
            return _replace_span(text, call, span, _escape(source))
    return text


def _removable(kind: ArgumentKind, name: str) -> bool:
    spec = get_spec(name)
    if spec is None:
        return kind not in UNKNOWN_PROTECTED
    if spec.is_string:
        return kind in STRING_REMOVABLE
    return kind in NUMERIC_REMOVABLE


def _pitch_source(text: str) -> CallSite | None:
    return _first_string_call(text, PITCH_SOURCES)


def _first_string_call(text: str, names: Iterable[str]) -> CallSite | None:
    found = []
    for name in names:
        for call in iter_calls(text, name, bare=True):
            if call.kind is ArgumentKind.STRING:
                found.append(call)
                break
    if not found:
        return None
    return min(found, key=lambda call: call.start)


def _replace_span(text: str, call: CallSite, span: tuple[int, int] | None, replacement: str) -> str:
    if span is None:
        return text
    start = call.argument_start + span[0]
    end = call.argument_start + span[1]
    return text[:start] + replacement + text[end:]


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


__all__ = [
    "REMOVE",
    "Value",
    "inject_call",
    "mutate",
    "remove_call",
    "set_number",
    "set_pattern",
    "set_sound",
    "set_string",
]
