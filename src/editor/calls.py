"""Bracket-aware location of ``.name(...)`` calls inside one block of code.

These are deliberately partial parsing rules: they find a call, its
argument span and a few anchors (visualisation calls, the end of the
last line of code) without building a syntax tree, so that every byte
outside the touched span survives a rewrite untouched.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

SIGNAL_GENERATORS = ("sine", "cosine", "saw", "isaw", "square", "tri", "rand", "irand", "perlin")
VISUALIZATIONS = ("scope", "fscope", "pianoroll", "pitchwheel", "punchcard", "spectrum")

NUMBER_PATTERN = r"-?(?:\d+\.?\d*|\.\d+)"
_NUMBER_RE = re.compile(rf"^\s*(?P<number>{NUMBER_PATTERN})\s*$")
_SLIDER_RE = re.compile(rf"^\s*slider\s*\(\s*(?P<number>{NUMBER_PATTERN})")
_DYNAMIC_RE = re.compile(rf"^\s*(?:{'|'.join(SIGNAL_GENERATORS)})\b")
_STRING_RE = re.compile(r"""^\s*(?P<quote>["'`])(?P<body>(?:\\.|(?!(?P=quote)).)*)(?P=quote)\s*$""", re.DOTALL)
_VISUAL_RE = re.compile(rf"\._?(?:{'|'.join(VISUALIZATIONS)})\s*\(")


class ArgumentKind(str, Enum):
    """Coarse classification of a call argument."""

    EMPTY = "empty"
    NUMBER = "number"
    SLIDER = "slider"
    STRING = "string"
    DYNAMIC = "dynamic"
    EXPRESSION = "expression"


@dataclass(frozen=True)
class CallSite:
    """Location of one call expression in a block of text."""

    name: str
    start: int
    open_paren: int
    close_paren: int
    argument: str

    @property
    def end(self) -> int:
        return self.close_paren + 1

    @property
    def argument_start(self) -> int:
        return self.open_paren + 1

    @property
    def kind(self) -> ArgumentKind:
        return classify_argument(self.argument)


def classify_argument(argument: str) -> ArgumentKind:
    """Classify ``argument`` as a literal, live slider, signal or other expression."""

    if not argument.strip():
        return ArgumentKind.EMPTY
    if _NUMBER_RE.match(argument):
        return ArgumentKind.NUMBER
    if _SLIDER_RE.match(argument):
        return ArgumentKind.SLIDER
    if _DYNAMIC_RE.match(argument):
        return ArgumentKind.DYNAMIC
    if _STRING_RE.match(argument):
        return ArgumentKind.STRING
    return ArgumentKind.EXPRESSION


def number_span(argument: str) -> tuple[int, int] | None:
    """Return the span of the literal number (or slider current value) in ``argument``."""

    for pattern in (_NUMBER_RE, _SLIDER_RE):
        match = pattern.match(argument)
        if match:
            return match.span("number")
    return None


def string_span(argument: str) -> tuple[int, int] | None:
    """Return the span of the quoted body in a single string literal argument."""

    match = _STRING_RE.match(argument)
    if match is None:
        return None
    return match.span("body")


def find_closing_paren(text: str, open_index: int) -> int:
    """Return the index of the ``)`` matching ``text[open_index]``, or -1."""

    depth = 1
    idx = open_index + 1
    while idx < len(text):
        ch = text[idx]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return idx
        elif ch in "\"'`":
            idx += 1
            while idx < len(text) and text[idx] != ch:
                if text[idx] == "\\":
                    idx += 1
                idx += 1
        idx += 1
    return -1


def comment_start(line: str) -> int:
    """Return the index where a ``//`` comment starts in ``line``, or -1."""

    quote: str | None = None
    idx = 0
    while idx < len(line):
        ch = line[idx]
        if quote is not None:
            if ch == "\\":
                idx += 1
            elif ch == quote:
                quote = None
        elif ch in "\"'`":
            quote = ch
        elif line.startswith("//", idx):
            return idx
        idx += 1
    return -1


def in_line_comment(text: str, position: int) -> bool:
    """Return True when ``position`` sits inside a ``//`` comment on its line."""

    line_start = text.rfind("\n", 0, position) + 1
    marker = comment_start(text[line_start:position])
    return marker != -1


def _call_pattern(name: str, bare: bool) -> re.Pattern[str]:
    escaped = re.escape(name)
    if bare:
        return re.compile(rf"(?:\.|(?<![\w$.])){escaped}\s*\(")
    return re.compile(rf"\.{escaped}\s*\(")


def iter_calls(text: str, name: str, *, bare: bool = False) -> Iterator[CallSite]:
    """Yield every uncommented, well-formed call to ``name`` in order."""

    for match in _call_pattern(name, bare).finditer(text):
        if in_line_comment(text, match.start()):
            continue
        open_paren = match.end() - 1
        close_paren = find_closing_paren(text, open_paren)
        if close_paren == -1:
            continue
        yield CallSite(
            name=name,
            start=match.start(),
            open_paren=open_paren,
            close_paren=close_paren,
            argument=text[open_paren + 1 : close_paren],
        )


def find_call(text: str, name: str, *, bare: bool = False) -> CallSite | None:
    """Return the first uncommented call to ``name`` or ``None``."""

    return next(iter_calls(text, name, bare=bare), None)


def visualization_index(text: str) -> int | None:
    """Return the offset of the first terminal visualisation call, if any."""

    for match in _VISUAL_RE.finditer(text):
        if not in_line_comment(text, match.start()):
            return match.start()
    return None


def end_of_code(text: str) -> int:
    """Return the offset just past the code on the last line that has any.

    Trailing whitespace and ``//`` comments are skipped so that appended
    calls stay live code. Returns ``len(text)`` when no line has code.
    """

    offset = len(text)
    for line in reversed(text.split("\n")):
        offset -= len(line)
        marker = comment_start(line)
        code = line if marker == -1 else line[:marker]
        code = code.rstrip()
        if code.strip():
            return offset + len(code)
        offset -= 1
    return len(text)


def injection_point(text: str) -> int:
    """Return where a new chained call should be inserted into ``text``."""

    visual = visualization_index(text)
    if visual is not None:
        return visual
    return end_of_code(text)


__all__ = [
    "ArgumentKind",
    "CallSite",
    "NUMBER_PATTERN",
    "SIGNAL_GENERATORS",
    "VISUALIZATIONS",
    "classify_argument",
    "comment_start",
    "end_of_code",
    "find_call",
    "find_closing_paren",
    "in_line_comment",
    "injection_point",
    "iter_calls",
    "number_span",
    "string_span",
    "visualization_index",
]
