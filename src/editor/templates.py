"""Starter blocks offered by the quick-add menu."""
from __future__ import annotations

from typing import Dict

KIND_COLORS: Dict[str, str] = {
    "drums": "#f59e0b",
    "bass": "#ef4444",
    "melody": "#22d3ee",
    "chords": "#a78bfa",
    "fx": "#34d399",
    "vocal": "#f472b6",
    "pad": "#818cf8",
    "other": "#94a3b8",
}

BLOCK_TEMPLATES: Dict[str, str] = {
    "drums": (
        '$: s("bd [~ bd] ~ ~, ~ cp ~ ~, hh*8")\n'
        '  .bank("RolandTR808").gain(0.7)\n'
        '  .scope({{color:"{color}",thickness:2,smear:.88}})'
    ),
    "bass": (
        '$: note("<c2 f2 g2 c2>")\n'
        '  .s("sawtooth").lpf(400).gain(0.35)\n'
        '  .scale("{scale}")\n'
        '  .scope({{color:"{color}",thickness:2.5,smear:.96}})'
    ),
    "melody": (
        '$: n("0 2 4 7 4 2").scale("{scale}")\n'
        '  .s("gm_piano").gain(0.3)\n'
        "  .room(0.4).delay(0.15)\n"
        '  .scope({{color:"{color}",thickness:1,smear:.91}})'
    ),
    "chords": (
        '$: note("<[c3,e3,g3] [a2,c3,e3] [f2,a2,c3] [g2,b2,d3]>")\n'
        '  .s("gm_epiano1").gain(0.25).scale("{scale}")\n'
        "  .lpf(1800).room(0.5)\n"
        "  .slow(2)\n"
        '  .scope({{color:"{color}",thickness:1,smear:.93}})'
    ),
    "pad": (
        '$: note("<[c3,g3,e4] [a2,e3,c4]>")\n'
        '  .s("sawtooth").lpf(800).gain(0.08).scale("{scale}")\n'
        "  .room(0.9).delay(0.3).delayfeedback(0.5)\n"
        "  .slow(4)\n"
        "  .fscope()"
    ),
    "fx": (
        '$: s("hh*16").gain(0.06)\n'
        "  .delay(0.25).delayfeedback(0.5)\n"
        "  .room(0.6).lpf(2000).speed(2.5)\n"
        '  .scope({{color:"{color}",thickness:1,smear:.95}})'
    ),
}


def render_template(kind: str, *, scale: str = "C4:major") -> str:
    """Return starter code for ``kind``; unknown kinds get the drum template."""

    template = BLOCK_TEMPLATES.get(kind, BLOCK_TEMPLATES["drums"])
    color = KIND_COLORS.get(kind, KIND_COLORS["drums"])
    return template.format(color=color, scale=scale)


def template_header(kind: str) -> str:
    return f"// ── New {kind} ──"


__all__ = ["BLOCK_TEMPLATES", "KIND_COLORS", "render_template", "template_header"]
