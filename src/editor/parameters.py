"""Catalogue of the effect-chain parameters exposed as knobs and dropdowns."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, Tuple

FINE_RATIO_PARAMETERS = frozenset({"gain", "pan"})


@dataclass(frozen=True)
class ParameterSpec:
    """Describes one chain method in musician-facing language.

    ``default`` is the musically neutral value shown when the call is
    absent. ``neutral`` tells the session when a committed knob value
    means "remove the call" rather than "write this number":
    ``"ceiling"`` removes at or above ``default``, ``"floor"`` at or
    below it and ``"center"`` within ``step`` of it.
    """

    name: str
    display_name: str
    default: float | str
    minimum: float = 0.0
    maximum: float = 1.0
    step: float = 0.01
    unit: str = ""
    kind: str = "number"
    neutral: str | None = None
    aliases: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_string(self) -> bool:
        return self.kind == "string"

    @property
    def names(self) -> Tuple[str, ...]:
        """Return the canonical name followed by every alias."""

        return (self.name, *self.aliases)

    def clamp(self, value: float) -> float:
        """Keep ``value`` inside the declared range."""

        if value < self.minimum:
            return self.minimum
        if value > self.maximum:
            return self.maximum
        return value

    def is_neutral(self, value: float) -> bool:
        """Return True when ``value`` should be written as an absent call."""

        if self.is_string or self.neutral is None:
            return False
        default = float(self.default)
        if self.neutral == "ceiling":
            return value >= default
        if self.neutral == "floor":
            return value <= default
        if self.neutral == "center":
            return abs(value - default) < self.step
        return False


def _number(name, display, default, minimum, maximum, step, unit="", neutral=None, aliases=()):
    return ParameterSpec(
        name=name,
        display_name=display,
        default=default,
        minimum=minimum,
        maximum=maximum,
        step=step,
        unit=unit,
        neutral=neutral,
        aliases=tuple(aliases),
    )


def _string(name, display, default="", aliases=()):
    return ParameterSpec(name=name, display_name=display, default=default, kind="string", aliases=tuple(aliases))


PARAMETERS: Tuple[ParameterSpec, ...] = (
    _number("gain", "Gain", 0.5, 0.0, 2.0, 0.01),
    _number("velocity", "Vel", 1.0, 0.0, 1.0, 0.01),
    _number("lpf", "LPF", 20000.0, 20.0, 20000.0, 10.0, "Hz", "ceiling", ("cutoff", "ctf", "lp")),
    _number("hpf", "HPF", 0.0, 0.0, 8000.0, 10.0, "Hz", "floor", ("hcutoff", "hp")),
    _number("lpq", "Q", 1.0, 0.0, 20.0, 0.5, aliases=("resonance",)),
    _number("lpenv", "FltEnv", 0.0, 0.0, 8.0, 0.1),
    _number("lps", "FltSus", 1.0, 0.0, 1.0, 0.01),
    _number("lpd", "FltDec", 0.0, 0.0, 1.0, 0.01),
    _number("shape", "Shape", 0.0, 0.0, 1.0, 0.01, neutral="floor"),
    _number("distort", "Dist", 0.0, 0.0, 5.0, 0.1, neutral="floor"),
    _number("crush", "Crush", 0.0, 0.0, 16.0, 1.0, neutral="floor"),
    _number("room", "Reverb", 0.0, 0.0, 1.0, 0.01, neutral="floor"),
    _number("delay", "Delay", 0.0, 0.0, 1.0, 0.01, neutral="floor"),
    _number("delayfeedback", "DlyFB", 0.0, 0.0, 0.95, 0.01, neutral="floor"),
    _number("delaytime", "DlyTime", 0.25, 0.01, 1.0, 0.01),
    _number("speed", "Speed", 1.0, 0.1, 4.0, 0.1),
    _number("slow", "Slow", 1.0, 0.25, 16.0, 0.25),
    _number("pan", "Pan", 0.5, 0.0, 1.0, 0.01, neutral="center"),
    _number("detune", "Detune", 0.0, 0.0, 4.0, 0.1),
    _number("orbit", "Orbit", 1.0, 0.0, 11.0, 1.0),
    _number("duckdepth", "Duck", 0.0, 0.0, 1.0, 0.01),
    _number("duckattack", "DkAtk", 0.1, 0.01, 1.0, 0.01),
    _number("decay", "Decay", 0.0, 0.0, 4.0, 0.01),
    _number("rel", "Release", 0.0, 0.0, 10.0, 0.1, aliases=("release",)),
    _string("scale", "Scale"),
    _string("vowel", "Vowel"),
    _string("bank", "Bank"),
    _string("ftype", "Filter type"),
)

_BY_NAME: Dict[str, ParameterSpec] = {}
for _spec in PARAMETERS:
    for _name in _spec.names:
        _BY_NAME[_name] = _spec


def get_spec(name: str) -> ParameterSpec | None:
    """Look up a spec by canonical name or alias."""

    return _BY_NAME.get(name)


def numeric_specs() -> Iterable[ParameterSpec]:
    return (spec for spec in PARAMETERS if not spec.is_string)


def string_specs() -> Iterable[ParameterSpec]:
    return (spec for spec in PARAMETERS if spec.is_string)


def _to_fixed(value: float, places: int) -> str:
    quantum = Decimal(1).scaleb(-places)
    return str(Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP))


def format_number(name: str, value: float) -> str:
    """Render ``value`` the way the chain syntax stores it for ``name``.

    Integers drop the decimal point, fine ratios keep three places and
    everything else keeps two.
    """

    value = float(value)
    if value.is_integer():
        return str(int(value))
    spec = get_spec(name)
    canonical = spec.name if spec is not None else name
    places = 3 if canonical in FINE_RATIO_PARAMETERS else 2
    return _to_fixed(value, places)


__all__ = [
    "FINE_RATIO_PARAMETERS",
    "PARAMETERS",
    "ParameterSpec",
    "format_number",
    "get_spec",
    "numeric_specs",
    "string_specs",
]
