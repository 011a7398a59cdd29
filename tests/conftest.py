import sys
from pathlib import Path

import pytest

from editor.config import SyncConfig

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

SAMPLE_DOCUMENT = """\
// Night drive
samples('github:tidalcycles/dirt-samples')
setcps(120/60/4) // 120 bpm

// ── Drums ──
$: s("bd ~ [sd sd] ~, hh*8")
  .bank("RolandTR909").gain(0.8)
  .lpf(8000)

// ── Bass ──
$: note("<c2 f2>").s("sawtooth")
  .lpf(sine.range(200, 2000)).gain(slider(0.45, 0, 1))
  .room(0.2) // small room

// ── Lead ──
$: n("0 2 4 7").scale("C4:minor").s("gm_piano")
  .delay(0.25)
  .scope()
"""


class FakeClock:
    """Manually advanced clock for commit timers."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture()
def sample_document() -> str:
    return SAMPLE_DOCUMENT


@pytest.fixture()
def plain_config() -> SyncConfig:
    """Configuration that serializes without analysis or routing tags."""

    return SyncConfig(inject_tags=False)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()
