from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable

import pytest

# Ensure local "src/" takes precedence over any globally-installed "lpgauge" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)

from lpgauge.ledger.constants import SETTLEMENT_TIME, WEEK  # noqa: E402
from lpgauge.runtime import metrics  # noqa: E402
from lpgauge.runtime.gauge import GaugeCollaborators, LiquidityGauge  # noqa: E402

# A week boundary far enough from zero that nothing clamps.
T0 = SETTLEMENT_TIME + 2_800 * WEEK


class ManualClock:
    def __init__(self, now: int = T0) -> None:
        self.now = int(now)

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += int(seconds)
        return self.now


@pytest.fixture(autouse=True)
def _reset_metrics() -> None:
    metrics.reset()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def make_gauge(clock: ManualClock) -> Callable[..., LiquidityGauge]:
    def _make(*, emission_rate: int = 0, collaborators: GaugeCollaborators | None = None, **kw: Any) -> LiquidityGauge:
        collabs = collaborators or GaugeCollaborators.in_memory(emission_rate=emission_rate)
        return LiquidityGauge(gauge_id="pool-test", collaborators=collabs, clock=clock, **kw)

    return _make
