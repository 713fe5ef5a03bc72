"""
In-memory gauge collaborators.

These back the HTTP service in dev mode and the test suite. The contracts they
satisfy are declared in lpgauge.ledger.interfaces and re-exported here.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from lpgauge.ledger.constants import UNIT
from lpgauge.ledger.interfaces import (
    AssetPayout,
    BonusSource,
    EmissionMinter,
    EmissionSchedule,
    RebalanceTransform,
    VotingEscrow,
    WeightController,
    identity_transform,
)


class WeeklyEmissionSchedule:
    """
    Step table of emission rates keyed by week start.

    A week inherits the rate of the latest entry at or before it; weeks before
    the first entry emit nothing.
    """

    def __init__(self, entries: Optional[Iterable[Tuple[int, int]]] = None) -> None:
        pairs = sorted((int(ts), int(rate)) for ts, rate in (entries or []))
        self._starts: List[int] = [ts for ts, _ in pairs]
        self._rates: List[int] = [rate for _, rate in pairs]
        self.calls = 0

    @classmethod
    def constant(cls, rate: int, *, start: int = 0) -> "WeeklyEmissionSchedule":
        return cls([(int(start), int(rate))])

    def set_rate(self, week_start: int, rate: int) -> None:
        i = bisect.bisect_left(self._starts, int(week_start))
        if i < len(self._starts) and self._starts[i] == int(week_start):
            self._rates[i] = int(rate)
            return
        self._starts.insert(i, int(week_start))
        self._rates.insert(i, int(rate))

    def get_rate(self, week_start: int) -> int:
        self.calls += 1
        i = bisect.bisect_right(self._starts, int(week_start)) - 1
        if i < 0:
            return 0
        return self._rates[i]


class FixedWeightController:
    """Same relative weight for every week unless overridden per week."""

    def __init__(self, weight: int = UNIT, overrides: Optional[Dict[int, int]] = None) -> None:
        self.weight = int(weight)
        self.overrides: Dict[int, int] = {int(k): int(v) for k, v in (overrides or {}).items()}

    def get_relative_weight(self, gauge_id: str, week_start: int) -> int:
        return self.overrides.get(int(week_start), self.weight)


class InMemoryVotingEscrow:
    def __init__(self, balances: Optional[Dict[str, int]] = None) -> None:
        self.balances: Dict[str, int] = {str(k): int(v) for k, v in (balances or {}).items()}

    def set_balance(self, account: str, amount: int) -> None:
        self.balances[str(account)] = int(amount)

    def balance_of(self, account: str) -> int:
        return int(self.balances.get(str(account), 0))

    def total_supply(self) -> int:
        return sum(int(v) for v in self.balances.values())


@dataclass
class InMemoryBonusSource:
    """
    Rewards accumulate in `pending` until the gauge pulls them into `custody`.
    """

    pending: int = 0
    custody: int = 0
    paid: Dict[str, int] = field(default_factory=dict)

    def notify(self, amount: int) -> None:
        self.pending += int(amount)

    def custody_balance(self) -> int:
        return int(self.custody)

    def pull(self) -> None:
        self.custody += self.pending
        self.pending = 0

    def transfer(self, account: str, amount: int) -> None:
        amt = int(amount)
        if amt > self.custody:
            raise ValueError(f"bonus custody {self.custody} < transfer {amt}")
        self.custody -= amt
        self.paid[account] = self.paid.get(account, 0) + amt


@dataclass
class RecordingMinter:
    minted: Dict[str, int] = field(default_factory=dict)

    def mint(self, account: str, amount: int) -> None:
        self.minted[account] = self.minted.get(account, 0) + int(amount)


@dataclass
class RecordingAssetPayout:
    paid: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def transfer(self, account: str, asset: str, amount: int) -> None:
        per = self.paid.setdefault(account, {})
        per[asset] = per.get(asset, 0) + int(amount)


__all__ = [
    "EmissionSchedule",
    "WeightController",
    "VotingEscrow",
    "BonusSource",
    "EmissionMinter",
    "AssetPayout",
    "RebalanceTransform",
    "identity_transform",
    "WeeklyEmissionSchedule",
    "FixedWeightController",
    "InMemoryVotingEscrow",
    "InMemoryBonusSource",
    "RecordingMinter",
    "RecordingAssetPayout",
]
