"""
Contracts the ledger consumes from outside the gauge.

  - EmissionSchedule: tokens/second emitted in a given week (monotonic table)
  - WeightController: this gauge's share of emission in a given week
  - VotingEscrow: instantaneous vote-escrow balances used for boosting
  - BonusSource: pass-through reward token pulled into gauge custody
  - RebalanceTransform: maps carried share amounts across one rebalance epoch
  - EmissionMinter / AssetPayout: claim sinks

Concrete implementations live in lpgauge.runtime.collaborators.
"""

from __future__ import annotations

from typing import Callable, Protocol, Tuple, runtime_checkable


@runtime_checkable
class EmissionSchedule(Protocol):
    def get_rate(self, week_start: int) -> int: ...


@runtime_checkable
class WeightController(Protocol):
    def get_relative_weight(self, gauge_id: str, week_start: int) -> int: ...


@runtime_checkable
class VotingEscrow(Protocol):
    def balance_of(self, account: str) -> int: ...
    def total_supply(self) -> int: ...


@runtime_checkable
class BonusSource(Protocol):
    """
    External reward token held on the gauge's behalf.

    The gauge never trusts a reported amount: it samples custody_balance()
    around pull() and distributes the observed difference.
    """

    def custody_balance(self) -> int: ...
    def pull(self) -> None: ...
    def transfer(self, account: str, amount: int) -> None: ...


@runtime_checkable
class EmissionMinter(Protocol):
    def mint(self, account: str, amount: int) -> None: ...


@runtime_checkable
class AssetPayout(Protocol):
    def transfer(self, account: str, asset: str, amount: int) -> None: ...


# (q, b, r, epoch) -> (q', b', r')
RebalanceTransform = Callable[[int, int, int, int], Tuple[int, int, int]]


def identity_transform(q: int, b: int, r: int, epoch: int) -> Tuple[int, int, int]:
    return int(q), int(b), int(r)


__all__ = [
    "EmissionSchedule",
    "WeightController",
    "VotingEscrow",
    "BonusSource",
    "EmissionMinter",
    "AssetPayout",
    "RebalanceTransform",
    "identity_transform",
]
