# src/lpgauge/ledger/bonus.py
from __future__ import annotations

"""
Pass-through bonus reward stream.

Inflow is measured, not reported: custody balance is sampled before and after
asking the source to push pending rewards. The observed delta is spread over
raw stake (no vote-escrow boost).

When total raw stake is zero the delta cannot be attributed to anyone. It is
left in custody and only tallied under bonus.undistributed; no later staker
receives it.
"""

from typing import Any, Dict

from lpgauge.ledger.constants import UNIT
from lpgauge.ledger.decimal_math import divide_decimal
from lpgauge.ledger.interfaces import BonusSource

Json = Dict[str, Any]


def _as_int(x: Any, default: int = 0) -> int:
    try:
        return int(x)
    except Exception:
        return int(default)


def checkpoint_bonus(state: Json, source: BonusSource) -> int:
    """Pull pending bonus into custody and fold it into the integral.

    Returns the observed inflow.
    """
    before = int(source.custody_balance())
    source.pull()
    after = int(source.custody_balance())
    delta = max(after - before, 0)

    bonus = state["bonus"]
    if delta == 0:
        return 0

    total_supply = _as_int(state["supply"].get("total"), 0)
    if total_supply == 0:
        bonus["undistributed"] = _as_int(bonus.get("undistributed"), 0) + delta
        return delta

    bonus["integral"] = _as_int(bonus.get("integral"), 0) + divide_decimal(delta, total_supply, what="bonus_integral")
    return delta


def settle_account_bonus(state: Json, account: Json) -> int:
    """Credit raw-stake share of integral growth; returns total claimable."""
    integral = _as_int(state["bonus"].get("integral"), 0)
    last = _as_int(account.get("bonus_integral"), 0)
    claimable = _as_int(account.get("bonus_claimable"), 0)
    if integral > last:
        claimable += _as_int(account.get("balance"), 0) * (integral - last) // UNIT
    account["bonus_claimable"] = claimable
    account["bonus_integral"] = integral
    return claimable


__all__ = ["checkpoint_bonus", "settle_account_bonus"]
