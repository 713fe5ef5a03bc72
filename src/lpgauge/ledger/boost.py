# src/lpgauge/ledger/boost.py
from __future__ import annotations

"""Boosted ("working") stake.

A staker holding vote-escrow power gets a bonus on top of their raw stake:

    working = min(3 * s, s + S * (v / V) * 2)

where s/S are the account's and the pool's raw stake and v/V the account's and
the total vote-escrow balances. Without vote-escrow power working == s.
"""

from lpgauge.ledger.constants import MAX_BOOSTING_FACTOR, MAX_BOOSTING_FACTOR_MINUS_ONE
from lpgauge.ledger.decimal_math import divide_decimal, multiply_decimal
from lpgauge.ledger.errors import DivisionByZero


def ve_proportion(ve_balance: int, ve_total: int) -> int:
    """UNIT-scaled share of total vote-escrow power held by one account."""
    v = int(ve_balance)
    if v == 0:
        return 0
    if int(ve_total) == 0:
        raise DivisionByZero("ve_total_zero", {"ve_balance": v})
    return divide_decimal(v, ve_total, what="ve_proportion")


def working_balance_from_proportion(balance: int, total_supply: int, proportion: int) -> int:
    s = int(balance)
    if int(proportion) <= 0:
        return s
    boosted = s + multiply_decimal(multiply_decimal(total_supply, proportion), MAX_BOOSTING_FACTOR_MINUS_ONE)
    return min(boosted, multiply_decimal(s, MAX_BOOSTING_FACTOR))


def compute_working_balance(balance: int, total_supply: int, ve_balance: int, ve_total: int) -> int:
    """Pure boost formula; the result is always within [balance, 3 * balance]."""
    return working_balance_from_proportion(balance, total_supply, ve_proportion(ve_balance, ve_total))


__all__ = ["ve_proportion", "working_balance_from_proportion", "compute_working_balance"]
