# src/lpgauge/ledger/accrual.py
from __future__ import annotations

"""
Emission accrual.

The gauge keeps a single cumulative integral of emission per unit of working
(boosted) stake. Any caller may advance it; accounts settle against it lazily:

    owed = working_balance * (integral_now - integral_at_last_settlement)

The global checkpoint walks forward in whole weeks because both the emission
rate and the gauge's relative weight are quoted per week. A single call takes at
most `max_iterations` steps; after a long idle gap the checkpoint is left part
way and the next settling operation resumes from there.
"""

from dataclasses import dataclass
from typing import Any, Dict

from lpgauge.ledger.constants import MAX_ITERATIONS, SETTLEMENT_TIME, UNIT, WEEK
from lpgauge.ledger.decimal_math import mul_div
from lpgauge.ledger.errors import GaugeError
from lpgauge.ledger.interfaces import EmissionSchedule, WeightController

Json = Dict[str, Any]


def _as_int(x: Any, default: int = 0) -> int:
    try:
        return int(x)
    except Exception:
        return int(default)


def end_of_week(timestamp: int, *, settlement_time: int = SETTLEMENT_TIME) -> int:
    """First week boundary strictly after `timestamp`."""
    ts = int(timestamp)
    return ((ts + WEEK - settlement_time) // WEEK) * WEEK + settlement_time


@dataclass(frozen=True)
class CheckpointResult:
    """Outcome of one bounded checkpoint call.

    caught_up=False means the iteration budget ran out before reaching `now`;
    the state is consistent but another settling call is needed to finish.
    """

    caught_up: bool
    iterations: int
    last_timestamp: int
    integral: int
    target_timestamp: int

    def to_json(self) -> Json:
        return {
            "caught_up": bool(self.caught_up),
            "iterations": int(self.iterations),
            "last_timestamp": int(self.last_timestamp),
            "integral": int(self.integral),
            "target_timestamp": int(self.target_timestamp),
        }


def checkpoint_emission(
    state: Json,
    *,
    now: int,
    schedule: EmissionSchedule,
    controller: WeightController,
    max_iterations: int = MAX_ITERATIONS,
    settlement_time: int = SETTLEMENT_TIME,
) -> CheckpointResult:
    """Advance the global emission integral towards `now`.

    Mutates state["emission"] in place; callers run this on a working copy.
    """
    if int(max_iterations) <= 0:
        raise GaugeError("invalid_config", "max_iterations_must_be_positive", {"max_iterations": max_iterations})

    emission = state["emission"]
    timestamp = _as_int(emission.get("last_timestamp"), 0)
    integral = _as_int(emission.get("integral"), 0)
    working_supply = _as_int(state.get("working_supply"), 0)
    now_i = int(now)

    if now_i <= timestamp:
        return CheckpointResult(True, 0, timestamp, integral, now_i)

    if working_supply == 0:
        # Nothing staked: time passes, nothing accrues.
        emission["last_timestamp"] = now_i
        return CheckpointResult(True, 0, now_i, integral, now_i)

    gauge_id = str(state.get("gauge_id") or "")
    week_end = end_of_week(timestamp, settlement_time=settlement_time)
    iterations = 0
    while iterations < int(max_iterations) and timestamp < now_i:
        week_start = week_end - WEEK
        step_end = min(week_end, now_i)
        weight = int(controller.get_relative_weight(gauge_id, week_start))
        if weight > 0:
            rate = int(schedule.get_rate(week_start))
            integral += mul_div(rate * weight, step_end - timestamp, working_supply, what="emission_integral")
        timestamp = step_end
        week_end += WEEK
        iterations += 1

    emission["integral"] = integral
    emission["last_timestamp"] = timestamp
    return CheckpointResult(timestamp >= now_i, iterations, timestamp, integral, now_i)


def settle_account_emission(state: Json, account: Json) -> int:
    """Credit the account for the integral growth since its last settlement.

    Uses the account's working balance as it stood over that interval, so the
    caller must settle before changing stake. Returns the total claimable.
    """
    integral = _as_int(state["emission"].get("integral"), 0)
    last = _as_int(account.get("emission_integral"), 0)
    claimable = _as_int(account.get("emission_claimable"), 0)
    if integral > last:
        claimable += _as_int(account.get("working_balance"), 0) * (integral - last) // UNIT
    account["emission_claimable"] = claimable
    account["emission_integral"] = integral
    return claimable


__all__ = ["CheckpointResult", "checkpoint_emission", "end_of_week", "settle_account_emission"]
