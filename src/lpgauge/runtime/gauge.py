# src/lpgauge/runtime/gauge.py
from __future__ import annotations

"""
Liquidity gauge runtime.

LiquidityGauge owns one gauge state dict and exposes the public operations
(deposit, withdraw, transfer, sync, claim, epoch advance) plus read-only
previews. Every operation:

  1. copies the committed state,
  2. settles each involved account (_settle): global emission checkpoint,
     bonus pull, per-account emission/bonus settlement, epoch catch-up,
  3. applies its own effect,
  4. recomputes boosted stake for each involved account,
  5. checks supply invariants, persists, and only then swaps the copy in.

A failure at any step leaves the committed state untouched.
"""

import copy
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from lpgauge.gauge_logging import log_event
from lpgauge.ledger.accrual import CheckpointResult, checkpoint_emission, settle_account_emission
from lpgauge.ledger.boost import ve_proportion, working_balance_from_proportion
from lpgauge.ledger.bonus import checkpoint_bonus, settle_account_bonus
from lpgauge.ledger.constants import ASSET_BUCKETS, MAX_ITERATIONS, SETTLEMENT_TIME
from lpgauge.ledger.epochs import catch_up_account, current_epoch, epoch_record, record_distribution
from lpgauge.ledger.errors import GaugeError, InsufficientBalance, InvalidAmount
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
from lpgauge.ledger.state import check_invariants, ensure_account, has_account, new_gauge_state
from lpgauge.runtime import metrics
from lpgauge.runtime.collaborators import (
    FixedWeightController,
    InMemoryBonusSource,
    InMemoryVotingEscrow,
    RecordingAssetPayout,
    RecordingMinter,
    WeeklyEmissionSchedule,
)
from lpgauge.runtime.gauge_config import GaugeConfig
from lpgauge.runtime.sqlite_db import SqliteDB, SqliteGaugeStore

Json = Dict[str, Any]

log = logging.getLogger("lpgauge.gauge")


@dataclass
class GaugeCollaborators:
    schedule: EmissionSchedule
    controller: WeightController
    voting_escrow: VotingEscrow
    bonus_source: BonusSource
    minter: EmissionMinter
    asset_payout: AssetPayout
    transform: RebalanceTransform = field(default=identity_transform)

    @classmethod
    def in_memory(cls, *, emission_rate: int = 0, relative_weight: Optional[int] = None) -> "GaugeCollaborators":
        controller = FixedWeightController() if relative_weight is None else FixedWeightController(relative_weight)
        return cls(
            schedule=WeeklyEmissionSchedule.constant(emission_rate),
            controller=controller,
            voting_escrow=InMemoryVotingEscrow(),
            bonus_source=InMemoryBonusSource(),
            minter=RecordingMinter(),
            asset_payout=RecordingAssetPayout(),
        )


def _as_int(x: Any, default: int = 0) -> int:
    try:
        return int(x)
    except Exception:
        return int(default)


def _require_amount(amount: Any) -> int:
    if isinstance(amount, bool):
        raise InvalidAmount("amount_not_int", {"amount": amount})
    try:
        amt = int(amount)
    except (TypeError, ValueError) as e:
        raise InvalidAmount("amount_not_int", {"amount": repr(amount)}) from e
    if amt < 0:
        raise InvalidAmount("negative_amount", {"amount": amt})
    return amt


def _require_account_id(account: Any) -> str:
    s = str(account or "").strip()
    if not s:
        raise GaugeError("invalid_account", "empty_account_id", {})
    return s


class LiquidityGauge:
    """Stake-weighted incentive ledger for one liquidity pool."""

    def __init__(
        self,
        *,
        gauge_id: str,
        collaborators: GaugeCollaborators,
        store: Optional[SqliteGaugeStore] = None,
        state: Optional[Json] = None,
        clock: Optional[Callable[[], int]] = None,
        max_iterations: int = MAX_ITERATIONS,
        settlement_time: int = SETTLEMENT_TIME,
    ) -> None:
        self.gauge_id = str(gauge_id)
        self.collaborators = collaborators
        self.max_iterations = int(max_iterations)
        self.settlement_time = int(settlement_time)
        self._clock = clock or (lambda: int(time.time()))
        self._store = store
        self._lock = threading.RLock()

        if state is not None:
            st = state
        elif store is not None and store.exists():
            st = store.read()
        else:
            st = new_gauge_state(gauge_id=self.gauge_id, created_at=self._clock())
            if store is not None:
                store.write(st)

        st_gauge_id = str(st.get("gauge_id") or "").strip()
        if st_gauge_id and st_gauge_id != self.gauge_id:
            raise GaugeError("gauge_id_mismatch", "refuse_to_load", {"stored": st_gauge_id, "configured": self.gauge_id})
        st["gauge_id"] = self.gauge_id
        self._state: Json = st

    @classmethod
    def from_config(
        cls,
        cfg: GaugeConfig,
        *,
        collaborators: Optional[GaugeCollaborators] = None,
        clock: Optional[Callable[[], int]] = None,
    ) -> "LiquidityGauge":
        collabs = collaborators or GaugeCollaborators.in_memory(
            emission_rate=cfg.emission_rate, relative_weight=cfg.relative_weight
        )
        store = SqliteGaugeStore(db=SqliteDB(path=cfg.db_path, mode=cfg.mode)) if cfg.persist else None
        return cls(
            gauge_id=cfg.gauge_id,
            collaborators=collabs,
            store=store,
            clock=clock,
            max_iterations=cfg.max_iterations,
            settlement_time=cfg.settlement_time_s,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _now(self, now: Optional[int]) -> int:
        """Operation time: the clock, or an explicit earlier timestamp.

        The emission checkpoint must never run ahead of the clock.
        """
        wall = int(self._clock())
        if now is None:
            return wall
        t = int(now)
        if t > wall:
            raise GaugeError("future_timestamp", "now_after_clock", {"now": t, "clock": wall})
        return t

    def _checkpoint(self, working: Json, now: int) -> CheckpointResult:
        result = checkpoint_emission(
            working,
            now=now,
            schedule=self.collaborators.schedule,
            controller=self.collaborators.controller,
            max_iterations=self.max_iterations,
            settlement_time=self.settlement_time,
        )
        if not result.caught_up:
            metrics.inc_counter("checkpoint_partial_total")
            log_event(
                log,
                "gauge_checkpoint_partial",
                gauge_id=self.gauge_id,
                iterations=result.iterations,
                last_timestamp=result.last_timestamp,
                target_timestamp=result.target_timestamp,
            )
        return result

    def _settle(self, working: Json, accounts: Iterable[str], now: int) -> CheckpointResult:
        """Bring the global ledger and each account up to date.

        Runs before any stake or claim mutation so every account is paid at the
        stake it actually held over the elapsed interval.
        """
        result = self._checkpoint(working, now)
        checkpoint_bonus(working, self.collaborators.bonus_source)
        for account_id in accounts:
            acct = ensure_account(working, account_id)
            settle_account_emission(working, acct)
            settle_account_bonus(working, acct)
            catch_up_account(working, acct, self.collaborators.transform)
        return result

    def _update_working_balance(self, working: Json, account_id: str) -> int:
        acct = ensure_account(working, account_id)
        ve = self.collaborators.voting_escrow
        ve_balance = int(ve.balance_of(account_id))
        proportion = ve_proportion(ve_balance, int(ve.total_supply()) if ve_balance else 0)
        new_working = working_balance_from_proportion(
            _as_int(acct.get("balance"), 0),
            _as_int(working["supply"].get("total"), 0),
            proportion,
        )
        old_working = _as_int(acct.get("working_balance"), 0)
        working["working_supply"] = _as_int(working.get("working_supply"), 0) - old_working + new_working
        acct["working_balance"] = new_working
        acct["ve"] = {"balance": ve_balance, "proportion": proportion}
        return new_working

    def _run(self, op: str, fn: Callable[[Json], Json]) -> Json:
        with self._lock:
            working = copy.deepcopy(self._state)
            try:
                receipt = fn(working)
                problems = check_invariants(working)
                if problems:
                    raise GaugeError("invariant_violation", op, {"problems": problems})
                if self._store is not None:
                    self._store.write(working)
            except Exception as e:
                metrics.inc_counter("ops_failed_total")
                log_event(log, "gauge_op_failed", level=logging.WARNING, gauge_id=self.gauge_id, op=op, error=str(e))
                raise
            self._state = working

        metrics.inc_counter("ops_total")
        metrics.observe_state(working)
        return receipt

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def checkpoint(self, *, now: Optional[int] = None) -> Json:
        """Advance the global ledgers only (no account settlement)."""
        t = self._now(now)

        def _op(working: Json) -> Json:
            result = self._settle(working, [], t)
            return {"applied": "CHECKPOINT", "checkpoint": result.to_json()}

        return self._run("checkpoint", _op)

    def deposit(self, account: str, amount: int, *, now: Optional[int] = None) -> Json:
        account_id = _require_account_id(account)
        amt = _require_amount(amount)
        t = self._now(now)

        def _op(working: Json) -> Json:
            result = self._settle(working, [account_id], t)
            acct = ensure_account(working, account_id)
            acct["balance"] = _as_int(acct.get("balance"), 0) + amt
            working["supply"]["total"] = _as_int(working["supply"].get("total"), 0) + amt
            wb = self._update_working_balance(working, account_id)
            return {
                "applied": "DEPOSIT",
                "account": account_id,
                "amount": amt,
                "balance": acct["balance"],
                "working_balance": wb,
                "checkpoint": result.to_json(),
            }

        return self._run("deposit", _op)

    def withdraw(self, account: str, amount: int, *, now: Optional[int] = None) -> Json:
        account_id = _require_account_id(account)
        amt = _require_amount(amount)
        t = self._now(now)

        def _op(working: Json) -> Json:
            result = self._settle(working, [account_id], t)
            acct = ensure_account(working, account_id)
            balance = _as_int(acct.get("balance"), 0)
            if amt > balance:
                raise InsufficientBalance("withdraw_exceeds_balance", {"account": account_id, "balance": balance, "amount": amt})
            acct["balance"] = balance - amt
            working["supply"]["total"] = _as_int(working["supply"].get("total"), 0) - amt
            wb = self._update_working_balance(working, account_id)
            return {
                "applied": "WITHDRAW",
                "account": account_id,
                "amount": amt,
                "balance": acct["balance"],
                "working_balance": wb,
                "checkpoint": result.to_json(),
            }

        return self._run("withdraw", _op)

    def transfer(self, sender: str, recipient: str, amount: int, *, now: Optional[int] = None) -> Json:
        src = _require_account_id(sender)
        dst = _require_account_id(recipient)
        amt = _require_amount(amount)
        t = self._now(now)

        def _op(working: Json) -> Json:
            involved = [src] if src == dst else [src, dst]
            result = self._settle(working, involved, t)
            src_acct = ensure_account(working, src)
            balance = _as_int(src_acct.get("balance"), 0)
            if amt > balance:
                raise InsufficientBalance("transfer_exceeds_balance", {"account": src, "balance": balance, "amount": amt})
            dst_acct = ensure_account(working, dst)
            src_acct["balance"] = balance - amt
            dst_acct["balance"] = _as_int(dst_acct.get("balance"), 0) + amt
            for account_id in involved:
                self._update_working_balance(working, account_id)
            return {
                "applied": "TRANSFER",
                "sender": src,
                "recipient": dst,
                "amount": amt,
                "checkpoint": result.to_json(),
            }

        return self._run("transfer", _op)

    def sync_with_voting_escrow(self, account: str, *, now: Optional[int] = None) -> Json:
        """Settle the account and refresh its boost from the current vote-escrow position."""
        account_id = _require_account_id(account)
        t = self._now(now)

        def _op(working: Json) -> Json:
            if not has_account(working, account_id):
                # never staked: nothing to settle or boost, and no entry is created
                result = self._settle(working, [], t)
                return {
                    "applied": "SYNC",
                    "account": account_id,
                    "working_balance": 0,
                    "ve": {"balance": 0, "proportion": 0},
                    "checkpoint": result.to_json(),
                }
            result = self._settle(working, [account_id], t)
            wb = self._update_working_balance(working, account_id)
            acct = working["accounts"][account_id]
            return {
                "applied": "SYNC",
                "account": account_id,
                "working_balance": wb,
                "ve": dict(acct["ve"]),
                "checkpoint": result.to_json(),
            }

        return self._run("sync", _op)

    def claim_rewards(self, account: str, *, now: Optional[int] = None) -> Json:
        """Pay out everything the account has accrued and zero its claimables."""
        account_id = _require_account_id(account)
        t = self._now(now)
        c = self.collaborators

        def _op(working: Json) -> Json:
            if not has_account(working, account_id):
                result = self._settle(working, [], t)
                return {
                    "applied": "CLAIM",
                    "account": account_id,
                    "emission": 0,
                    "bonus": 0,
                    "assets": {asset: 0 for asset in ASSET_BUCKETS},
                    "checkpoint": result.to_json(),
                }

            result = self._settle(working, [account_id], t)
            acct = ensure_account(working, account_id)

            emission = _as_int(acct.get("emission_claimable"), 0)
            bonus = _as_int(acct.get("bonus_claimable"), 0)
            assets = {asset: _as_int(acct["assets"].get(asset), 0) for asset in ASSET_BUCKETS}

            # custody transfers may refuse; mint last
            if bonus > 0:
                c.bonus_source.transfer(account_id, bonus)
            for asset, amt in assets.items():
                if amt > 0:
                    c.asset_payout.transfer(account_id, asset, amt)
            if emission > 0:
                c.minter.mint(account_id, emission)

            acct["emission_claimable"] = 0
            acct["bonus_claimable"] = 0
            acct["assets"] = {asset: 0 for asset in ASSET_BUCKETS}
            self._update_working_balance(working, account_id)
            return {
                "applied": "CLAIM",
                "account": account_id,
                "emission": emission,
                "bonus": bonus,
                "assets": assets,
                "checkpoint": result.to_json(),
            }

        receipt = self._run("claim", _op)
        metrics.inc_counter("claims_total")
        log_event(
            log,
            "gauge_claim",
            gauge_id=self.gauge_id,
            account=account_id,
            emission=receipt["emission"],
            bonus=receipt["bonus"],
            assets=receipt["assets"],
        )
        return receipt

    def advance_epoch(
        self,
        amounts: Mapping[str, Any],
        *,
        epoch: Optional[int] = None,
        now: Optional[int] = None,
    ) -> Json:
        """Record a rebalance distribution and open the next epoch.

        Called by the rebalance trigger after it has moved the assets into
        gauge custody. Accounts pick up their share lazily.
        """
        t = self._now(now)

        def _op(working: Json) -> Json:
            result = self._settle(working, [], t)
            record = record_distribution(working, amounts, epoch=epoch)
            return {
                "applied": "EPOCH_ADVANCE",
                "record": copy.deepcopy(record),
                "current_epoch": current_epoch(working),
                "checkpoint": result.to_json(),
            }

        receipt = self._run("advance_epoch", _op)
        log_event(
            log,
            "gauge_epoch_advanced",
            gauge_id=self.gauge_id,
            epoch=receipt["record"]["epoch"],
            total_supply=receipt["record"]["total_supply"],
        )
        return receipt

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def snapshot(self) -> Json:
        with self._lock:
            return copy.deepcopy(self._state)

    def account_snapshot(self, account: str) -> Json:
        with self._lock:
            acct = (self._state.get("accounts") or {}).get(str(account))
            return copy.deepcopy(acct) if isinstance(acct, dict) else {}

    def balance_of(self, account: str) -> int:
        return _as_int(self.account_snapshot(account).get("balance"), 0)

    def working_balance_of(self, account: str) -> int:
        return _as_int(self.account_snapshot(account).get("working_balance"), 0)

    def working_supply(self) -> int:
        with self._lock:
            return _as_int(self._state.get("working_supply"), 0)

    def total_supply(self) -> int:
        with self._lock:
            return _as_int(self._state["supply"].get("total"), 0)

    def current_epoch(self) -> int:
        with self._lock:
            return current_epoch(self._state)

    def epoch_record(self, epoch: int) -> Optional[Json]:
        with self._lock:
            rec = epoch_record(self._state, epoch)
            return copy.deepcopy(rec) if rec is not None else None

    def claimable_rewards(self, account: str, *, now: Optional[int] = None) -> Json:
        """Preview what a claim would pay right now, without side effects.

        Pending bonus not yet pulled into custody is not included; the emission
        preview is subject to the same iteration budget as a real checkpoint.
        """
        account_id = _require_account_id(account)
        t = self._now(now)
        working = self.snapshot()
        result = checkpoint_emission(
            working,
            now=t,
            schedule=self.collaborators.schedule,
            controller=self.collaborators.controller,
            max_iterations=self.max_iterations,
            settlement_time=self.settlement_time,
        )
        acct = ensure_account(working, account_id)
        emission = settle_account_emission(working, acct)
        bonus = settle_account_bonus(working, acct)
        assets = catch_up_account(working, acct, self.collaborators.transform)
        return {
            "account": account_id,
            "emission": emission,
            "bonus": bonus,
            "assets": {asset: _as_int(assets.get(asset), 0) for asset in ASSET_BUCKETS},
            "checkpoint": result.to_json(),
        }

    def accounts(self) -> List[str]:
        with self._lock:
            return sorted((self._state.get("accounts") or {}).keys())


__all__ = ["GaugeCollaborators", "LiquidityGauge"]
