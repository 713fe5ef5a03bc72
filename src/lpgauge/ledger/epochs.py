# src/lpgauge/ledger/epochs.py
from __future__ import annotations

"""
Rebalance epoch distributions.

Each rebalance closes the current epoch and appends one immutable record: the
four asset amounts handed to stakers and the raw total stake at that instant.
Accounts are not touched at distribution time; they catch up lazily.

Units: an account's buckets are denominated in the units of the epoch it last
settled at. The rebalance closing epoch i converts share amounts from epoch-i
units to epoch-(i+1) units (`transform(q, b, r, i)`), and record i is already
in epoch-(i+1) units. Catching up from settled epoch `s` to current `c` is
therefore, for i = s .. c-1:

    (q, b, r) = transform(q, b, r, i)   # carried amounts first
    buckets += balance / record[i].total_supply * record[i].amounts

The quote bucket is never transformed. An account that carries nothing into
epoch s skips the transform for s, so the first step is a plain share of
record s. Applying a transform for an epoch before `s` would convert amounts a
second time and is rejected.
"""

from typing import Any, Dict, Mapping, Optional

from lpgauge.ledger.constants import ASSET_BUCKETS, SHARE_ASSETS
from lpgauge.ledger.decimal_math import mul_div
from lpgauge.ledger.errors import EpochRecordImmutable, InvalidAmount, StaleRebalanceReplay
from lpgauge.ledger.interfaces import RebalanceTransform

Json = Dict[str, Any]


def _as_int(x: Any, default: int = 0) -> int:
    try:
        return int(x)
    except Exception:
        return int(default)


def current_epoch(state: Json) -> int:
    return _as_int(state["epochs"].get("current"), 0)


def epoch_record(state: Json, epoch: int) -> Optional[Json]:
    records = state["epochs"].get("records") or []
    e = int(epoch)
    if 0 <= e < len(records):
        return records[e]
    return None


def record_distribution(
    state: Json,
    amounts: Mapping[str, Any],
    *,
    epoch: Optional[int] = None,
) -> Json:
    """Append the record for the epoch being closed and open the next one.

    `epoch` may be passed by the trigger as a consistency check; it must equal
    the current epoch. Records are never rewritten.
    """
    epochs = state["epochs"]
    records = epochs.setdefault("records", [])
    current = _as_int(epochs.get("current"), 0)

    if epoch is not None and int(epoch) != current:
        if int(epoch) < current:
            raise EpochRecordImmutable("epoch_already_recorded", {"epoch": int(epoch), "current": current})
        raise EpochRecordImmutable("epoch_out_of_order", {"epoch": int(epoch), "current": current})
    if len(records) != current:
        raise EpochRecordImmutable("record_count_mismatch", {"records": len(records), "current": current})

    normalized: Json = {}
    for asset in ASSET_BUCKETS:
        amt = _as_int(amounts.get(asset), 0)
        if amt < 0:
            raise InvalidAmount("negative_distribution", {"asset": asset, "amount": amt})
        normalized[asset] = amt

    record = {
        "epoch": current,
        "amounts": normalized,
        "total_supply": _as_int(state["supply"].get("total"), 0),
    }
    records.append(record)
    epochs["current"] = current + 1
    return record


def _add_share(buckets: Json, record: Json, balance: int) -> None:
    total_supply = _as_int(record.get("total_supply"), 0)
    if total_supply <= 0 or balance <= 0:
        return
    amounts = record.get("amounts") or {}
    for asset in ASSET_BUCKETS:
        amt = _as_int(amounts.get(asset), 0)
        if amt:
            buckets[asset] = _as_int(buckets.get(asset), 0) + mul_div(amt, balance, total_supply, what="epoch_share")


def _rebalance(buckets: Json, transform: RebalanceTransform, epoch: int, settled_epoch: int) -> None:
    if epoch < settled_epoch:
        raise StaleRebalanceReplay("epoch_before_settled", {"epoch": epoch, "settled_epoch": settled_epoch})
    if not any(buckets[asset] for asset in SHARE_ASSETS):
        return
    q, b, r = transform(buckets["q"], buckets["b"], buckets["r"], epoch)
    buckets["q"], buckets["b"], buckets["r"] = int(q), int(b), int(r)


def catch_up_account(state: Json, account: Json, transform: RebalanceTransform) -> Json:
    """Bring the account's asset buckets up to the current epoch.

    Uses the account's current raw balance, so callers must run this before
    changing stake. Returns the updated bucket dict.
    """
    settled = _as_int(account.get("epoch"), 0)
    current = current_epoch(state)
    buckets = account.setdefault("assets", {a: 0 for a in ASSET_BUCKETS})
    if settled == current:
        return buckets
    if settled > current:
        raise StaleRebalanceReplay("account_ahead_of_gauge", {"settled_epoch": settled, "current": current})

    balance = _as_int(account.get("balance"), 0)
    working = {asset: _as_int(buckets.get(asset), 0) for asset in ASSET_BUCKETS}

    for i in range(settled, current):
        _rebalance(working, transform, i, settled)
        rec = epoch_record(state, i)
        if rec is not None:
            _add_share(working, rec, balance)

    buckets.update(working)
    account["epoch"] = current
    return buckets


__all__ = ["current_epoch", "epoch_record", "record_distribution", "catch_up_account"]
