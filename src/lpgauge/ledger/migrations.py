# src/lpgauge/ledger/migrations.py
from __future__ import annotations

from typing import Any, Callable, Dict

from lpgauge.ledger.constants import ASSET_BUCKETS

Json = Dict[str, Any]

# Increment this when you add a new migration step.
CURRENT_STATE_VERSION = 1


def _as_int(v: Any, default: int = 0) -> int:
    try:
        if isinstance(v, bool):
            return default
        return int(v)
    except Exception:
        return default


def _as_str(v: Any) -> str:
    try:
        return str(v) if v is not None else ""
    except Exception:
        return ""


def _ensure_dict(root: Json, key: str) -> Json:
    v = root.get(key)
    if not isinstance(v, dict):
        v = {}
        root[key] = v
    return v


def _ensure_list(root: Json, key: str) -> list:
    v = root.get(key)
    if not isinstance(v, list):
        v = []
        root[key] = v
    return v


def _ensure_int(root: Json, key: str, default: int = 0) -> int:
    if key not in root:
        root[key] = int(default)
        return int(default)
    x = _as_int(root.get(key), default)
    root[key] = int(x)
    return int(x)


def _ensure_str(root: Json, key: str, default: str = "") -> str:
    if key not in root:
        root[key] = str(default)
        return str(default)
    s = _as_str(root.get(key))
    root[key] = s
    return s


def _ensure_buckets(root: Json, key: str) -> Json:
    buckets = _ensure_dict(root, key)
    for asset in ASSET_BUCKETS:
        _ensure_int(buckets, asset, 0)
    return buckets


def _migrate_v0_to_v1(st: Json) -> Json:
    """
    v0 -> v1: introduce explicit state_version and normalize the gauge roots.

    v0 snapshots were written before accounts carried vote-escrow inputs and
    before epoch records carried their own index.
    """
    _ensure_str(st, "gauge_id", "")
    created_at = _ensure_int(st, "created_at", 0)

    supply = _ensure_dict(st, "supply")
    _ensure_int(supply, "total", 0)
    _ensure_int(st, "working_supply", 0)

    emission = _ensure_dict(st, "emission")
    _ensure_int(emission, "integral", 0)
    _ensure_int(emission, "last_timestamp", created_at)

    bonus = _ensure_dict(st, "bonus")
    _ensure_int(bonus, "integral", 0)
    _ensure_int(bonus, "undistributed", 0)

    epochs = _ensure_dict(st, "epochs")
    records = _ensure_list(epochs, "records")
    for i, rec in enumerate(list(records)):
        if not isinstance(rec, dict):
            rec = {}
            records[i] = rec
        rec["epoch"] = i
        _ensure_buckets(rec, "amounts")
        _ensure_int(rec, "total_supply", 0)
    _ensure_int(epochs, "current", len(records))

    accounts = _ensure_dict(st, "accounts")
    for aid, acct in list(accounts.items()):
        if not isinstance(acct, dict):
            accounts[aid] = {}
            acct = accounts[aid]
        _ensure_int(acct, "balance", 0)
        _ensure_int(acct, "working_balance", _as_int(acct.get("balance"), 0))
        _ensure_int(acct, "emission_integral", 0)
        _ensure_int(acct, "emission_claimable", 0)
        _ensure_int(acct, "bonus_integral", 0)
        _ensure_int(acct, "bonus_claimable", 0)
        _ensure_int(acct, "epoch", 0)
        _ensure_buckets(acct, "assets")
        ve = _ensure_dict(acct, "ve")
        _ensure_int(ve, "balance", 0)
        _ensure_int(ve, "proportion", 0)

    st["state_version"] = 1
    return st


_MIGRATIONS: Dict[int, Callable[[Json], Json]] = {
    0: _migrate_v0_to_v1,
}


def migrate_state_dict(raw: Any) -> Json:
    """
    Upgrade a raw persisted JSON dict to CURRENT_STATE_VERSION.

    - Best-effort: never raises for simple shape issues; it normalizes.
    - If raw isn't a dict, returns an empty vCURRENT state skeleton.
    """
    st: Json = raw if isinstance(raw, dict) else {}

    v = _as_int(st.get("state_version"), 0)
    if v > CURRENT_STATE_VERSION:
        # Future state created by a newer binary; refuse to downgrade silently.
        raise ValueError(
            f"Gauge state version {v} is newer than this binary supports (max {CURRENT_STATE_VERSION})."
        )

    while v < CURRENT_STATE_VERSION:
        step = _MIGRATIONS.get(v)
        if step is None:
            raise ValueError(f"No migration path from state_version={v} to {CURRENT_STATE_VERSION}.")
        st = step(st)
        v = _as_int(st.get("state_version"), v + 1)

    st["state_version"] = CURRENT_STATE_VERSION
    return st
