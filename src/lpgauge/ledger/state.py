from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List

from lpgauge.ledger.constants import ASSET_BUCKETS
from lpgauge.ledger.migrations import CURRENT_STATE_VERSION

Json = Dict[str, Any]


def _as_int(x: Any, default: int = 0) -> int:
    try:
        return int(x)
    except Exception:
        return int(default)


def empty_buckets() -> Json:
    return {asset: 0 for asset in ASSET_BUCKETS}


def new_gauge_state(*, gauge_id: str, created_at: int) -> Json:
    """Fresh gauge state; the emission checkpoint starts at creation time."""
    return {
        "state_version": CURRENT_STATE_VERSION,
        "gauge_id": str(gauge_id),
        "created_at": int(created_at),
        "supply": {"total": 0},
        "working_supply": 0,
        "emission": {"integral": 0, "last_timestamp": int(created_at)},
        "bonus": {"integral": 0, "undistributed": 0},
        "epochs": {"current": 0, "records": []},
        "accounts": {},
    }


def new_account(state: Json) -> Json:
    """Zero account pinned to the current integrals and epoch.

    A new staker has nothing to catch up on, so snapshots start at the live
    values rather than at zero.
    """
    return {
        "balance": 0,
        "working_balance": 0,
        "emission_integral": _as_int(state["emission"].get("integral"), 0),
        "emission_claimable": 0,
        "bonus_integral": _as_int(state["bonus"].get("integral"), 0),
        "bonus_claimable": 0,
        "epoch": _as_int(state["epochs"].get("current"), 0),
        "assets": empty_buckets(),
        "ve": {"balance": 0, "proportion": 0},
    }


def ensure_account(state: Json, account_id: str) -> Json:
    accts = state.get("accounts")
    if not isinstance(accts, dict):
        accts = {}
        state["accounts"] = accts
    acct = accts.get(account_id)
    if not isinstance(acct, dict):
        acct = new_account(state)
        accts[account_id] = acct
    return acct


def has_account(state: Json, account_id: str) -> bool:
    accts = state.get("accounts")
    return isinstance(accts, dict) and isinstance(accts.get(account_id), dict)


def check_invariants(state: Json) -> List[str]:
    """Return human-readable violations of the supply invariants (empty if none)."""
    problems: List[str] = []
    accts = state.get("accounts") or {}

    working_sum = sum(_as_int(a.get("working_balance"), 0) for a in accts.values())
    if working_sum != _as_int(state.get("working_supply"), 0):
        problems.append(f"working_supply={state.get('working_supply')} != sum(working_balance)={working_sum}")

    balance_sum = sum(_as_int(a.get("balance"), 0) for a in accts.values())
    total = _as_int((state.get("supply") or {}).get("total"), 0)
    if balance_sum != total:
        problems.append(f"supply.total={total} != sum(balance)={balance_sum}")

    current = _as_int((state.get("epochs") or {}).get("current"), 0)
    for aid, a in accts.items():
        if _as_int(a.get("epoch"), 0) > current:
            problems.append(f"accounts[{aid!r}].epoch={a.get('epoch')} > epochs.current={current}")

    return problems


@dataclass(frozen=True, slots=True)
class GaugeView:
    """
    Immutable read-only view of the gauge state used by the API layer.
    """

    gauge_id: str = ""
    total_supply: int = 0
    working_supply: int = 0
    emission: Dict[str, Any] = field(default_factory=dict)
    bonus: Dict[str, Any] = field(default_factory=dict)
    current_epoch: int = 0
    accounts: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_state(cls, state: Json) -> "GaugeView":
        epochs = state.get("epochs") if isinstance(state.get("epochs"), dict) else {}
        return cls(
            gauge_id=str(state.get("gauge_id") or ""),
            total_supply=_as_int((state.get("supply") or {}).get("total"), 0),
            working_supply=_as_int(state.get("working_supply"), 0),
            emission=copy.deepcopy(state.get("emission") or {}),
            bonus=copy.deepcopy(state.get("bonus") or {}),
            current_epoch=_as_int(epochs.get("current"), 0),
            accounts=copy.deepcopy(state.get("accounts") or {}),
        )

    def get_account(self, account_id: str) -> Dict[str, Any]:
        acct = self.accounts.get(account_id)
        return acct if isinstance(acct, dict) else {}

    def balance_of(self, account_id: str) -> int:
        return _as_int(self.get_account(account_id).get("balance"), 0)

    def working_balance_of(self, account_id: str) -> int:
        return _as_int(self.get_account(account_id).get("working_balance"), 0)

    def summary(self) -> Json:
        return {
            "gauge_id": self.gauge_id,
            "total_supply": self.total_supply,
            "working_supply": self.working_supply,
            "emission": dict(self.emission),
            "bonus": dict(self.bonus),
            "current_epoch": self.current_epoch,
            "account_count": len(self.accounts),
        }
