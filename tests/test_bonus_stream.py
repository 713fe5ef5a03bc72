from __future__ import annotations

from lpgauge.ledger.bonus import checkpoint_bonus, settle_account_bonus
from lpgauge.ledger.constants import UNIT
from lpgauge.ledger.state import ensure_account, new_gauge_state
from lpgauge.runtime.collaborators import InMemoryBonusSource


def _state_with_stakes(**stakes: int) -> dict:
    st = new_gauge_state(gauge_id="pool-test", created_at=0)
    for aid, amt in stakes.items():
        acct = ensure_account(st, aid)
        acct["balance"] = amt
        acct["working_balance"] = amt
        st["supply"]["total"] += amt
        st["working_supply"] += amt
    return st


def test_inflow_is_split_by_raw_stake() -> None:
    st = _state_with_stakes(alice=250, bob=750)
    src = InMemoryBonusSource()
    src.notify(500)

    assert checkpoint_bonus(st, src) == 500
    assert src.custody == 500
    assert st["bonus"]["integral"] == 500 * UNIT // 1000

    assert settle_account_bonus(st, st["accounts"]["alice"]) == 125
    assert settle_account_bonus(st, st["accounts"]["bob"]) == 375


def test_boost_does_not_affect_bonus_share() -> None:
    st = _state_with_stakes(alice=250, bob=750)
    st["accounts"]["alice"]["working_balance"] = 750
    st["working_supply"] = 1500
    src = InMemoryBonusSource()
    src.notify(500)
    checkpoint_bonus(st, src)
    assert settle_account_bonus(st, st["accounts"]["alice"]) == 125


def test_nothing_pending_changes_nothing() -> None:
    st = _state_with_stakes(alice=10)
    assert checkpoint_bonus(st, InMemoryBonusSource()) == 0
    assert st["bonus"] == {"integral": 0, "undistributed": 0}


def test_inflow_at_zero_stake_stays_in_custody_and_is_never_distributed() -> None:
    # Documented behavior: inflow observed while nobody is staked cannot be
    # attributed, is only tallied, and no later staker receives it.
    st = _state_with_stakes()
    src = InMemoryBonusSource()
    src.notify(500)

    assert checkpoint_bonus(st, src) == 500
    assert st["bonus"]["integral"] == 0
    assert st["bonus"]["undistributed"] == 500
    assert src.custody == 500

    acct = ensure_account(st, "alice")
    acct["balance"] = 100
    st["supply"]["total"] = 100
    assert checkpoint_bonus(st, src) == 0
    assert settle_account_bonus(st, acct) == 0
