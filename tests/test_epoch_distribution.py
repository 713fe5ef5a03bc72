from __future__ import annotations

import copy
from typing import Tuple

import pytest

from lpgauge.ledger.epochs import catch_up_account, epoch_record, record_distribution
from lpgauge.ledger.errors import EpochRecordImmutable, InvalidAmount, StaleRebalanceReplay
from lpgauge.ledger.state import ensure_account, new_gauge_state
from lpgauge.runtime.collaborators import identity_transform


def _halve_q_double_b_at_epoch_2(q: int, b: int, r: int, epoch: int) -> Tuple[int, int, int]:
    if epoch == 2:
        return q // 2, b * 2, r
    return q, b, r


def _state_with_stakes(**stakes: int) -> dict:
    st = new_gauge_state(gauge_id="pool-test", created_at=0)
    for aid, amt in stakes.items():
        acct = ensure_account(st, aid)
        acct["balance"] = amt
        st["supply"]["total"] += amt
    return st


def test_record_is_appended_with_current_total_supply() -> None:
    st = _state_with_stakes(alice=100, bob=400)
    rec = record_distribution(st, {"q": 1000})
    assert rec == {"epoch": 0, "amounts": {"q": 1000, "b": 0, "r": 0, "u": 0}, "total_supply": 500}
    assert st["epochs"]["current"] == 1
    assert epoch_record(st, 0) == rec
    assert epoch_record(st, 1) is None


def test_account_receives_pro_rata_share_on_next_settlement() -> None:
    st = _state_with_stakes(alice=100, bob=400)
    record_distribution(st, {"q": 1000})

    alice = st["accounts"]["alice"]
    buckets = catch_up_account(st, alice, identity_transform)
    assert buckets == {"q": 200, "b": 0, "r": 0, "u": 0}
    assert alice["epoch"] == 1


def test_skipped_epochs_apply_transform_to_carried_amounts_in_order() -> None:
    st = new_gauge_state(gauge_id="pool-test", created_at=0)
    record_distribution(st, {"q": 5_000})  # epoch 0, before anyone staked

    for aid, amt in {"alice": 100, "bob": 400}.items():
        ensure_account(st, aid)["balance"] = amt
        st["supply"]["total"] += amt
    assert st["accounts"]["alice"]["epoch"] == 1

    record_distribution(st, {"q": 1000})  # closes epoch 1
    record_distribution(st, {"q": 600, "b": 300, "u": 50})  # closes epoch 2

    alice = st["accounts"]["alice"]
    catch_up_account(st, alice, _halve_q_double_b_at_epoch_2)

    # epoch 1 share: q=200
    # epoch 2 transform on carried: q=100, b=0
    # epoch 2 share: q+=120, b+=60, u+=10
    assert alice["assets"] == {"q": 220, "b": 60, "r": 0, "u": 10}
    assert alice["epoch"] == 3


def test_skipping_equals_settling_every_epoch() -> None:
    st = _state_with_stakes(alice=100, carol=100, bob=300)
    transform = _halve_q_double_b_at_epoch_2

    distributions = [
        {"q": 1000, "b": 10},
        {"q": 333, "r": 77, "u": 9},
        {"q": 600, "b": 300},
        {"b": 41, "u": 5},
    ]
    for amounts in distributions:
        record_distribution(st, amounts)
        catch_up_account(st, st["accounts"]["carol"], transform)

    catch_up_account(st, st["accounts"]["alice"], transform)
    assert st["accounts"]["alice"]["assets"] == st["accounts"]["carol"]["assets"]
    assert st["accounts"]["alice"]["epoch"] == st["accounts"]["carol"]["epoch"] == 4


def test_quote_bucket_is_never_transformed() -> None:
    st = _state_with_stakes(alice=1)

    def _zero_everything(q: int, b: int, r: int, epoch: int) -> Tuple[int, int, int]:
        return 0, 0, 0

    record_distribution(st, {"q": 10, "u": 10})
    catch_up_account(st, st["accounts"]["alice"], _zero_everything)
    record_distribution(st, {})
    catch_up_account(st, st["accounts"]["alice"], _zero_everything)
    assert st["accounts"]["alice"]["assets"] == {"q": 0, "b": 0, "r": 0, "u": 10}


def test_settled_account_is_a_no_op() -> None:
    st = _state_with_stakes(alice=1)
    record_distribution(st, {"q": 10})
    catch_up_account(st, st["accounts"]["alice"], identity_transform)
    once = copy.deepcopy(st)
    catch_up_account(st, st["accounts"]["alice"], identity_transform)
    assert st == once


def test_account_ahead_of_gauge_is_stale_replay() -> None:
    st = _state_with_stakes(alice=1)
    st["accounts"]["alice"]["epoch"] = 3
    with pytest.raises(StaleRebalanceReplay):
        catch_up_account(st, st["accounts"]["alice"], identity_transform)


def test_recorded_epoch_cannot_be_recorded_again() -> None:
    st = _state_with_stakes(alice=1)
    record_distribution(st, {"q": 1}, epoch=0)
    with pytest.raises(EpochRecordImmutable):
        record_distribution(st, {"q": 2}, epoch=0)
    with pytest.raises(EpochRecordImmutable):
        record_distribution(st, {"q": 2}, epoch=5)
    assert epoch_record(st, 0)["amounts"]["q"] == 1


def test_negative_distribution_is_rejected() -> None:
    st = _state_with_stakes(alice=1)
    with pytest.raises(InvalidAmount):
        record_distribution(st, {"b": -1})
    assert st["epochs"] == {"current": 0, "records": []}
