from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from lpgauge import env as lpgauge_env
from lpgauge.ledger.constants import MAX_ITERATIONS, UNIT
from lpgauge.runtime.gauge import LiquidityGauge
from lpgauge.runtime.gauge_config import (
    apply_gauge_config_to_env,
    default_gauge_config,
    load_gauge_config,
    read_gauge_config_file,
)


def _write(tmp_path: Path, obj: dict) -> str:
    p = tmp_path / "gauge.json"
    p.write_text(json.dumps(obj), encoding="utf-8")
    return str(p)


def test_defaults_without_config_path(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LPGAUGE_CONFIG_PATH", raising=False)
    cfg = load_gauge_config()
    assert cfg == default_gauge_config()
    assert cfg.max_iterations == MAX_ITERATIONS
    assert cfg.relative_weight == UNIT


def test_config_file_overrides_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(tmp_path, {"gauge_id": "pool-x", "mode": "dev", "persist": "false", "max_iterations": 7, "api_port": 9000})
    monkeypatch.setenv("LPGAUGE_CONFIG_PATH", path)
    cfg = load_gauge_config()
    assert cfg.gauge_id == "pool-x"
    assert cfg.mode == "dev"
    assert cfg.persist is False
    assert cfg.max_iterations == 7
    assert cfg.api_port == 9000
    assert cfg.db_path == default_gauge_config().db_path


@pytest.mark.parametrize(
    "override",
    [
        {"mode": "staging"},
        {"max_iterations": 0},
        {"settlement_time_s": 7 * 24 * 3600},
        {"relative_weight": UNIT + 1},
        {"emission_rate": -1},
        {"api_port": 70000},
    ],
)
def test_invalid_config_fails_fast(tmp_path: Path, override: dict) -> None:
    with pytest.raises(ValueError):
        read_gauge_config_file(_write(tmp_path, override))


def test_non_object_config_is_rejected(tmp_path: Path) -> None:
    p = tmp_path / "gauge.json"
    p.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        read_gauge_config_file(str(p))


def test_apply_config_to_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for k in ("LPGAUGE_GAUGE_ID", "LPGAUGE_MODE", "LPGAUGE_DB_PATH", "LPGAUGE_LOG_LEVEL"):
        monkeypatch.setenv(k, "placeholder")
    apply_gauge_config_to_env(default_gauge_config())
    assert os.environ["LPGAUGE_MODE"] == "prod"
    assert os.environ["LPGAUGE_GAUGE_ID"] == "lpgauge-dev"


def test_gauge_from_config_without_persistence(tmp_path: Path, clock) -> None:
    path = _write(tmp_path, {"gauge_id": "pool-x", "persist": False, "max_iterations": 3, "emission_rate": 5})
    g = LiquidityGauge.from_config(read_gauge_config_file(path), clock=clock)
    assert g.gauge_id == "pool-x"
    assert g.max_iterations == 3
    g.deposit("alice", 1)
    assert g.balance_of("alice") == 1


def test_dotenv_is_loaded_once_without_overriding(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    dotenv = tmp_path / ".env"
    dotenv.write_text("LPGAUGE_TEST_FROM_DOTENV=yes\nLPGAUGE_TEST_PRESET=from-file\n", encoding="utf-8")
    monkeypatch.setenv("LPGAUGE_TEST_PRESET", "from-env")
    monkeypatch.setattr(lpgauge_env, "_LOADED", False)

    try:
        assert lpgauge_env.load_dotenv_if_present(str(dotenv)) is True
        assert os.environ["LPGAUGE_TEST_FROM_DOTENV"] == "yes"
        assert os.environ["LPGAUGE_TEST_PRESET"] == "from-env"
        assert lpgauge_env.load_dotenv_if_present(str(dotenv)) is False
    finally:
        os.environ.pop("LPGAUGE_TEST_FROM_DOTENV", None)


def test_missing_dotenv_is_not_an_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(lpgauge_env, "_LOADED", False)
    assert lpgauge_env.load_dotenv_if_present(str(tmp_path / "absent.env")) is False
