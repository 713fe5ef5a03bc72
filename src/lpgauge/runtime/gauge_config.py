# src/lpgauge/runtime/gauge_config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from lpgauge.ledger.constants import MAX_ITERATIONS, SETTLEMENT_TIME, UNIT, WEEK

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


def _as_bool(v: Any, default: bool) -> bool:
    if v is None:
        return bool(default)
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    return bool(default)


@dataclass(frozen=True)
class GaugeConfig:
    gauge_id: str
    mode: str  # "dev" | "testnet" | "prod"

    # Single SQLite DB file path for the gauge snapshot.
    db_path: str
    persist: bool

    max_iterations: int
    settlement_time_s: int

    # Dev-mode collaborators: flat emission rate (wei/second) and weight (UNIT-scaled).
    emission_rate: int
    relative_weight: int

    api_host: str
    api_port: int

    log_level: str


_ALLOWED_MODES = {"dev", "testnet", "prod"}


def validate_gauge_config(cfg: GaugeConfig) -> None:
    """Fail-fast validation for operator config."""

    if not isinstance(cfg.gauge_id, str) or not cfg.gauge_id.strip():
        raise ValueError("gauge_id must be a non-empty string")

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    if cfg.persist and (not isinstance(cfg.db_path, str) or not cfg.db_path.strip()):
        raise ValueError("db_path must be a non-empty string when persist is enabled")

    if int(cfg.max_iterations) <= 0:
        raise ValueError(f"max_iterations must be > 0; got: {cfg.max_iterations}")

    if not 0 <= int(cfg.settlement_time_s) < WEEK:
        raise ValueError(f"settlement_time_s must be within one week; got: {cfg.settlement_time_s}")

    if int(cfg.emission_rate) < 0:
        raise ValueError(f"emission_rate must be >= 0; got: {cfg.emission_rate}")

    if not 0 <= int(cfg.relative_weight) <= UNIT:
        raise ValueError(f"relative_weight must be within 0..{UNIT}; got: {cfg.relative_weight}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")


def default_gauge_config() -> GaugeConfig:
    return GaugeConfig(
        gauge_id="lpgauge-dev",
        mode="prod",
        db_path="./data/lpgauge.db",
        persist=True,
        max_iterations=MAX_ITERATIONS,
        settlement_time_s=SETTLEMENT_TIME,
        emission_rate=0,
        relative_weight=UNIT,
        api_host="127.0.0.1",
        api_port=8080,
        log_level="INFO",
    )


def read_gauge_config_file(path: str) -> GaugeConfig:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("gauge config must be a JSON object")

    d = default_gauge_config()

    cfg = GaugeConfig(
        gauge_id=_as_str(raw.get("gauge_id"), d.gauge_id),
        mode=_as_str(raw.get("mode"), d.mode),
        db_path=_as_str(raw.get("db_path"), d.db_path),
        persist=_as_bool(raw.get("persist"), d.persist),
        max_iterations=_as_int(raw.get("max_iterations"), d.max_iterations),
        settlement_time_s=_as_int(raw.get("settlement_time_s"), d.settlement_time_s),
        emission_rate=_as_int(raw.get("emission_rate"), d.emission_rate),
        relative_weight=_as_int(raw.get("relative_weight"), d.relative_weight),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level),
    )

    validate_gauge_config(cfg)
    return cfg


def load_gauge_config(*, config_path: Optional[str] = None) -> GaugeConfig:
    p = config_path or os.environ.get("LPGAUGE_CONFIG_PATH")
    if p:
        return read_gauge_config_file(p)

    cfg = default_gauge_config()
    validate_gauge_config(cfg)
    return cfg


def apply_gauge_config_to_env(cfg: GaugeConfig) -> None:
    validate_gauge_config(cfg)
    os.environ["LPGAUGE_GAUGE_ID"] = cfg.gauge_id
    os.environ["LPGAUGE_MODE"] = (cfg.mode or "prod").strip().lower()
    os.environ["LPGAUGE_DB_PATH"] = cfg.db_path
    os.environ["LPGAUGE_LOG_LEVEL"] = cfg.log_level
