# src/lpgauge/runtime/sqlite_db.py
from __future__ import annotations

"""
SQLite persistence for gauge snapshots.

The whole gauge state is one canonical-JSON row, overwritten by each committed
operation inside a single write transaction. The file layout version is kept in
PRAGMA user_version; the state dict carries its own state_version, upgraded by
lpgauge.ledger.migrations on read.
"""

import json
import os
import random
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from lpgauge.ledger.migrations import migrate_state_dict

Json = Dict[str, Any]

SCHEMA_VERSION = 1

# Retry budget for BEGIN IMMEDIATE while another writer holds the lock.
_WRITE_DEADLINE_S = 10.0
_BACKOFF_BASE_S = 0.005
_BACKOFF_MAX_S = 0.25

_SCHEMA = """
CREATE TABLE IF NOT EXISTS gauge_state (
  id INTEGER PRIMARY KEY CHECK (id = 1),
  gauge_id TEXT NOT NULL,
  epoch INTEGER NOT NULL,
  emission_ts INTEGER NOT NULL,
  state_json TEXT NOT NULL,
  updated_ts_ms INTEGER NOT NULL
);
"""


def _canon_json(obj: Any) -> str:
    # Amounts are arbitrary-size ints; JSON keeps them exact.
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def synchronous_for_mode(mode: Optional[str]) -> str:
    """prod commits with FULL; dev and testnet use NORMAL."""
    return "FULL" if str(mode or "prod").strip().lower() == "prod" else "NORMAL"


class SqliteDB:
    """One WAL-mode gauge database file, one connection per use."""

    def __init__(self, *, path: str, mode: Optional[str] = None, busy_timeout_ms: int = 5_000) -> None:
        self.path = str(path)
        self.mode = mode if mode is not None else os.environ.get("LPGAUGE_MODE", "prod")
        self.busy_timeout_ms = max(0, int(busy_timeout_ms))

    def _connect(self) -> sqlite3.Connection:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        con = sqlite3.connect(
            self.path,
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,  # BEGIN/COMMIT are explicit
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row

        row = con.execute("PRAGMA journal_mode=WAL;").fetchone()
        journal = str(row[0]).strip().lower() if row is not None else ""
        if journal != "wal":
            con.close()
            raise RuntimeError(f"sqlite journal_mode is '{journal}', expected 'wal'")

        con.execute(f"PRAGMA synchronous={synchronous_for_mode(self.mode)};")
        con.execute(f"PRAGMA busy_timeout={self.busy_timeout_ms};")
        return con

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """BEGIN IMMEDIATE with jittered exponential backoff, then fail closed."""
        deadline = time.monotonic() + _WRITE_DEADLINE_S
        with self.connection() as con:
            attempt = 0
            while True:
                try:
                    con.execute("BEGIN IMMEDIATE;")
                    break
                except sqlite3.OperationalError as e:
                    locked = "locked" in str(e).lower() or "busy" in str(e).lower()
                    if not locked or time.monotonic() >= deadline:
                        raise
                    delay = min(_BACKOFF_MAX_S, _BACKOFF_BASE_S * (2 ** min(attempt, 8)))
                    time.sleep(delay * (0.5 + random.random()))
                    attempt += 1

            try:
                yield con
                con.execute("COMMIT;")
            except Exception:
                con.execute("ROLLBACK;")
                raise

    def schema_version(self) -> int:
        with self.connection() as con:
            return int(con.execute("PRAGMA user_version;").fetchone()[0])

    def init_schema(self) -> None:
        with self.write_tx() as con:
            have = int(con.execute("PRAGMA user_version;").fetchone()[0])
            if have == 0:
                con.execute(_SCHEMA)
                con.execute(f"PRAGMA user_version={SCHEMA_VERSION};")
            elif have != SCHEMA_VERSION:
                raise RuntimeError(f"gauge db schema version {have} != {SCHEMA_VERSION}; refusing to open")


class SqliteGaugeStore:
    """Single-row gauge snapshot store."""

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    def exists(self) -> bool:
        with self._db.connection() as con:
            return con.execute("SELECT 1 FROM gauge_state WHERE id=1;").fetchone() is not None

    def read(self) -> Json:
        with self._db.connection() as con:
            row = con.execute("SELECT state_json FROM gauge_state WHERE id=1;").fetchone()
        if row is None:
            raise FileNotFoundError(f"no gauge state in {self._db.path}")
        st = json.loads(str(row["state_json"]))
        if not isinstance(st, dict):
            raise ValueError("stored gauge state is not a JSON object")
        return migrate_state_dict(st)

    def write(self, st: Json) -> None:
        payload = _canon_json(st)
        with self._db.write_tx() as con:
            con.execute(
                """
                INSERT INTO gauge_state(id, gauge_id, epoch, emission_ts, state_json, updated_ts_ms)
                VALUES(1, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                  gauge_id=excluded.gauge_id,
                  epoch=excluded.epoch,
                  emission_ts=excluded.emission_ts,
                  state_json=excluded.state_json,
                  updated_ts_ms=excluded.updated_ts_ms;
                """,
                (
                    str(st.get("gauge_id") or ""),
                    int((st.get("epochs") or {}).get("current", 0)),
                    int((st.get("emission") or {}).get("last_timestamp", 0)),
                    payload,
                    int(time.time() * 1000),
                ),
            )
