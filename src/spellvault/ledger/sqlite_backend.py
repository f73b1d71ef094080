# src/spellvault/ledger/sqlite_backend.py
from __future__ import annotations

import asyncio
import os
import random
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Tuple

from spellvault.ledger.backend import WriteAck, derive_store_address

_SCHEMA = (
    "CREATE TABLE IF NOT EXISTS meta (key TEXT PRIMARY KEY, value TEXT NOT NULL);",
    """
    CREATE TABLE IF NOT EXISTS kv (
      key TEXT PRIMARY KEY,
      value BLOB NOT NULL,
      version INTEGER NOT NULL,
      updated_ts_ms INTEGER NOT NULL
    );
    """,
)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _is_locked(e: sqlite3.OperationalError) -> bool:
    msg = str(e).lower()
    return "database is locked" in msg or "database is busy" in msg


class SqliteDB:
    """One SQLite file holding the versioned key-value table.

    Connections are opened per call and never shared between threads.

    lock_wait_ms bounds every wait on SQLite's single-writer lock: half goes
    to the busy handler of each statement, half to retrying BEGIN/COMMIT.
    Keep it below the caller's operation timeout, otherwise a write the
    caller already gave up on can still commit later.
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str, lock_wait_ms: Optional[int] = None) -> None:
        self.path = str(path)
        if lock_wait_ms is None:
            raw = (os.environ.get("SPELLVAULT_SQLITE_LOCK_WAIT_MS") or "").strip()
            lock_wait_ms = int(raw) if raw.isdigit() else 10_000
        self.lock_wait_ms = max(2, int(lock_wait_ms))

    @property
    def busy_timeout_ms(self) -> int:
        return self.lock_wait_ms // 2

    def _connect(self) -> sqlite3.Connection:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        con = sqlite3.connect(
            self.path,
            timeout=self.busy_timeout_ms / 1000.0,
            isolation_level=None,  # BEGIN/COMMIT are issued explicitly
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row
        try:
            row = con.execute("PRAGMA journal_mode=WAL;").fetchone()
            if row is None or str(row[0]).lower() != "wal":
                raise RuntimeError(f"sqlite journal_mode is {row[0] if row else None!r}, expected 'wal'")
            # FULL in prod, NORMAL (still safe under WAL) otherwise.
            mode = (os.environ.get("SPELLVAULT_MODE") or "prod").strip().lower()
            con.execute(f"PRAGMA synchronous={'FULL' if mode == 'prod' else 'NORMAL'};")
            con.execute("PRAGMA temp_store=MEMORY;")
            con.execute(f"PRAGMA busy_timeout={self.busy_timeout_ms};")
        except Exception:
            con.close()
            raise
        return con

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    def init_schema(self) -> None:
        with self.write_tx() as con:
            for ddl in _SCHEMA:
                con.execute(ddl)
            row = con.execute("SELECT value FROM meta WHERE key='schema_version';").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
            elif str(row["value"]) != str(self.SCHEMA_VERSION):
                raise RuntimeError(
                    f"sqlite schema_version is {row['value']}, this build expects {self.SCHEMA_VERSION}; refusing to open"
                )

    def _execute_until(self, con: sqlite3.Connection, sql: str, deadline: float) -> None:
        attempt = 0
        while True:
            try:
                con.execute(sql)
                return
            except sqlite3.OperationalError as e:
                left = deadline - time.monotonic()
                if not _is_locked(e) or left <= 0:
                    raise
                pause = min(0.25, 0.005 * (2 ** min(attempt, 6))) * (0.5 + random.random())
                time.sleep(min(pause, left))
                attempt += 1

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """BEGIN IMMEDIATE ... COMMIT, giving up once lock_wait_ms is spent."""
        deadline = time.monotonic() + (self.lock_wait_ms - self.busy_timeout_ms) / 1000.0
        with self.connection() as con:
            self._execute_until(con, "BEGIN IMMEDIATE;", deadline)
            try:
                yield con
                self._execute_until(con, "COMMIT;", deadline)
            except Exception:
                try:
                    con.execute("ROLLBACK;")
                except sqlite3.Error:
                    pass
                raise


class SqliteLedgerBackend:
    """Durable LedgerBackend persisted in one SQLite file.

    Blocking SQLite calls run in worker threads so the event loop never
    stalls. Each key carries a version counter used by set_if_version().
    """

    def __init__(self, *, db: SqliteDB, address: Optional[str] = None) -> None:
        self._db = db
        self._db.init_schema()
        self._address = address or derive_store_address(str(Path(db.path).resolve()))

    @classmethod
    def open(
        cls, path: str, *, address: Optional[str] = None, lock_wait_ms: Optional[int] = None
    ) -> "SqliteLedgerBackend":
        return cls(db=SqliteDB(path=path, lock_wait_ms=lock_wait_ms), address=address)

    # ---- blocking primitives ----

    def _ping(self) -> bool:
        try:
            with self._db.connection() as con:
                con.execute("SELECT 1;").fetchone()
            return True
        except (sqlite3.Error, OSError, RuntimeError):
            return False

    def _read(self, key: str) -> Tuple[bytes, int]:
        with self._db.connection() as con:
            row = con.execute("SELECT value, version FROM kv WHERE key=?;", (str(key),)).fetchone()
            if row is None:
                return (b"", 0)
            return (bytes(row["value"]), int(row["version"]))

    def _write(self, key: str, data: bytes, expected_version: Optional[int]) -> Optional[WriteAck]:
        k = str(key)
        now = _now_ms()
        with self._db.write_tx() as con:
            row = con.execute("SELECT version FROM kv WHERE key=?;", (k,)).fetchone()
            current = int(row["version"]) if row is not None else 0
            if expected_version is not None and current != int(expected_version):
                return None
            con.execute(
                """
                INSERT INTO kv(key, value, version, updated_ts_ms)
                VALUES(?, ?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                  value=excluded.value,
                  version=excluded.version,
                  updated_ts_ms=excluded.updated_ts_ms;
                """,
                (k, sqlite3.Binary(bytes(data)), current + 1, now),
            )
        return WriteAck(key=k, version=current + 1, ts_ms=now)

    # ---- LedgerBackend ----

    async def is_available(self) -> bool:
        return await asyncio.to_thread(self._ping)

    async def get_address(self) -> str:
        return self._address

    async def get(self, key: str) -> bytes:
        data, _ = await asyncio.to_thread(self._read, key)
        return data

    async def get_versioned(self, key: str) -> Tuple[bytes, int]:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, data: bytes) -> WriteAck:
        ack = await asyncio.to_thread(self._write, key, data, None)
        assert ack is not None
        return ack

    async def set_if_version(self, key: str, data: bytes, expected_version: int) -> Optional[WriteAck]:
        return await asyncio.to_thread(self._write, key, data, int(expected_version))
