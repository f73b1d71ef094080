from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

from spellvault.ledger.backend import LedgerBackend, WriteAck
from spellvault.ledger.constants import DIRECTORY_KEY
from spellvault.ledger.types import dumps_wire
from spellvault.runtime.deadline import bounded
from spellvault.runtime.errors import LedgerFault, UserRejected, WriteFault, is_user_rejection
from spellvault.runtime.event_log import log_event
from spellvault.runtime.metrics import inc_counter

_log = logging.getLogger("spellvault.directory")


def parse_directory(raw: bytes) -> List[str]:
    """Decode the directory blob. Missing or malformed -> [] (logged, not fatal)."""
    if not raw:
        return []
    try:
        text = bytes(raw).decode("utf-8")
        if not text.strip():
            return []
        obj: Any = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        log_event(_log, "directory_parse_failed", level=logging.WARNING, error=str(e))
        inc_counter("directory_parse_failures")
        return []

    if not isinstance(obj, list) or not all(isinstance(x, str) for x in obj):
        log_event(_log, "directory_parse_failed", level=logging.WARNING, error="expected a JSON list of strings")
        inc_counter("directory_parse_failures")
        return []
    return list(obj)


class DirectoryManager:
    """Maintains the list of known record ids under one well-known key.

    Append-only from the client's point of view; ids are never removed.

    Default mode is the plain read-modify-write the ledger has always used:
    two clients appending from the same snapshot can drop one id (last write
    wins). With use_cas=True the write is conditional on the version that
    was read, and a conflicting append re-reads and retries.
    """

    def __init__(
        self,
        backend: LedgerBackend,
        *,
        timeout_s: Optional[float] = None,
        use_cas: bool = False,
        cas_retries: int = 8,
    ) -> None:
        self._backend = backend
        self._timeout_s = timeout_s
        self.use_cas = bool(use_cas)
        self._cas_retries = max(1, int(cas_retries))

    async def list_ids(self) -> List[str]:
        raw = await bounded(self._backend.get(DIRECTORY_KEY), timeout_s=self._timeout_s, op="list_ids")
        return parse_directory(raw)

    async def append_id(self, record_id: str) -> WriteAck:
        rid = str(record_id or "").strip()
        if not rid:
            raise WriteFault("cannot append an empty record id")
        if self.use_cas:
            return await self._append_cas(rid)
        return await self._append_plain(rid)

    async def _append_plain(self, rid: str) -> WriteAck:
        ids = await self.list_ids()
        ids.append(rid)
        ack = await self._write(self._backend.set(DIRECTORY_KEY, dumps_wire(ids)), rid)
        inc_counter("directory_appends")
        log_event(_log, "directory_appended", record_id=rid, size=len(ids), mode="plain")
        return ack

    async def _append_cas(self, rid: str) -> WriteAck:
        for attempt in range(self._cas_retries):
            raw, version = await bounded(
                self._backend.get_versioned(DIRECTORY_KEY), timeout_s=self._timeout_s, op="list_ids"
            )
            ids = parse_directory(raw)
            if rid not in ids:
                ids.append(rid)
            ack = await self._write(self._backend.set_if_version(DIRECTORY_KEY, dumps_wire(ids), version), rid)
            if ack is not None:
                inc_counter("directory_appends")
                log_event(_log, "directory_appended", record_id=rid, size=len(ids), mode="cas", attempts=attempt + 1)
                return ack
            inc_counter("directory_cas_conflicts")
            log_event(_log, "directory_cas_conflict", record_id=rid, attempt=attempt + 1, seen_version=version)

        raise WriteFault(
            "directory append kept conflicting with concurrent writers",
            {"record_id": rid, "attempts": self._cas_retries},
        )

    async def _write(self, aw: Any, rid: str) -> Any:
        try:
            return await bounded(aw, timeout_s=self._timeout_s, op="append_id")
        except LedgerFault:
            raise
        except Exception as e:
            if is_user_rejection(e):
                raise UserRejected(str(e), {"record_id": rid}) from e
            raise WriteFault(str(e) or type(e).__name__, {"record_id": rid, "key": DIRECTORY_KEY}) from e
