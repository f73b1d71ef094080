from __future__ import annotations

import json
import logging
from typing import Optional

from spellvault.ledger.backend import LedgerBackend, WriteAck
from spellvault.ledger.constants import record_key
from spellvault.ledger.types import Record, dumps_wire
from spellvault.runtime.deadline import bounded
from spellvault.runtime.errors import LedgerFault, NotFound, ParseFault, UserRejected, WriteFault, is_user_rejection
from spellvault.runtime.event_log import log_event

_log = logging.getLogger("spellvault.records")


class RecordStore:
    """Reads and writes individual record blobs keyed by record id.

    Single-key operations only; nothing here is atomic across keys.
    """

    def __init__(self, backend: LedgerBackend, *, timeout_s: Optional[float] = None) -> None:
        self._backend = backend
        self._timeout_s = timeout_s

    async def read_record(self, record_id: str) -> Record:
        rid = str(record_id or "").strip()
        if not rid:
            raise NotFound("empty record id")

        raw = await bounded(self._backend.get(record_key(rid)), timeout_s=self._timeout_s, op="read_record")
        if not raw:
            raise NotFound(f"record {rid} not found", {"record_id": rid})

        try:
            obj = json.loads(bytes(raw).decode("utf-8"))
            return Record.from_wire(rid, obj)
        except (UnicodeDecodeError, json.JSONDecodeError, ValueError) as e:
            raise ParseFault(f"record {rid} is malformed", {"record_id": rid, "error": str(e)}) from e

    async def write_record(self, record: Record) -> WriteAck:
        key = record_key(record.id)
        try:
            payload = dumps_wire(record.to_wire())
        except ValueError as e:
            raise WriteFault(f"record {record.id} is not serializable", {"error": str(e)}) from e

        try:
            ack = await bounded(self._backend.set(key, payload), timeout_s=self._timeout_s, op="write_record")
        except LedgerFault:
            raise
        except Exception as e:
            if is_user_rejection(e):
                raise UserRejected(str(e), {"record_id": record.id}) from e
            raise WriteFault(str(e) or type(e).__name__, {"record_id": record.id}) from e

        log_event(_log, "record_written", record_id=record.id, status=record.status.value, version=ack.version)
        return ack
