from __future__ import annotations

import logging
import math
import secrets
import string
import time
from typing import Dict, List, Optional, Union

from spellvault.ledger import lifecycle, value_codec
from spellvault.ledger.backend import LedgerBackend
from spellvault.ledger.banner import StatusBanner
from spellvault.ledger.constants import RECORD_ID_PREFIX, RECORD_ID_SUFFIX_LEN
from spellvault.ledger.directory import DirectoryManager
from spellvault.ledger.records import RecordStore
from spellvault.ledger.reveal import RevealCeremony
from spellvault.ledger.session import SessionParams, open_session
from spellvault.ledger.sync import FACET_ALL, SyncEngine, filter_records, status_counts
from spellvault.ledger.types import Number, Record, Status
from spellvault.runtime.config import ClientConfig, default_client_config
from spellvault.runtime.errors import PreconditionFault
from spellvault.runtime.event_log import log_event
from spellvault.runtime.metrics import inc_counter
from spellvault.wallet.base import Wallet

_log = logging.getLogger("spellvault.client")

_BASE36 = string.digits + string.ascii_lowercase


def new_record_id(*, now_ms: Optional[int] = None) -> str:
    """"rec-<unix_ms>-<4 base36 chars>"; unique in practice, never reused."""
    ms = int(time.time() * 1000) if now_ms is None else int(now_ms)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(RECORD_ID_SUFFIX_LEN))
    return f"{RECORD_ID_PREFIX}-{ms}-{suffix}"


class LedgerClient:
    """One client's view of the shared record ledger.

    Wires the record store, directory, sync engine and reveal ceremony
    together the way the caster UI drives them. All mutating calls go
    through the status banner.
    """

    def __init__(
        self,
        *,
        backend: LedgerBackend,
        wallet: Wallet,
        config: Optional[ClientConfig] = None,
    ) -> None:
        self.config = config or default_client_config()
        self.backend = backend
        self.wallet = wallet

        timeout_s = self.config.op_timeout_s
        self.store = RecordStore(backend, timeout_s=timeout_s)
        self.directory = DirectoryManager(
            backend,
            timeout_s=timeout_s,
            use_cas=self.config.directory_cas,
            cas_retries=self.config.directory_cas_retries,
        )
        self.sync = SyncEngine(backend=backend, directory=self.directory, store=self.store, timeout_s=timeout_s)
        self.banner = StatusBanner(
            success_ms=self.config.banner_success_ms,
            error_ms=self.config.banner_error_ms,
        )
        self._session: Optional[SessionParams] = None
        self._ceremony: Optional[RevealCeremony] = None

    # ---- session ----

    async def start(self) -> SessionParams:
        """Open the reveal session once; later calls return the same session."""
        if self._session is None:
            self._session = await open_session(
                self.backend,
                self.wallet,
                duration_days=self.config.session_duration_days,
            )
            self._ceremony = RevealCeremony(
                session=self._session,
                wallet=self.wallet,
                sign_timeout_s=self.config.op_timeout_s,
                settle_delay_s=self.config.reveal_settle_ms / 1000.0,
            )
            log_event(
                _log,
                "session_opened",
                store_address=self._session.store_address,
                chain_id=self._session.chain_id,
                start_timestamp=self._session.start_timestamp,
            )
        return self._session

    @property
    def session(self) -> Optional[SessionParams]:
        return self._session

    # ---- queries ----

    async def refresh(self) -> List[Record]:
        return await self.sync.refresh()

    def records(self, text_query: str = "", status_facet: str = FACET_ALL) -> List[Record]:
        return filter_records(self.sync.records, text_query, status_facet)

    def stats(self) -> Dict[str, int]:
        return status_counts(self.sync.records)

    def can_transition(self, record: Record) -> bool:
        return lifecycle.can_transition(record, self.wallet.address)

    # ---- mutations ----

    def _require_connected(self, action: str) -> str:
        addr = self.wallet.address
        if not self.wallet.is_connected or not addr:
            raise PreconditionFault(f"connect a wallet to {action}")
        return addr

    async def create_record(self, category: str, declared_cost: Number) -> Record:
        author = self._require_connected("create a record")

        cat = str(category or "").strip()
        if not cat:
            raise PreconditionFault("category is required")
        if isinstance(declared_cost, bool) or not isinstance(declared_cost, (int, float)):
            raise PreconditionFault("declared cost must be a number")
        if (isinstance(declared_cost, float) and not math.isfinite(declared_cost)) or declared_cost == 0:
            raise PreconditionFault("declared cost must be a finite, non-zero number")

        record = Record(
            id=new_record_id(),
            encoded_value=value_codec.encode(declared_cost),
            created_at=int(time.time()),
            author=author,
            category=cat,
            declared_cost=declared_cost,
            status=Status.PREPARED,
        )

        async def _create() -> Record:
            # Both writes are required for visibility; a failed append leaves
            # an unreachable record blob behind.
            await self.store.write_record(record)
            await self.directory.append_id(record.id)
            inc_counter("records_created")
            log_event(_log, "record_created", record_id=record.id, author=author, category=cat)
            await self.refresh()
            return record

        return await self.banner.track(_create(), pending="Encoding record...", success="Record encoded and prepared")

    async def transition(self, record_id: str, target: Union[Status, str]) -> Record:
        caller = self._require_connected("change a record")
        target_st = Status.parse(target)

        async def _transition() -> Record:
            current = await self.store.read_record(record_id)
            updated = lifecycle.transition(current, target_st, caller=caller)
            await self.store.write_record(updated)
            inc_counter("records_transitioned")
            log_event(_log, "record_transitioned", record_id=updated.id, status=updated.status.value)
            await self.refresh()
            return updated

        success = "Record cast" if target_st is Status.CAST else "Record marked as failed"
        return await self.banner.track(_transition(), pending="Updating record...", success=success)

    async def cast(self, record_id: str) -> Record:
        return await self.transition(record_id, Status.CAST)

    async def fail(self, record_id: str) -> Record:
        return await self.transition(record_id, Status.FAILED)

    # ---- reveal ----

    async def reveal(self, record: Union[Record, str]) -> Number:
        if not self.wallet.is_connected:
            raise PreconditionFault("connect a wallet to reveal a value")
        await self.start()
        assert self._ceremony is not None

        async def _reveal() -> Number:
            rec = record if isinstance(record, Record) else await self.store.read_record(record)
            return await self._ceremony.reveal(rec)

        return await self.banner.track(_reveal(), pending="Waiting for signature...", success="Value revealed")
