from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from spellvault.ledger.backend import LedgerBackend
from spellvault.ledger.directory import DirectoryManager
from spellvault.ledger.records import RecordStore
from spellvault.ledger.types import Record, Status
from spellvault.runtime.deadline import bounded
from spellvault.runtime.errors import NotFound
from spellvault.runtime.event_log import log_event
from spellvault.runtime.metrics import inc_counter, set_gauge

_log = logging.getLogger("spellvault.sync")

FACET_ALL = "all"


def sort_newest_first(records: Iterable[Record]) -> List[Record]:
    # sorted() is stable, also with reverse=True, so ties keep directory order.
    return sorted(records, key=lambda r: int(r.created_at), reverse=True)


def filter_records(records: Iterable[Record], text_query: str = "", status_facet: str = FACET_ALL) -> List[Record]:
    """Substring match on category/author (case-insensitive) AND status facet."""
    q = str(text_query or "").strip().lower()
    facet = str(status_facet or FACET_ALL).strip()
    want: Optional[Status] = None if facet.lower() == FACET_ALL else Status.parse(facet)

    out: List[Record] = []
    for r in records:
        if q and q not in r.category.lower() and q not in r.author.lower():
            continue
        if want is not None and r.status is not want:
            continue
        out.append(r)
    return out


def status_counts(records: Iterable[Record]) -> Dict[str, int]:
    counts: Dict[str, int] = {"total": 0}
    for st in Status:
        counts[st.value] = 0
    for r in records:
        counts["total"] += 1
        counts[r.status.value] += 1
    return counts


class SyncEngine:
    """directory fetch -> per-record fetch -> parse -> sort.

    A bad record never aborts the batch: it is logged and skipped.
    """

    def __init__(
        self,
        *,
        backend: LedgerBackend,
        directory: DirectoryManager,
        store: RecordStore,
        timeout_s: Optional[float] = None,
    ) -> None:
        self._backend = backend
        self._directory = directory
        self._store = store
        self._timeout_s = timeout_s
        self.records: List[Record] = []
        self._started = 0
        self._applied = 0

    async def load_all(self) -> List[Record]:
        if not await bounded(self._backend.is_available(), timeout_s=self._timeout_s, op="is_available"):
            log_event(_log, "ledger_unavailable", level=logging.WARNING)
            return []

        ids = await self._directory.list_ids()
        out: List[Record] = []
        skipped = 0
        for rid in ids:
            try:
                out.append(await self._store.read_record(rid))
            except NotFound:
                skipped += 1
            except Exception as e:
                skipped += 1
                inc_counter("records_skipped")
                log_event(
                    _log,
                    "record_skipped",
                    level=logging.WARNING,
                    record_id=rid,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        out = sort_newest_first(out)
        inc_counter("loads")
        log_event(_log, "records_loaded", count=len(out), directory_size=len(ids), skipped=skipped)
        return out

    async def refresh(self) -> List[Record]:
        """load_all() and cache the result unless a newer refresh already landed.

        Refreshes issued back to back may complete out of order.
        """
        self._started += 1
        generation = self._started
        records = await self.load_all()
        if generation > self._applied:
            self._applied = generation
            self.records = records
            set_gauge("records_cached", len(records))
        else:
            log_event(_log, "stale_refresh_dropped", generation=generation, applied=self._applied)
        return records
