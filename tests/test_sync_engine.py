from __future__ import annotations

import asyncio
from typing import List

import pytest

from spellvault.ledger import value_codec
from spellvault.ledger.backend import InMemoryLedger
from spellvault.ledger.constants import DIRECTORY_KEY, record_key
from spellvault.ledger.directory import DirectoryManager
from spellvault.ledger.records import RecordStore
from spellvault.ledger.sync import SyncEngine, filter_records, sort_newest_first, status_counts
from spellvault.ledger.types import Record, Status, dumps_wire


def _rec(rid: str, created_at: int, *, category: str = "Fireball", author: str = "0xabc", status=Status.PREPARED) -> Record:
    return Record(
        id=rid,
        encoded_value=value_codec.encode(1),
        created_at=created_at,
        author=author,
        category=category,
        declared_cost=1,
        status=status,
    )


def _engine(led: InMemoryLedger) -> SyncEngine:
    return SyncEngine(backend=led, directory=DirectoryManager(led), store=RecordStore(led))


def _seed(led: InMemoryLedger, records: List[Record], extra_ids: List[str] = ()) -> None:
    for r in records:
        led.inject(record_key(r.id), dumps_wire(r.to_wire()))
    led.inject(DIRECTORY_KEY, dumps_wire([r.id for r in records] + list(extra_ids)))


def test_one_good_one_malformed_loads_one() -> None:
    led = InMemoryLedger()
    _seed(led, [_rec("rec-good", 10)], extra_ids=["rec-bad"])
    led.inject(record_key("rec-bad"), b"{broken")

    out = asyncio.run(_engine(led).load_all())
    assert [r.id for r in out] == ["rec-good"]


def test_listed_but_missing_record_is_skipped() -> None:
    led = InMemoryLedger()
    _seed(led, [_rec("rec-a", 10)], extra_ids=["rec-ghost"])
    assert [r.id for r in asyncio.run(_engine(led).load_all())] == ["rec-a"]


def test_unavailable_ledger_loads_nothing() -> None:
    led = InMemoryLedger()
    _seed(led, [_rec("rec-a", 10)])
    led.available = False
    assert asyncio.run(_engine(led).load_all()) == []


def test_sort_newest_first_is_stable() -> None:
    recs = [_rec("a", 1), _rec("b", 3), _rec("c", 3), _rec("d", 2)]
    assert [r.id for r in sort_newest_first(recs)] == ["b", "c", "d", "a"]


def test_load_all_sorts_by_created_at_desc() -> None:
    led = InMemoryLedger()
    _seed(led, [_rec("old", 100), _rec("new", 300), _rec("mid", 200)])
    assert [r.id for r in asyncio.run(_engine(led).load_all())] == ["new", "mid", "old"]


def test_filter_by_text_and_status() -> None:
    recs = [
        _rec("1", 1, category="Fireball"),
        _rec("2", 2, category="Healing", status=Status.CAST),
        _rec("3", 3, category="fireball storm", status=Status.CAST),
        _rec("4", 4, category="Divination", author="0xFIREBALLER"),
    ]
    assert [r.id for r in filter_records(recs, "Fireball", "all")] == ["1", "3", "4"]
    assert [r.id for r in filter_records(recs, "", "Cast")] == ["2", "3"]
    assert [r.id for r in filter_records(recs, "fire", "cast")] == ["3"]
    assert filter_records(recs) == recs
    with pytest.raises(ValueError):
        filter_records(recs, "", "Exploded")


def test_status_counts() -> None:
    recs = [_rec("1", 1), _rec("2", 2, status=Status.CAST), _rec("3", 3, status=Status.FAILED), _rec("4", 4)]
    assert status_counts(recs) == {"total": 4, "Prepared": 2, "Cast": 1, "Failed": 1}
    assert status_counts([]) == {"total": 0, "Prepared": 0, "Cast": 0, "Failed": 0}


class _SlowFirstLoad(InMemoryLedger):
    """The first directory read stalls until released; later ones do not."""

    def __init__(self) -> None:
        super().__init__()
        self.release = asyncio.Event()
        self._first = True

    async def get_versioned(self, key: str):
        data = await super().get_versioned(key)
        if key == DIRECTORY_KEY and self._first:
            self._first = False
            await self.release.wait()
        return data


def test_stale_refresh_does_not_overwrite_newer_result() -> None:
    async def _go():
        led = _SlowFirstLoad()
        _seed(led, [_rec("rec-old", 1)])
        eng = _engine(led)

        first = asyncio.create_task(eng.refresh())
        await asyncio.sleep(0)

        _seed(led, [_rec("rec-old", 1), _rec("rec-new", 2)])
        second = await eng.refresh()

        led.release.set()
        stale = await first
        return eng.records, second, stale

    cached, second, stale = asyncio.run(_go())
    assert [r.id for r in stale] == ["rec-old"]
    assert [r.id for r in second] == ["rec-new", "rec-old"]
    assert [r.id for r in cached] == ["rec-new", "rec-old"]
