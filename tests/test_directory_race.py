from __future__ import annotations

import asyncio
from typing import Tuple

import pytest

from spellvault.ledger.backend import InMemoryLedger
from spellvault.ledger.constants import DIRECTORY_KEY
from spellvault.ledger.directory import DirectoryManager, parse_directory
from spellvault.runtime import metrics
from spellvault.runtime.errors import WriteFault


class _GatedLedger(InMemoryLedger):
    """Holds the first `n` directory reads until all of them have happened.

    Forces two appenders to work from the same snapshot, deterministically.
    """

    def __init__(self, n: int = 2) -> None:
        super().__init__()
        self._n = n
        self._seen = 0
        self._gate = asyncio.Event()

    async def get_versioned(self, key: str) -> Tuple[bytes, int]:
        # InMemoryLedger.get() routes through here too. Read first, then wait.
        data = await super().get_versioned(key)
        if key == DIRECTORY_KEY and self._seen < self._n:
            self._seen += 1
            if self._seen >= self._n:
                self._gate.set()
            await self._gate.wait()
        return data


def test_sequential_appends_grow_by_one_each() -> None:
    async def _go():
        led = InMemoryLedger()
        d = DirectoryManager(led)
        for i in range(5):
            await d.append_id(f"rec-{i}")
        return await d.list_ids()

    assert asyncio.run(_go()) == [f"rec-{i}" for i in range(5)]


def test_concurrent_plain_appends_can_lose_an_id() -> None:
    async def _go():
        led = _GatedLedger()
        d = DirectoryManager(led, use_cas=False)
        await asyncio.gather(d.append_id("rec-a"), d.append_id("rec-b"))
        return await d.list_ids()

    ids = asyncio.run(_go())
    # Both writers read the empty directory; the later write wins.
    assert len(ids) == 1
    assert ids[0] in {"rec-a", "rec-b"}


def test_concurrent_cas_appends_keep_both_ids() -> None:
    async def _go():
        led = _GatedLedger()
        d = DirectoryManager(led, use_cas=True, cas_retries=4)
        await asyncio.gather(d.append_id("rec-a"), d.append_id("rec-b"))
        return await d.list_ids()

    ids = asyncio.run(_go())
    assert sorted(ids) == ["rec-a", "rec-b"]
    assert metrics.snapshot()["counters"].get("directory_cas_conflicts", 0) >= 1


def test_malformed_directory_reads_as_empty() -> None:
    assert parse_directory(b"") == []
    assert parse_directory(b"{not json") == []
    assert parse_directory(b'{"a": 1}') == []
    assert parse_directory(b'["x", 3]') == []
    assert parse_directory(b'["x", "y"]') == ["x", "y"]

    async def _go():
        led = InMemoryLedger()
        led.inject(DIRECTORY_KEY, b"\xff\xfe garbage")
        d = DirectoryManager(led)
        before = await d.list_ids()
        await d.append_id("rec-1")
        return before, await d.list_ids()

    before, after = asyncio.run(_go())
    assert before == []
    assert after == ["rec-1"]


class _AlwaysConflicting(InMemoryLedger):
    async def set_if_version(self, key: str, data: bytes, expected_version: int):
        return None


def test_cas_append_gives_up_after_retries() -> None:
    led = _AlwaysConflicting()
    d = DirectoryManager(led, use_cas=True, cas_retries=2)
    with pytest.raises(WriteFault) as ei:
        asyncio.run(d.append_id("rec-a"))
    assert ei.value.details["attempts"] == 2
    assert metrics.snapshot()["counters"]["directory_cas_conflicts"] == 2
    assert asyncio.run(d.list_ids()) == []
