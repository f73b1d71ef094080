from __future__ import annotations

import asyncio
import hashlib
import time
from dataclasses import dataclass
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable


def _now_ms() -> int:
    return int(time.time() * 1000)


def derive_store_address(label: str) -> str:
    """Stable 20-byte hex address for a backend identified by label."""
    return "0x" + hashlib.sha256(("spellvault-store:" + str(label)).encode("utf-8")).hexdigest()[:40]


@dataclass(frozen=True, slots=True)
class WriteAck:
    key: str
    version: int
    ts_ms: int


@runtime_checkable
class LedgerBackend(Protocol):
    """Single-key async store the record ledger is built on.

    No multi-key atomicity. get() returns b"" for a missing key.
    Versions start at 0 for a missing key and increase by one per write.
    """

    async def is_available(self) -> bool: ...

    async def get_address(self) -> str: ...

    async def get(self, key: str) -> bytes: ...

    async def set(self, key: str, data: bytes) -> WriteAck: ...

    async def get_versioned(self, key: str) -> Tuple[bytes, int]: ...

    async def set_if_version(self, key: str, data: bytes, expected_version: int) -> Optional[WriteAck]: ...


class InMemoryLedger:
    """
    In-process ledger used for unit tests and local runs.

    - Not durable
    - Shared by every client holding the same instance
    - Last write wins, except for set_if_version()
    """

    def __init__(self, *, address: Optional[str] = None, available: bool = True, latency_s: float = 0.0) -> None:
        self._data: Dict[str, Tuple[bytes, int]] = {}
        self._address = address or derive_store_address("memory")
        self.available = bool(available)
        self._latency_s = float(latency_s)
        self.write_error: Optional[BaseException] = None

    async def _tick(self) -> None:
        if self._latency_s > 0:
            await asyncio.sleep(self._latency_s)

    async def is_available(self) -> bool:
        await self._tick()
        return self.available

    async def get_address(self) -> str:
        return self._address

    async def get(self, key: str) -> bytes:
        data, _ = await self.get_versioned(key)
        return data

    async def get_versioned(self, key: str) -> Tuple[bytes, int]:
        await self._tick()
        return self._data.get(str(key), (b"", 0))

    async def set(self, key: str, data: bytes) -> WriteAck:
        await self._tick()
        if self.write_error is not None:
            raise self.write_error
        k = str(key)
        _, version = self._data.get(k, (b"", 0))
        self._data[k] = (bytes(data), version + 1)
        return WriteAck(key=k, version=version + 1, ts_ms=_now_ms())

    async def set_if_version(self, key: str, data: bytes, expected_version: int) -> Optional[WriteAck]:
        await self._tick()
        if self.write_error is not None:
            raise self.write_error
        k = str(key)
        _, version = self._data.get(k, (b"", 0))
        if version != int(expected_version):
            return None
        self._data[k] = (bytes(data), version + 1)
        return WriteAck(key=k, version=version + 1, ts_ms=_now_ms())

    # ---- helpers for tests / harness ----

    def inject(self, key: str, data: bytes) -> None:
        """Store raw bytes without any encoding (e.g. malformed blobs)."""
        k = str(key)
        _, version = self._data.get(k, (b"", 0))
        self._data[k] = (bytes(data), version + 1)

    def keys(self) -> list[str]:
        return sorted(self._data.keys())
