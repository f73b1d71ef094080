from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

from spellvault.runtime.errors import LedgerTimeout

T = TypeVar("T")


async def bounded(aw: Awaitable[T], *, timeout_s: Optional[float], op: str) -> T:
    """Await aw, raising LedgerTimeout if it takes longer than timeout_s.

    timeout_s of None or <= 0 disables the bound. Cancellation of the caller
    propagates unchanged.

    Work already handed to a thread (asyncio.to_thread) is not stopped by the
    timeout, so a timed-out write has an unknown outcome. The SQLite backend
    bounds its own lock waits below this deadline (ClientConfig.sqlite_lock_wait_ms).
    """
    if timeout_s is None or float(timeout_s) <= 0:
        return await aw
    try:
        return await asyncio.wait_for(aw, timeout=float(timeout_s))
    except asyncio.TimeoutError as e:
        raise LedgerTimeout(f"{op} timed out", {"timeout_s": float(timeout_s)}) from e
