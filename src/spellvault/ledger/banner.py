from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar

from spellvault.runtime.errors import LedgerFault, is_user_rejection

T = TypeVar("T")


class BannerState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class BannerView:
    state: BannerState
    message: str = ""

    def to_dict(self) -> dict:
        return {"state": self.state.value, "visible": self.state is not BannerState.IDLE, "message": self.message}


def describe_fault(exc: BaseException) -> str:
    """User-facing text for a failed operation. Rejections get gentler wording."""
    if is_user_rejection(exc):
        return "Interrupted by caster"
    reason = exc.reason if isinstance(exc, LedgerFault) else str(exc)
    return "Operation failed: " + (reason or "Unknown error")


class StatusBanner:
    """Idle -> Pending -> {Success, Error} -> Idle after a display timeout.

    UI feedback only; nothing here is persisted.
    """

    def __init__(
        self,
        *,
        success_ms: int = 2000,
        error_ms: int = 3000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._success_s = max(0, int(success_ms)) / 1000.0
        self._error_s = max(0, int(error_ms)) / 1000.0
        self._clock = clock
        self._state = BannerState.IDLE
        self._message = ""
        self._expires_at: Optional[float] = None

    def current(self) -> BannerView:
        if self._expires_at is not None and self._clock() >= self._expires_at:
            self._state = BannerState.IDLE
            self._message = ""
            self._expires_at = None
        return BannerView(self._state, self._message)

    def pending(self, message: str) -> None:
        self._set(BannerState.PENDING, message, None)

    def succeed(self, message: str) -> None:
        self._set(BannerState.SUCCESS, message, self._clock() + self._success_s)

    def fail(self, message: str) -> None:
        self._set(BannerState.ERROR, message, self._clock() + self._error_s)

    def _set(self, state: BannerState, message: str, expires_at: Optional[float]) -> None:
        self._state = state
        self._message = str(message or "")
        self._expires_at = expires_at

    async def track(self, aw: Awaitable[T], *, pending: str, success: str) -> T:
        self.pending(pending)
        try:
            out = await aw
        except asyncio.CancelledError:
            # e.g. the HTTP client went away; never leave Pending behind.
            self.fail("Interrupted by caster")
            raise
        except Exception as e:
            self.fail(describe_fault(e))
            raise
        self.succeed(success)
        return out
