from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class LedgerFault(Exception):
    """Canonical error type for ledger, store and wallet failures.

    No fault is fatal to the process: every operation that raises one can be
    retried by calling it again.
    """

    code: str
    reason: str
    details: Any | None = None

    @property
    def recoverable(self) -> bool:
        return True

    def __str__(self) -> str:
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class NotFound(LedgerFault):
    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("not_found", reason, details)


class ParseFault(LedgerFault):
    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("parse_failed", reason, details)


class WriteFault(LedgerFault):
    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("write_failed", reason, details)


class UserRejected(LedgerFault):
    """The wallet holder declined to sign or send."""

    def __init__(self, reason: str = "user rejected request", details: Any | None = None) -> None:
        super().__init__("user_rejected", reason, details)


class PreconditionFault(LedgerFault):
    """Rejected before any network call (bad transition, disconnected wallet, bad input)."""

    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("precondition_failed", reason, details)


class WalletFault(LedgerFault):
    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("wallet_error", reason, details)


class LedgerTimeout(LedgerFault):
    """A bounded call ran past its deadline.

    On a write the outcome is unknown: the caller stopped waiting, which does
    not prove the store did not apply it. Re-read before retrying.
    """

    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("timeout", reason, details)


_REJECTION_MARKERS = (
    "user rejected",
    "user denied",
    "user cancelled",
    "user canceled",
)


def is_user_rejection(exc: BaseException) -> bool:
    """True when exc means the user dismissed a wallet prompt.

    Foreign wallet layers report this only through their message text.
    """
    if isinstance(exc, UserRejected):
        return True
    msg = str(exc or "").strip().lower()
    return any(m in msg for m in _REJECTION_MARKERS)
