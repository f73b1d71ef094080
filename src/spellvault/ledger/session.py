from __future__ import annotations

import secrets
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from spellvault.ledger.backend import LedgerBackend
from spellvault.ledger.constants import DEFAULT_SESSION_DURATION_DAYS, SESSION_PUBLIC_KEY_HEX_LEN
from spellvault.wallet.base import Wallet

_SECONDS_PER_DAY = 86_400


def generate_public_key() -> str:
    return "0x" + secrets.token_hex(SESSION_PUBLIC_KEY_HEX_LEN // 2)


@dataclass(frozen=True)
class SessionParams:
    """Process-scoped reveal parameters. Created once at startup, read-only after."""

    public_key: str
    store_address: str
    chain_id: int
    start_timestamp: int
    duration_days: int = DEFAULT_SESSION_DURATION_DAYS

    @property
    def expires_at(self) -> int:
        return int(self.start_timestamp) + int(self.duration_days) * _SECONDS_PER_DAY

    def is_expired(self, now: Optional[int] = None) -> bool:
        t = int(time.time()) if now is None else int(now)
        return t >= self.expires_at

    def challenge(self) -> str:
        """The exact text the wallet is asked to sign.

        Field order and labels are fixed; wallets show this text verbatim.
        """
        return (
            f"publickey:{self.public_key}\n"
            f"contractAddresses:{self.store_address}\n"
            f"contractsChainId:{int(self.chain_id)}\n"
            f"startTimestamp:{int(self.start_timestamp)}\n"
            f"durationDays:{int(self.duration_days)}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "public_key": self.public_key,
            "store_address": self.store_address,
            "chain_id": int(self.chain_id),
            "start_timestamp": int(self.start_timestamp),
            "duration_days": int(self.duration_days),
            "expires_at": self.expires_at,
        }


async def open_session(
    backend: LedgerBackend,
    wallet: Wallet,
    *,
    duration_days: int = DEFAULT_SESSION_DURATION_DAYS,
    now: Optional[int] = None,
) -> SessionParams:
    # A disconnected wallet still yields a session; chain id is then 0.
    chain_id = int(wallet.chain_id) if wallet.is_connected else 0
    return SessionParams(
        public_key=generate_public_key(),
        store_address=await backend.get_address(),
        chain_id=chain_id,
        start_timestamp=int(time.time()) if now is None else int(now),
        duration_days=int(duration_days),
    )
