from __future__ import annotations

import logging
import secrets
from typing import Callable, Optional

from spellvault.crypto.sig import address_from_pubkey, load_private_key, public_key_hex, sign_ed25519
from spellvault.runtime.errors import UserRejected
from spellvault.runtime.event_log import log_event

_log = logging.getLogger("spellvault.wallet")

Approver = Callable[[str], bool]


class LocalWallet:
    """Ed25519 wallet holding its key in process memory.

    approver, when set, is asked before every signature; returning False is
    the local equivalent of the holder dismissing the wallet prompt.
    """

    def __init__(
        self,
        *,
        privkey: str,
        chain_id: int,
        connected: bool = True,
        approver: Optional[Approver] = None,
    ) -> None:
        self._key = load_private_key(privkey)
        self.pubkey = public_key_hex(self._key)
        self._address = address_from_pubkey(self.pubkey)
        self._chain_id = int(chain_id)
        self._connected = bool(connected)
        self.approver = approver
        self.sign_count = 0

    @classmethod
    def generate(cls, *, chain_id: int, approver: Optional[Approver] = None) -> "LocalWallet":
        return cls(privkey=secrets.token_hex(32), chain_id=chain_id, approver=approver)

    @property
    def address(self) -> Optional[str]:
        return self._address if self._connected else None

    @property
    def chain_id(self) -> int:
        return self._chain_id

    @property
    def is_connected(self) -> bool:
        return self._connected

    def connect(self) -> None:
        self._connected = True

    def disconnect(self) -> None:
        self._connected = False

    async def sign(self, message: str) -> str:
        if not self._connected:
            raise UserRejected("wallet is not connected")
        if self.approver is not None and not self.approver(message):
            log_event(_log, "sign_rejected", address=self._address)
            raise UserRejected("user rejected signature request")
        self.sign_count += 1
        return sign_ed25519(message=str(message).encode("utf-8"), key=self._key)
