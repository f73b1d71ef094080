from __future__ import annotations

import asyncio
import logging
from typing import Optional

from spellvault.ledger import value_codec
from spellvault.ledger.session import SessionParams
from spellvault.ledger.types import Number, Record
from spellvault.runtime.deadline import bounded
from spellvault.runtime.errors import (
    LedgerFault,
    ParseFault,
    PreconditionFault,
    UserRejected,
    WalletFault,
    is_user_rejection,
)
from spellvault.runtime.event_log import log_event
from spellvault.runtime.metrics import inc_counter
from spellvault.wallet.base import Wallet

_log = logging.getLogger("spellvault.reveal")


class RevealCeremony:
    """Signature-gated decode of a record's value.

    The signature is a consent gate only: it is never verified, and it is not
    a decryption key. The revealed value is returned to the caller and never
    persisted here. There is no per-record lock; callers that must avoid
    duplicate prompts for one record serialize requests themselves.
    """

    def __init__(
        self,
        *,
        session: SessionParams,
        wallet: Wallet,
        sign_timeout_s: Optional[float] = None,
        settle_delay_s: float = 0.0,
    ) -> None:
        self.session = session
        self._wallet = wallet
        self._sign_timeout_s = sign_timeout_s
        self._settle_delay_s = max(0.0, float(settle_delay_s))

    async def reveal(self, record: Record) -> Number:
        if not self._wallet.is_connected:
            raise PreconditionFault("wallet is not connected", {"record_id": record.id})
        if self.session.is_expired():
            raise PreconditionFault(
                "reveal session has expired",
                {"record_id": record.id, "expires_at": self.session.expires_at},
            )

        message = self.session.challenge()
        try:
            signature = await bounded(self._wallet.sign(message), timeout_s=self._sign_timeout_s, op="sign")
        except LedgerFault:
            inc_counter("reveals_denied")
            raise
        except Exception as e:
            inc_counter("reveals_denied")
            if is_user_rejection(e):
                raise UserRejected(str(e), {"record_id": record.id}) from e
            raise WalletFault(str(e) or type(e).__name__, {"record_id": record.id}) from e

        if self._settle_delay_s:
            await asyncio.sleep(self._settle_delay_s)

        try:
            value = value_codec.decode(record.encoded_value)
        except ValueError as e:
            raise ParseFault(f"record {record.id} has an undecodable value", {"record_id": record.id}) from e

        inc_counter("reveals")
        log_event(_log, "record_revealed", record_id=record.id, signature_len=len(str(signature or "")))
        return value
