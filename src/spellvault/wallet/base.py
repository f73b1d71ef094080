from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class Wallet(Protocol):
    """Wallet boundary used by the ledger client.

    sign() raises UserRejected (or an exception whose message says the user
    rejected the request) when the holder dismisses the prompt.
    """

    @property
    def address(self) -> Optional[str]: ...

    @property
    def chain_id(self) -> int: ...

    @property
    def is_connected(self) -> bool: ...

    async def sign(self, message: str) -> str: ...
