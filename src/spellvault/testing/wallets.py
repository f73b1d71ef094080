from __future__ import annotations

import hashlib
from typing import Optional

from spellvault.wallet.local import Approver, LocalWallet


def _sha256(b: bytes) -> bytes:
    return hashlib.sha256(b).digest()


def deterministic_wallet(*, label: str, chain_id: int = 31337, approver: Optional[Approver] = None) -> LocalWallet:
    """Deterministically derive a LocalWallet from a stable label.

    TEST ONLY.
    """
    seed = _sha256(("spellvault-test-ed25519:" + (label or "")).encode("utf-8"))
    return LocalWallet(privkey=seed.hex(), chain_id=chain_id, approver=approver)
