from __future__ import annotations

import logging
from typing import Optional

from spellvault.ledger.client import LedgerClient
from spellvault.ledger.sqlite_backend import SqliteLedgerBackend
from spellvault.runtime.config import ClientConfig, load_client_config
from spellvault.runtime.event_log import log_event
from spellvault.wallet.local import LocalWallet

_log = logging.getLogger("spellvault.boot")


def build_wallet(cfg: ClientConfig) -> LocalWallet:
    if cfg.wallet_seed:
        return LocalWallet(privkey=cfg.wallet_seed, chain_id=cfg.chain_id)
    w = LocalWallet.generate(chain_id=cfg.chain_id)
    # Random keys are fine for dev; in prod every restart changes the author address.
    log_event(_log, "wallet_generated", level=logging.WARNING, address=w.address, mode=cfg.mode)
    return w


def build_client(cfg: Optional[ClientConfig] = None) -> LedgerClient:
    """SQLite-backed client with the local wallet, both from config."""
    c = cfg or load_client_config()
    backend = SqliteLedgerBackend.open(c.db_path, lock_wait_ms=c.sqlite_lock_wait_ms)
    client = LedgerClient(backend=backend, wallet=build_wallet(c), config=c)
    log_event(_log, "client_built", db_path=c.db_path, directory_cas=c.directory_cas, mode=c.mode)
    return client
