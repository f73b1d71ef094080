# src/spellvault/runtime/config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


def _as_bool(v: Any, default: bool) -> bool:
    if v is None:
        return bool(default)
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    return bool(default)


@dataclass(frozen=True)
class ClientConfig:
    mode: str  # "dev" | "test" | "prod"

    # SQLite file backing the durable ledger.
    db_path: str

    # Bound on every ledger and wallet call; 0 disables.
    op_timeout_ms: int

    reveal_settle_ms: int
    session_duration_days: int

    directory_cas: bool
    directory_cas_retries: int

    banner_success_ms: int
    banner_error_ms: int

    chain_id: int
    # Hex seed for the local wallet; None -> random key per process.
    wallet_seed: Optional[str]

    api_host: str
    api_port: int

    log_level: str

    @property
    def op_timeout_s(self) -> Optional[float]:
        return self.op_timeout_ms / 1000.0 if self.op_timeout_ms > 0 else None

    @property
    def sqlite_lock_wait_ms(self) -> Optional[int]:
        """SQLite lock budget, half the op timeout; None -> backend default.

        A write thread must give up before the caller's timeout fires, or a
        write reported as timed out could still commit afterwards.
        """
        return max(2, self.op_timeout_ms // 2) if self.op_timeout_ms > 0 else None


_ALLOWED_MODES = {"dev", "test", "prod"}

# field name -> env var
_ENV_KEYS = {
    "mode": "SPELLVAULT_MODE",
    "db_path": "SPELLVAULT_DB_PATH",
    "op_timeout_ms": "SPELLVAULT_OP_TIMEOUT_MS",
    "reveal_settle_ms": "SPELLVAULT_REVEAL_SETTLE_MS",
    "session_duration_days": "SPELLVAULT_SESSION_DAYS",
    "directory_cas": "SPELLVAULT_DIRECTORY_CAS",
    "directory_cas_retries": "SPELLVAULT_DIRECTORY_CAS_RETRIES",
    "banner_success_ms": "SPELLVAULT_BANNER_SUCCESS_MS",
    "banner_error_ms": "SPELLVAULT_BANNER_ERROR_MS",
    "chain_id": "SPELLVAULT_CHAIN_ID",
    "wallet_seed": "SPELLVAULT_WALLET_SEED",
    "api_host": "SPELLVAULT_API_HOST",
    "api_port": "SPELLVAULT_API_PORT",
    "log_level": "SPELLVAULT_LOG_LEVEL",
}


def validate_client_config(cfg: ClientConfig) -> None:
    """Fail-fast validation; a misconfigured client must not start."""
    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    if not isinstance(cfg.db_path, str) or not cfg.db_path.strip():
        raise ValueError("db_path must be a non-empty string")

    for name in ("op_timeout_ms", "reveal_settle_ms", "banner_success_ms", "banner_error_ms"):
        if int(getattr(cfg, name)) < 0:
            raise ValueError(f"{name} must be >= 0; got: {getattr(cfg, name)}")

    if int(cfg.session_duration_days) <= 0:
        raise ValueError(f"session_duration_days must be > 0; got: {cfg.session_duration_days}")

    if int(cfg.directory_cas_retries) <= 0:
        raise ValueError(f"directory_cas_retries must be > 0; got: {cfg.directory_cas_retries}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    if cfg.wallet_seed is not None:
        try:
            seed = bytes.fromhex(cfg.wallet_seed.strip().removeprefix("0x"))
        except ValueError as e:
            raise ValueError("wallet_seed must be hex") from e
        if len(seed) != 32:
            raise ValueError("wallet_seed must be 32 bytes (64 hex chars)")


def default_client_config() -> ClientConfig:
    return ClientConfig(
        mode="prod",
        db_path="./data/spellvault.db",
        op_timeout_ms=30_000,
        reveal_settle_ms=1_500,
        session_duration_days=30,
        directory_cas=False,
        directory_cas_retries=8,
        banner_success_ms=2_000,
        banner_error_ms=3_000,
        chain_id=31337,
        wallet_seed=None,
        api_host="127.0.0.1",
        api_port=8080,
        log_level="INFO",
    )


def _merge(base: ClientConfig, raw: Json) -> ClientConfig:
    updates: Json = {}
    for f in fields(ClientConfig):
        if f.name not in raw:
            continue
        v = raw[f.name]
        cur = getattr(base, f.name)
        if f.name == "wallet_seed":
            updates[f.name] = (str(v).strip() or None) if v is not None else None
        elif isinstance(cur, bool):
            updates[f.name] = _as_bool(v, cur)
        elif isinstance(cur, int):
            updates[f.name] = _as_int(v, cur)
        else:
            updates[f.name] = _as_str(v, cur)
    return replace(base, **updates)


def read_client_config_file(path: str) -> Json:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("client config must be a JSON object")
    return raw


def load_client_config(*, config_path: Optional[str] = None) -> ClientConfig:
    """defaults -> JSON file (SPELLVAULT_CONFIG_PATH) -> SPELLVAULT_* env."""
    cfg = default_client_config()

    p = config_path or os.environ.get("SPELLVAULT_CONFIG_PATH")
    if p:
        cfg = _merge(cfg, read_client_config_file(p))

    env_raw: Json = {}
    for name, env_key in _ENV_KEYS.items():
        v = os.environ.get(env_key)
        if v is not None and v.strip():
            env_raw[name] = v
    cfg = _merge(cfg, env_raw)

    cfg = replace(cfg, mode=cfg.mode.strip().lower())
    validate_client_config(cfg)
    return cfg
