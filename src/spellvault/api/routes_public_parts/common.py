from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from spellvault.api.errors import ApiError
from spellvault.ledger.client import LedgerClient

Json = Dict[str, Any]


def _client(request: Request) -> LedgerClient:
    cl = getattr(request.app.state, "client", None)
    if cl is None:
        raise ApiError(503, "not_ready", "ledger client not attached to app.state", {})
    return cl


def _str_param(v: Any, default: str = "") -> str:
    """Parse a string-ish query param safely."""
    if v is None:
        return str(default)
    return str(v)
