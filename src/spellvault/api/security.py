from __future__ import annotations

import os
from typing import Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

_DEFAULT_MAX_BYTES = 64_000

# Paths whose bodies are never inspected.
_EXEMPT_PREFIXES: Tuple[str, ...] = ("/docs", "/openapi.json", "/v1/health")


def _max_bytes_from_env() -> Optional[int]:
    """None disables the limit."""
    if (os.environ.get("SPELLVAULT_SIZE_LIMIT_DISABLE") or "").strip().lower() in {"1", "true", "yes", "on"}:
        return None
    raw = (os.environ.get("SPELLVAULT_MAX_REQUEST_BYTES") or "").strip()
    try:
        return int(raw) if raw else _DEFAULT_MAX_BYTES
    except ValueError:
        return _DEFAULT_MAX_BYTES


def _too_large(limit: int) -> JSONResponse:
    return JSONResponse(
        status_code=413,
        content={
            "ok": False,
            "error": {"code": "request_too_large", "message": "Request body too large", "details": {"max_bytes": limit}},
        },
    )


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Rejects oversized record payloads with 413 before they reach a route.

    Checks Content-Length first, then the buffered body of POST requests
    (covers chunked uploads without a length header).

      SPELLVAULT_MAX_REQUEST_BYTES  (default 64000)
      SPELLVAULT_SIZE_LIMIT_DISABLE=1
    """

    def __init__(self, app, *, max_bytes: Optional[int] = None) -> None:
        super().__init__(app)
        self._max_bytes = int(max_bytes) if max_bytes is not None else _max_bytes_from_env()

    async def dispatch(self, request: Request, call_next):
        limit = self._max_bytes
        if limit is None or request.url.path.startswith(_EXEMPT_PREFIXES):
            return await call_next(request)

        declared = request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > limit:
            return _too_large(limit)

        if request.method.upper() == "POST" and len(await request.body()) > limit:
            return _too_large(limit)

        return await call_next(request)
