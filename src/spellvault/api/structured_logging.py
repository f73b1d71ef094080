# src/spellvault/api/structured_logging.py
from __future__ import annotations

import logging
import os
import sys
import time
import uuid
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from spellvault.runtime.event_log import log_event

_CONFIGURED_ATTR = "_spellvault_configured"


def configure_structured_logging(level_name: Optional[str] = None) -> None:
    """Send JSONL events to stdout at the configured level.

    log_event() already renders each message as one JSON object, so the
    handler prints the message verbatim. Calling again only updates the level.
    """
    name = (level_name or os.environ.get("SPELLVAULT_LOG_LEVEL") or "INFO").strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    if getattr(root, _CONFIGURED_ATTR, False):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.handlers = [handler]
    setattr(root, _CONFIGURED_ATTR, True)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Emits one http_request event per request and echoes x-request-id.

    SPELLVAULT_LOG_REQUESTS=0 turns the events off.
    """

    def __init__(self, app) -> None:
        super().__init__(app)
        raw = (os.environ.get("SPELLVAULT_LOG_REQUESTS") or "1").strip().lower()
        self._enabled = raw not in {"0", "false", "no", "n", "off"}
        self._logger = logging.getLogger("spellvault.http")

    async def dispatch(self, request: Request, call_next):
        if not self._enabled:
            return await call_next(request)

        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.monotonic()

        def _done(status: int, error: Optional[str] = None) -> None:
            log_event(
                self._logger,
                "http_request",
                level=logging.WARNING if status >= 500 else logging.INFO,
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                status=status,
                duration_ms=int((time.monotonic() - started) * 1000),
                error=error,
            )

        try:
            response = await call_next(request)
        except Exception as e:
            _done(500, str(e))
            raise

        _done(int(response.status_code))
        response.headers.setdefault("x-request-id", request_id)
        return response
