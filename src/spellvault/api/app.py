from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from spellvault.api.errors import install_error_handlers
from spellvault.api.routes_public import public_router
from spellvault.api.security import RequestSizeLimitMiddleware
from spellvault.api.structured_logging import RequestLogMiddleware
from spellvault.ledger.client import LedgerClient
from spellvault.runtime.client_boot import build_client as _build_client


def build_client() -> LedgerClient:
    """Build the LedgerClient for API runtime.

    Kept as a module-level wrapper so tests can monkeypatch
    `spellvault.api.app.build_client`.
    """
    return _build_client()


def _parse_cors_origins() -> List[str]:
    """Parse CORS origins.

    Policy:
      - SPELLVAULT_CORS_ORIGINS unset/empty -> CORS disabled
      - wildcard "*" is rejected in SPELLVAULT_MODE=prod
    """
    raw = os.environ.get("SPELLVAULT_CORS_ORIGINS", "").strip()
    mode = os.environ.get("SPELLVAULT_MODE", "prod").strip().lower()

    if not raw:
        return []

    origins = [o.strip() for o in raw.split(",") if o.strip()]

    if "*" in origins:
        if mode == "prod":
            raise RuntimeError(
                "Unsafe CORS configuration: wildcard '*' not allowed in production. "
                "Set explicit origins in SPELLVAULT_CORS_ORIGINS."
            )
        return ["*"]

    return origins


def create_app(*, client: Optional[LedgerClient] = None, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    client:
      - given: attached as-is (tests pass an in-memory client)
      - None and boot_runtime=True: built from SPELLVAULT_* config
      - None and boot_runtime=False: no client; record routes answer 503
    """
    mode = os.environ.get("SPELLVAULT_MODE", "prod").strip().lower()

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        cl = getattr(app.state, "client", None)
        if cl is not None:
            await cl.start()
            await cl.refresh()
        yield

    if mode == "prod":
        app = FastAPI(title="SpellVault API", docs_url=None, redoc_url=None, openapi_url=None, lifespan=_lifespan)
    else:
        app = FastAPI(title="SpellVault API", lifespan=_lifespan)

    if client is not None:
        app.state.client = client
    elif boot_runtime:
        app.state.client = build_client()
    else:
        app.state.client = None

    # --- Middleware ---
    app.add_middleware(RequestSizeLimitMiddleware)
    app.add_middleware(RequestLogMiddleware)

    cors_origins = _parse_cors_origins()
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type"],
        )

    install_error_handlers(app)
    app.include_router(public_router)

    return app
