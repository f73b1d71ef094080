# src/spellvault/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from spellvault.api.routes_public_parts.health import router as health_router
from spellvault.api.routes_public_parts.records import router as records_router
from spellvault.api.routes_public_parts.session import router as session_router

public_router = APIRouter()

public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(session_router, prefix="/v1", tags=["session"])
public_router.include_router(records_router, prefix="/v1", tags=["records"])
