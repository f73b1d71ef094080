from __future__ import annotations

from fastapi import APIRouter, Request, Response

from spellvault.api.routes_public_parts.common import Json, _client, _str_param
from spellvault.runtime.metrics import format_prometheus, metrics_enabled, snapshot

router = APIRouter()


@router.get("/health")
async def health(request: Request) -> Json:
    """Liveness plus ledger reachability.

    Always 200 while the process serves requests; "available" reports whether
    the backing ledger answers.
    """
    cl = _client(request)
    return {
        "ok": True,
        "available": bool(await cl.backend.is_available()),
        "store_address": await cl.backend.get_address(),
    }


@router.get("/banner")
def banner(request: Request) -> Json:
    """Current status banner (Idle / Pending / Success / Error)."""
    return {"ok": True, "banner": _client(request).banner.current().to_dict()}


@router.get("/metrics", response_model=None)
def metrics(format: str = "prometheus") -> Response | Json:
    """Client counters. 404 unless SPELLVAULT_METRICS_ENABLED=1.

    ?format=json returns the raw snapshot instead of Prometheus text.
    """
    if not metrics_enabled():
        return Response(status_code=404, content="not_found\n", media_type="text/plain")
    if _str_param(format).strip().lower() == "json":
        return {"ok": True, "metrics": snapshot()}
    return Response(content=format_prometheus(), media_type="text/plain")
