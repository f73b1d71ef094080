from __future__ import annotations

from fastapi import APIRouter, Request

from spellvault.api.routes_public_parts.common import Json, _client

router = APIRouter()


@router.get("/session")
async def session_get(request: Request) -> Json:
    """Reveal session parameters and the exact challenge text the wallet signs."""
    sess = await _client(request).start()
    out = sess.to_dict()
    out["challenge"] = sess.challenge()
    return {"ok": True, "session": out}
