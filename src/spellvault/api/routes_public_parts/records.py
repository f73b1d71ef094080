from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request

from spellvault.api.errors import ApiError
from spellvault.api.routes_public_parts.common import Json, _client, _str_param
from spellvault.api.schemas import CreateRecordRequest
from spellvault.ledger.sync import FACET_ALL
from spellvault.ledger.types import Record

router = APIRouter()


def _record_view(request: Request, rec: Record) -> Json:
    out = rec.to_dict()
    out["can_transition"] = _client(request).can_transition(rec)
    return out


@router.get("/records")
async def records_list(request: Request, q: Optional[str] = None, status: Optional[str] = None) -> Json:
    """Refresh from the ledger, then filter.

    q matches category or author (case-insensitive substring).
    status is "all" (default) or Prepared / Cast / Failed.
    Counts always cover the unfiltered set.
    """
    cl = _client(request)
    await cl.refresh()
    facet = _str_param(status, FACET_ALL) or FACET_ALL
    try:
        items = cl.records(_str_param(q), facet)
    except ValueError as e:
        raise ApiError.bad_request("invalid_status", str(e), {"status": facet}) from e
    return {
        "ok": True,
        "items": [_record_view(request, r) for r in items],
        "counts": cl.stats(),
    }


@router.get("/records/{record_id}")
async def record_get(request: Request, record_id: str) -> Json:
    rec = await _client(request).store.read_record(record_id)
    return {"ok": True, "record": _record_view(request, rec)}


@router.post("/records")
async def record_create(request: Request, body: CreateRecordRequest) -> Json:
    rec = await _client(request).create_record(body.category, body.declared_cost)
    return {"ok": True, "record": _record_view(request, rec)}


@router.post("/records/{record_id}/cast")
async def record_cast(request: Request, record_id: str) -> Json:
    rec = await _client(request).cast(record_id)
    return {"ok": True, "record": _record_view(request, rec)}


@router.post("/records/{record_id}/fail")
async def record_fail(request: Request, record_id: str) -> Json:
    rec = await _client(request).fail(record_id)
    return {"ok": True, "record": _record_view(request, rec)}


@router.post("/records/{record_id}/reveal")
async def record_reveal(request: Request, record_id: str) -> Json:
    """Signature-gated reveal. The value is returned, never stored server-side."""
    value = await _client(request).reveal(record_id)
    return {"ok": True, "record_id": record_id, "value": value}
