from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from spellvault.runtime.errors import LedgerFault


@dataclass(eq=False)
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def not_found(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(404, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})


# LedgerFault.code -> HTTP status
_FAULT_STATUS = {
    "not_found": 404,
    "precondition_failed": 409,
    "user_rejected": 400,
    "parse_failed": 502,
    "write_failed": 502,
    "wallet_error": 502,
    "timeout": 504,
}


def from_fault(fault: LedgerFault) -> ApiError:
    details = fault.details if isinstance(fault.details, dict) else ({} if fault.details is None else {"info": fault.details})
    return ApiError(_FAULT_STATUS.get(fault.code, 500), fault.code, fault.reason, details)


def error_response(err: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=err.status_code,
        content={"ok": False, "error": {"code": err.code, "message": err.message, "details": err.details}},
    )


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(_request: Request, exc: ApiError) -> JSONResponse:
        return error_response(exc)

    @app.exception_handler(LedgerFault)
    async def _ledger_fault(_request: Request, exc: LedgerFault) -> JSONResponse:
        return error_response(from_fault(exc))

    @app.exception_handler(ValueError)
    async def _value_error(_request: Request, exc: ValueError) -> JSONResponse:
        return error_response(ApiError.bad_request("invalid_request", str(exc)))
