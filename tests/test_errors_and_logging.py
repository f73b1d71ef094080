from __future__ import annotations

import json
import logging

import pytest

from spellvault.api.errors import from_fault
from spellvault.runtime.errors import (
    LedgerFault,
    LedgerTimeout,
    NotFound,
    ParseFault,
    PreconditionFault,
    UserRejected,
    WalletFault,
    WriteFault,
    is_user_rejection,
)
from spellvault.runtime.event_log import log_event


@pytest.mark.parametrize(
    "msg,want",
    [
        ("MetaMask Tx Signature: User denied transaction signature.", True),
        ("User rejected the request.", True),
        ("user cancelled", True),
        ("insufficient funds", False),
        ("", False),
    ],
)
def test_rejection_detection_by_message(msg: str, want: bool) -> None:
    assert is_user_rejection(RuntimeError(msg)) is want


def test_every_fault_is_recoverable_and_typed() -> None:
    faults = [NotFound("x"), ParseFault("x"), WriteFault("x"), UserRejected(), PreconditionFault("x"), WalletFault("x"), LedgerTimeout("x")]
    assert all(isinstance(f, LedgerFault) and f.recoverable for f in faults)
    assert [f.code for f in faults] == [
        "not_found",
        "parse_failed",
        "write_failed",
        "user_rejected",
        "precondition_failed",
        "wallet_error",
        "timeout",
    ]


@pytest.mark.parametrize(
    "fault,status",
    [(NotFound("x"), 404), (PreconditionFault("x"), 409), (UserRejected(), 400), (WriteFault("x"), 502), (LedgerTimeout("x"), 504)],
)
def test_fault_http_status(fault: LedgerFault, status: int) -> None:
    err = from_fault(fault)
    assert err.status_code == status
    assert err.code == fault.code


def test_log_event_is_one_json_line(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("spellvault.test")
    with caplog.at_level(logging.INFO, logger="spellvault.test"):
        log_event(logger, "record_written", record_id="rec-1", version=2)
    payload = json.loads(caplog.records[-1].getMessage())
    assert payload["event"] == "record_written"
    assert payload["record_id"] == "rec-1"
    assert isinstance(payload["ts_ms"], int)
