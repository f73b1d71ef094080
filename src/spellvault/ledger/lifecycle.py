from __future__ import annotations

"""Record lifecycle: Prepared -> {Cast, Failed}. Both targets are terminal.

The author check is a client-side guard only. The ledger performs no
authorization, so a client that skips this module can still overwrite
another author's record.
"""

from dataclasses import replace
from typing import Optional

from spellvault.ledger.types import Record, Status
from spellvault.runtime.errors import PreconditionFault


def _norm_addr(addr: Optional[str]) -> str:
    return str(addr or "").strip().lower()


def is_author(record: Record, caller: Optional[str]) -> bool:
    c = _norm_addr(caller)
    return bool(c) and c == _norm_addr(record.author)


def can_transition(record: Record, caller: Optional[str]) -> bool:
    return record.status is Status.PREPARED and is_author(record, caller)


def transition(record: Record, target: Status, *, caller: Optional[str]) -> Record:
    target = Status.parse(target)
    if not target.terminal:
        raise PreconditionFault(f"cannot transition to {target.value}", {"record_id": record.id})
    if record.status is not Status.PREPARED:
        raise PreconditionFault(
            f"record {record.id} is already {record.status.value}",
            {"record_id": record.id, "status": record.status.value, "target": target.value},
        )
    if not is_author(record, caller):
        raise PreconditionFault(
            "only the author may transition a record",
            {"record_id": record.id, "author": record.author, "caller": caller or ""},
        )
    return replace(record, status=target)
