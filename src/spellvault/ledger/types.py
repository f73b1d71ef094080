"""spellvault.ledger.types

Record object model + wire (de)serialization.

Wire shape of a record blob (key "record_<id>"):

    {
      "encodedValue": "FHE-NDI=",
      "createdAt": 1700000000,
      "author": "0xabc...",
      "category": "Fireball",
      "declaredCost": 42,
      "status": "Prepared"
    }

The id is not part of the blob; it is the key suffix.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Union

Json = Dict[str, Any]
Number = Union[int, float]


class Status(str, Enum):
    PREPARED = "Prepared"
    CAST = "Cast"
    FAILED = "Failed"

    @property
    def terminal(self) -> bool:
        return self is not Status.PREPARED

    @classmethod
    def parse(cls, v: Any) -> "Status":
        """Case-insensitive parse; older writers stored lowercase values."""
        if isinstance(v, Status):
            return v
        s = str(v or "").strip().lower()
        for st in cls:
            if st.value.lower() == s:
                return st
        raise ValueError(f"unknown status: {v!r}")


def _coerce_int(v: Any, *, field: str) -> int:
    # bool is an int subclass; disallow it explicitly
    if isinstance(v, bool):
        raise ValueError(f"record schema error: field '{field}' must be int (got bool)")
    try:
        return int(v)
    except Exception as e:
        raise ValueError(f"record schema error: field '{field}' must be int-coercible (got {type(v).__name__})") from e


def _coerce_number(v: Any, *, field: str) -> Number:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise ValueError(f"record schema error: field '{field}' must be a number (got {type(v).__name__})")
    if isinstance(v, float) and not math.isfinite(v):
        raise ValueError(f"record schema error: field '{field}' must be finite")
    return v


def _require_str(v: Any, *, field: str) -> str:
    if not isinstance(v, str):
        raise ValueError(f"record schema error: field '{field}' must be str (got {type(v).__name__})")
    return v


@dataclass(frozen=True)
class Record:
    id: str
    encoded_value: str
    created_at: int
    author: str
    category: str
    declared_cost: Number
    status: Status = Status.PREPARED

    def to_wire(self) -> Json:
        return {
            "encodedValue": self.encoded_value,
            "createdAt": int(self.created_at),
            "author": self.author,
            "category": self.category,
            "declaredCost": self.declared_cost,
            "status": self.status.value,
        }

    def to_dict(self) -> Json:
        """Wire fields plus the id (API / CLI output)."""
        out: Json = {"id": self.id}
        out.update(self.to_wire())
        return out

    @classmethod
    def from_wire(cls, record_id: str, d: Any) -> "Record":
        if not isinstance(d, dict):
            raise ValueError(f"record schema error: expected JSON object (got {type(d).__name__})")
        status_raw = d.get("status")
        return cls(
            id=str(record_id),
            encoded_value=_require_str(d.get("encodedValue"), field="encodedValue"),
            created_at=_coerce_int(d.get("createdAt"), field="createdAt"),
            author=_require_str(d.get("author"), field="author"),
            category=_require_str(d.get("category"), field="category"),
            declared_cost=_coerce_number(d.get("declaredCost"), field="declaredCost"),
            status=Status.PREPARED if status_raw in (None, "") else Status.parse(status_raw),
        )


def canon_json(obj: Any) -> str:
    """Canonical JSON encoding.

    Do not coerce unknown types (e.g. default=str); fail fast instead.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def dumps_wire(obj: Any) -> bytes:
    return canon_json(obj).encode("utf-8")
