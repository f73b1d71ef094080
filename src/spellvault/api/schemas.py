from __future__ import annotations

"""Pydantic request schemas for the public API.

These exist only for HTTP input validation. The persisted record shape is
defined in spellvault.ledger.types.
"""

from typing import Union

from pydantic import BaseModel, Field


class CreateRecordRequest(BaseModel):
    category: str = Field(..., min_length=1, description="Record category, e.g. Fireball")
    declared_cost: Union[int, float] = Field(..., description="Value to encode; finite and non-zero")

    # Form fields the ledger does not persist (e.g. description) are ignored.
    model_config = {"extra": "ignore"}
