# src/spellvault/ledger/value_codec.py
from __future__ import annotations

"""Reversible value encoding for record values.

NOT CONFIDENTIAL. The encoding is base64 of the decimal text behind a scheme
tag; anyone can invert it without a secret. It stands in for a homomorphic
scheme and only guarantees a stable, lossless serialization.

    encode(42)        -> "FHE-NDI="
    decode("FHE-NDI=") -> 42
    decode("42")       -> 42      (untagged legacy values)
"""

import base64
import binascii
import math
import re
from typing import Union

from spellvault.ledger.constants import CODEC_TAG

Number = Union[int, float]

_INT_RE = re.compile(r"^[+-]?\d+$")


def _render(value: Number) -> str:
    # bool is an int subclass; disallow it explicitly
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"value must be int or float (got {type(value).__name__})")
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"value must be finite (got {value!r})")
        # repr() is the shortest text that round-trips exactly.
        return repr(value)
    return str(int(value))


def _parse(text: str) -> Number:
    s = str(text).strip()
    if not s:
        raise ValueError("empty encoded value")
    if _INT_RE.match(s):
        return int(s)
    try:
        out = float(s)
    except ValueError as e:
        raise ValueError(f"not a decimal number: {s!r}") from e
    if not math.isfinite(out):
        raise ValueError(f"decoded value is not finite: {s!r}")
    return out


def encode(value: Number) -> str:
    text = _render(value)
    return CODEC_TAG + base64.b64encode(text.encode("ascii")).decode("ascii")


def decode(text: str) -> Number:
    """Invert encode(). Untagged input is parsed as plain decimal text."""
    if not isinstance(text, str):
        raise ValueError(f"encoded value must be str (got {type(text).__name__})")
    if text.startswith(CODEC_TAG):
        body = text[len(CODEC_TAG):]
        try:
            raw = base64.b64decode(body.encode("ascii"), validate=True).decode("ascii")
        except (binascii.Error, UnicodeError) as e:
            raise ValueError("encoded value is not valid base64 text") from e
        return _parse(raw)
    return _parse(text)
