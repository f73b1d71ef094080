from __future__ import annotations

import base64

import pytest

from spellvault.ledger import value_codec


def test_encode_matches_known_vector() -> None:
    assert value_codec.encode(42) == "FHE-" + base64.b64encode(b"42").decode("ascii")
    assert value_codec.encode(42) == "FHE-NDI="


@pytest.mark.parametrize("v", [0, 1, -7, 42, 10**20, 0.5, -3.25, 1e-9, 123456.789])
def test_decode_inverts_encode(v) -> None:
    out = value_codec.decode(value_codec.encode(v))
    assert out == v
    assert type(out) is type(v)


def test_decode_accepts_untagged_decimal_text() -> None:
    assert value_codec.decode("42") == 42
    assert value_codec.decode(" 2.5 ") == 2.5


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf"), True, "42", None])
def test_encode_rejects_non_finite_and_non_numbers(bad) -> None:
    with pytest.raises(ValueError):
        value_codec.encode(bad)


@pytest.mark.parametrize("bad", ["", "FHE-", "FHE-!!!", "FHE-" + base64.b64encode(b"nan").decode(), "abc", 42])
def test_decode_rejects_garbage(bad) -> None:
    with pytest.raises(ValueError):
        value_codec.decode(bad)
