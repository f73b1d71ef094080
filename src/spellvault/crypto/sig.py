# src/spellvault/crypto/sig.py
from __future__ import annotations

import base64
import hashlib

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat


def decode_bytes(s: str) -> bytes:
    """Decode a hex (optionally 0x-prefixed) or base64/base64url string."""
    s = s.strip()
    if not s:
        raise ValueError("empty string")
    h = s[2:] if s.lower().startswith("0x") else s
    try:
        return bytes.fromhex(h)
    except ValueError:
        pass
    try:
        padding = "=" * (-len(s) % 4)
        s2 = (s + padding).replace("-", "+").replace("_", "/")
        return base64.b64decode(s2, validate=True)
    except Exception as e:
        raise ValueError("not hex or base64") from e


def load_private_key(privkey: str) -> Ed25519PrivateKey:
    """privkey: hex or base64 string of a 32-byte seed (or 64-byte expanded key)."""
    pk_b = decode_bytes(privkey)

    # cryptography expects the 32-byte seed.
    if len(pk_b) == 64:
        pk_b = pk_b[:32]

    if len(pk_b) != 32:
        raise ValueError("ed25519 privkey must be 32-byte seed (or 64-byte expanded key)")

    return Ed25519PrivateKey.from_private_bytes(pk_b)


def public_key_hex(key: Ed25519PrivateKey) -> str:
    return key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw).hex()


def address_from_pubkey(pubkey_hex: str) -> str:
    """Account address: "0x" + last 20 bytes of sha256(pubkey)."""
    digest = hashlib.sha256(decode_bytes(pubkey_hex)).digest()
    return "0x" + digest[-20:].hex()


def sign_ed25519(*, message: bytes, key: Ed25519PrivateKey, encoding: str = "hex") -> str:
    """Sign message; encoding: "hex" (default) or "b64"."""
    sig_b = key.sign(message)
    if encoding == "hex":
        return "0x" + sig_b.hex()
    if encoding in {"b64", "base64"}:
        return base64.b64encode(sig_b).decode("ascii")
    raise ValueError("unsupported encoding")
