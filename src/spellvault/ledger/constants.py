# src/spellvault/ledger/constants.py
from __future__ import annotations

"""Persisted layout and protocol constants.

Changing any of these changes what other clients read from the ledger.
"""

# Single well-known key holding the JSON list of record ids.
DIRECTORY_KEY: str = "directory"

# Record blobs live at RECORD_KEY_PREFIX + record id.
RECORD_KEY_PREFIX: str = "record_"

# Record ids: "<prefix>-<unix_ms>-<suffix>", suffix drawn from base36.
RECORD_ID_PREFIX: str = "rec"
RECORD_ID_SUFFIX_LEN: int = 4

# Scheme marker prepended by the value codec.
CODEC_TAG: str = "FHE-"

# Reveal challenge: random hex digits after "0x" in the session public key.
SESSION_PUBLIC_KEY_HEX_LEN: int = 2000
DEFAULT_SESSION_DURATION_DAYS: int = 30

# Categories offered by the caster create form. Not enforced on read.
KNOWN_CATEGORIES = ("Fireball", "Healing", "Invisibility", "Telekinesis", "Divination")


def record_key(record_id: str) -> str:
    return f"{RECORD_KEY_PREFIX}{record_id}"
