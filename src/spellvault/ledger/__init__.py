# src/spellvault/ledger/__init__.py
"""
SpellVault: record ledger package

Records carry an encoded numeric value and a lifecycle status; a shared
directory key lists every record id. Modules:
  - value_codec: reversible (non-confidential) value encoding
  - types: Record / Status and the wire JSON shape
  - backend, sqlite_backend: single-key stores the ledger runs on
  - records: per-record read/write
  - directory: the id index (plain read-modify-write, or CAS)
  - lifecycle: Prepared -> Cast | Failed guard
  - session, reveal: the signature-gated reveal ceremony
  - sync: batch load, sort, filter, stats
  - client: orchestration used by the API and CLI
"""
