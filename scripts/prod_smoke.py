#!/usr/bin/env python3

"""Production-ish smoke test for SpellVault.

It verifies:
  - the client boots on a fresh SQLite db
  - the FastAPI app serves /v1/health and /v1/session
  - a record can be created, listed and revealed through the API
  - a second client on the same db file sees the record

Usage:
  python3 scripts/prod_smoke.py

Optional env overrides:
  SPELLVAULT_DIRECTORY_CAS=1
  SPELLVAULT_REVEAL_SETTLE_MS=0
"""

from __future__ import annotations

import asyncio
import os
import tempfile

from fastapi.testclient import TestClient

from spellvault.api.app import create_app
from spellvault.runtime.client_boot import build_client


def main() -> int:
    with tempfile.TemporaryDirectory(prefix="spellvault-smoke-") as td:
        os.environ["SPELLVAULT_DB_PATH"] = os.path.join(td, "spellvault.db")
        os.environ.setdefault("SPELLVAULT_MODE", "dev")
        os.environ.setdefault("SPELLVAULT_REVEAL_SETTLE_MS", "0")

        app = create_app(boot_runtime=True)
        with TestClient(app) as c:
            r = c.get("/v1/health")
            assert r.status_code == 200, r.text
            assert r.json().get("available") is True, r.text

            r = c.get("/v1/session")
            assert r.status_code == 200, r.text
            assert r.json()["session"]["challenge"].startswith("publickey:"), r.text

            r = c.post("/v1/records", json={"category": "Fireball", "declared_cost": 42})
            assert r.status_code == 200, r.text
            rid = r.json()["record"]["id"]

            r = c.get("/v1/records", params={"q": "fireball"})
            assert [x["id"] for x in r.json()["items"]] == [rid], r.text

            r = c.post(f"/v1/records/{rid}/reveal")
            assert r.status_code == 200 and r.json()["value"] == 42, r.text

        other = build_client()
        seen = asyncio.run(other.refresh())
        if [x.id for x in seen] != [rid]:
            raise RuntimeError(f"second client did not see record {rid}: {[x.id for x in seen]}")

        print("OK: health/session + create/list/reveal + shared db", {"record_id": rid})
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
