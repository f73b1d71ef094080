from __future__ import annotations

from dataclasses import replace
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from spellvault.api.app import create_app
from spellvault.ledger.backend import InMemoryLedger
from spellvault.ledger.client import LedgerClient
from spellvault.runtime.config import default_client_config
from spellvault.testing.wallets import deterministic_wallet


def _ledger_client(led: InMemoryLedger | None = None, label: str = "alice") -> LedgerClient:
    cfg = replace(default_client_config(), mode="test", reveal_settle_ms=0)
    return LedgerClient(backend=led or InMemoryLedger(), wallet=deterministic_wallet(label=label), config=cfg)


@pytest.fixture
def api():
    cl = _ledger_client()
    with TestClient(create_app(client=cl)) as c:
        yield SimpleNamespace(http=c, client=cl)


def test_health_and_session(api) -> None:
    r = api.http.get("/v1/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True
    assert r.json()["available"] is True

    s = api.http.get("/v1/session").json()["session"]
    assert s["store_address"] == r.json()["store_address"]
    assert s["challenge"].startswith("publickey:0x")
    assert s["challenge"].endswith("durationDays:30")


def test_create_list_reveal(api) -> None:
    r = api.http.post("/v1/records", json={"category": "Fireball", "declared_cost": 42, "description": "ignored"})
    assert r.status_code == 200
    rec = r.json()["record"]
    assert rec["status"] == "Prepared"
    assert rec["encodedValue"] == "FHE-NDI="
    assert rec["can_transition"] is True

    j = api.http.get("/v1/records", params={"q": "fire", "status": "Prepared"}).json()
    assert [x["id"] for x in j["items"]] == [rec["id"]]
    assert j["counts"]["total"] == 1

    r = api.http.post(f"/v1/records/{rec['id']}/reveal")
    assert r.status_code == 200
    assert r.json()["value"] == 42

    banner = api.http.get("/v1/banner").json()["banner"]
    assert banner["state"] == "success"


def test_transitions_and_conflicts(api) -> None:
    rid = api.http.post("/v1/records", json={"category": "Healing", "declared_cost": 1.5}).json()["record"]["id"]

    r = api.http.post(f"/v1/records/{rid}/fail")
    assert r.status_code == 200
    assert r.json()["record"]["status"] == "Failed"
    assert r.json()["record"]["can_transition"] is False

    r = api.http.post(f"/v1/records/{rid}/cast")
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "precondition_failed"


def test_missing_record_is_404(api) -> None:
    r = api.http.get("/v1/records/rec-nope")
    assert r.status_code == 404
    assert r.json()["ok"] is False
    assert r.json()["error"]["code"] == "not_found"


def test_bad_inputs(api) -> None:
    r = api.http.get("/v1/records", params={"status": "Exploded"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "invalid_status"

    r = api.http.post("/v1/records", json={"category": "Fireball", "declared_cost": 0})
    assert r.status_code == 409

    r = api.http.post("/v1/records", json={"category": "", "declared_cost": 3})
    assert r.status_code == 422


def test_rejected_reveal_is_400(api) -> None:
    rid = api.http.post("/v1/records", json={"category": "Divination", "declared_cost": 8}).json()["record"]["id"]
    api.client.wallet.approver = lambda _m: False
    r = api.http.post(f"/v1/records/{rid}/reveal")
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "user_rejected"
    assert api.http.get("/v1/banner").json()["banner"]["message"] == "Interrupted by caster"


def test_request_size_limit_returns_413(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPELLVAULT_MAX_REQUEST_BYTES", "128")
    c = TestClient(create_app(client=_ledger_client()))
    r = c.post("/v1/records", json={"category": "Fireball", "declared_cost": 1, "pad": "x" * 500})
    assert r.status_code == 413
    assert r.json()["error"]["code"] == "request_too_large"


def test_metrics_gated_by_env(monkeypatch: pytest.MonkeyPatch) -> None:
    c = TestClient(create_app(client=_ledger_client()))
    assert c.get("/v1/metrics").status_code == 404

    monkeypatch.setenv("SPELLVAULT_METRICS_ENABLED", "1")
    c.post("/v1/records", json={"category": "Fireball", "declared_cost": 2})
    r = c.get("/v1/metrics")
    assert r.status_code == 200
    assert "spellvault_records_created 1" in r.text
    assert c.get("/v1/metrics", params={"format": "json"}).json()["metrics"]["counters"]["records_created"] == 1


def test_boot_runtime_false_has_no_client() -> None:
    app = create_app(boot_runtime=False)
    assert app.state.client is None
    with TestClient(app) as c:
        r = c.get("/v1/records")
        assert r.status_code == 503
        assert r.json()["error"]["code"] == "not_ready"


def test_boot_runtime_true_uses_builder(monkeypatch: pytest.MonkeyPatch) -> None:
    from spellvault.api import app as api_app

    built = _ledger_client(label="boot")
    monkeypatch.setattr(api_app, "build_client", lambda: built)
    app = api_app.create_app(boot_runtime=True)
    assert app.state.client is built
    with TestClient(app) as c:
        assert c.get("/v1/health").status_code == 200
    assert built.session is not None


def test_wildcard_cors_rejected_in_prod(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SPELLVAULT_MODE", "prod")
    monkeypatch.setenv("SPELLVAULT_CORS_ORIGINS", "*")
    with pytest.raises(RuntimeError):
        create_app(client=_ledger_client())
