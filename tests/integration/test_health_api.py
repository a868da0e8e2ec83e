from unittest.mock import MagicMock

def test_health_root(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}

def test_health_dependencies_all_tables_reachable(client, monkeypatch):
    fake = MagicMock()
    monkeypatch.setattr("parkpay.health.router.get_supabase", lambda request: fake)
    r = client.get("/health/dependencies")
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["supabase"]["configured"] is True
    assert all(t["ok"] for t in body["supabase"]["tables"].values())
    assert "events" in body["supabase"]["tables"]
    assert set(body["stripe"]) == {"configured", "webhook_configured"}
    assert "enabled" in body["rate_limit"]

def test_health_dependencies_reports_broken_table(client, monkeypatch):
    fake = MagicMock()

    def _table(name):
        if name == "costing_audit_log":
            raise RuntimeError("relation does not exist")
        return MagicMock()

    fake.table.side_effect = _table
    monkeypatch.setattr("parkpay.health.router.get_supabase", lambda request: fake)
    body = client.get("/health/dependencies").json()
    assert body["ok"] is False
    assert body["supabase"]["tables"]["costing_audit_log"]["ok"] is False
    assert body["supabase"]["tables"]["events"]["ok"] is True

def test_health_dependencies_without_supabase_config(client, monkeypatch):
    def _missing(request):
        raise RuntimeError("SUPABASE_URL manquant")

    monkeypatch.setattr("parkpay.health.router.get_supabase", _missing)
    body = client.get("/health/dependencies").json()
    assert body["ok"] is False
    assert body["supabase"] == {"configured": False, "error": "SUPABASE_URL manquant"}

def test_security_headers_present(client):
    r = client.get("/health")
    assert r.headers.get("x-content-type-options") == "nosniff"
    assert "default-src 'none'" in r.headers.get("content-security-policy", "")
