from fastapi.testclient import TestClient

from mogtome.health_server import app
from mogtome.storage import record_pull_history
from mogtome.version import __version__

client = TestClient(app)


def test_ready_reports_version():
    resp = client.get("/health/ready")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ready", "service": "mogtome", "version": __version__}


def test_last_cycle_reports_latest_pull(tmp_path, monkeypatch):
    monkeypatch.setenv("MOGTOME_CONFIG", str(tmp_path / "missing.config"))
    monkeypatch.setenv("MOGTOME_DATA_ROOT", str(tmp_path))

    assert client.get("/health/last-cycle").json() == {"status": "unknown", "last_cycle": None}

    record_pull_history(tmp_path, "2026-10-19T12:00:00Z", True, source="cron")
    assert client.get("/health/last-cycle").json()["status"] == "ok"

    record_pull_history(tmp_path, "2026-10-19T12:05:00Z", False, source="cron", error="SourceFetchError: down")
    body = client.get("/health/last-cycle").json()
    assert body["status"] == "failing"
    assert body["last_cycle"]["error"] == "SourceFetchError: down"
