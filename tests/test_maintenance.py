# tests/test_maintenance.py
import pytest

from vpnstore.maintenance import _exempt
from vpnstore.services import settings as settings_service


@pytest.fixture
def maintenance_on(app):
    settings_service.update_settings({"maintenance_mode": True})


def test_site_renders_normally(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert b"VPN Key Store" in resp.data


def test_pages_redirect_during_maintenance(client, maintenance_on):
    resp = client.get("/")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/maintenance")


def test_maintenance_page_is_503(client, maintenance_on):
    resp = client.get("/maintenance")
    assert resp.status_code == 503
    assert resp.headers["Retry-After"] == "3600"
    assert b"maintenance" in resp.data


def test_api_and_health_stay_up(client, maintenance_on):
    assert client.get("/api/products").status_code == 200
    assert client.get("/api/settings").get_json()["settings"]["maintenanceMode"] is True
    assert client.get("/healthz").status_code == 200


def test_config_flag_also_enables_gate(app, client):
    app.config["MAINTENANCE_MODE"] = 1
    assert client.get("/").status_code == 302


def test_unreadable_flag_fails_open(client, monkeypatch):
    def broken():
        raise RuntimeError("database unavailable")
    monkeypatch.setattr(settings_service, "is_maintenance_mode", broken)
    assert client.get("/").status_code == 200


@pytest.mark.parametrize("path,exempt", [
    ("/api", True),
    ("/api/orders", True),
    ("/admin/settings", True),
    ("/healthz", True),
    ("/maintenance", True),
    ("/apiary", False),
    ("/", False),
    ("/products", False),
])
def test_exempt_paths(path, exempt):
    assert _exempt(path) is exempt
