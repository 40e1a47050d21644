"""Tests for the admin endpoints and admin-key checks."""

from __future__ import annotations

from pathlib import Path

import pytest

import services.admin_service as admin_service


class TestAdminAuth:
    def test_missing_key_rejected(self, client):
        resp = client.post("/api/admin/verify")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid admin key"

    def test_wrong_key_rejected(self, client):
        resp = client.get("/api/admin/all", headers={"X-Admin-Key": "nope"})
        assert resp.status_code == 401

    def test_header_key_accepted(self, client, admin_headers):
        resp = client.post("/api/admin/verify", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json()["detail"] == "Admin access verified"

    def test_body_key_accepted(self, client, settings):
        resp = client.post("/api/admin/verify", json={"adminKey": settings.admin_key})
        assert resp.status_code == 200

    def test_unconfigured_admin_key_is_server_error(self, make_client):
        client = make_client(admin_key=None)
        resp = client.post("/api/admin/verify", headers={"X-Admin-Key": "anything"})
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Admin access not configured"


class TestDashboard:
    def test_all_includes_private_sections(self, client, admin_headers):
        client.get("/api/repositories")

        data = client.get("/api/admin/all", headers=admin_headers).json()["data"]

        assert data["analytics"]["totalVisits"] == 1
        assert data["contactSubmissions"] == []
        assert data["user"]["login"] == "developer"

    def test_system_info(self, client, admin_headers):
        data = client.get("/api/admin/system", headers=admin_headers).json()["data"]
        assert data["uptime"] >= 0
        assert data["memory"]["maxRss"].endswith("MB")
        assert "pythonVersion" in data

    def test_system_info_without_resource_module(self, client, admin_headers, monkeypatch):
        monkeypatch.setattr(admin_service, "resource", None)

        data = client.get("/api/admin/system", headers=admin_headers).json()["data"]
        health = client.get("/api/health").json()["data"]

        assert data["memory"]["maxRss"] is None
        assert data["cpu"]["user"] >= 0
        assert health["maxRssKb"] is None
        assert health["status"] == "healthy"

    def test_contacts_empty(self, client, admin_headers):
        body = client.get("/api/admin/contacts", headers=admin_headers).json()
        assert body["data"] == []
        assert body["count"] == 0


class TestLogs:
    def test_no_log_directory(self, client, admin_headers):
        data = client.get("/api/admin/logs", headers=admin_headers).json()["data"]
        assert data == {"logs": [], "message": "Logs directory not found or empty"}

    def test_returns_tail_of_newest_log(self, client, settings, admin_headers):
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        lines = [f"line {index}" for index in range(150)]
        (log_dir / "portfolio-backend.log").write_text("\n".join(lines) + "\n\n", encoding="utf-8")
        (log_dir / "notes.txt").write_text("ignored", encoding="utf-8")

        data = client.get("/api/admin/logs", headers=admin_headers).json()["data"]

        assert data["file"] == "portfolio-backend.log"
        assert data["totalLines"] == 100
        assert data["logs"][0] == "line 50"
        assert data["logs"][-1] == "line 149"

    def test_directory_without_log_files(self, client, settings, admin_headers):
        Path(settings.log_dir).mkdir(parents=True, exist_ok=True)
        data = client.get("/api/admin/logs", headers=admin_headers).json()["data"]
        assert data["message"] == "No log files found"


class TestRefresh:
    def test_refresh_without_github_is_unavailable(self, client, admin_headers):
        resp = client.post("/api/admin/refresh", headers=admin_headers)
        assert resp.status_code == 503

    def test_refresh_runs_full_sync(self, make_client, fake_github, admin_headers):
        client = make_client(github_service=fake_github)
        fake_github.calls.clear()

        resp = client.post("/api/admin/refresh", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json()["detail"] == "Data refresh completed successfully"
        assert fake_github.calls[:2] == ["user", "repositories"]

    def test_refresh_conflict_while_running(self, make_client, fake_github, admin_headers):
        client = make_client(github_service=fake_github)
        client.app.state.sync_job.is_running = True

        resp = client.post("/api/admin/refresh", headers=admin_headers)

        assert resp.status_code == 409
        assert resp.json()["detail"] == "Data sync is already in progress"

    @pytest.mark.parametrize("via_body", [False, True])
    def test_refresh_failure_is_bad_gateway(self, make_client, fake_github, settings, admin_headers, via_body):
        client = make_client(github_service=fake_github)
        fake_github.fail = True

        if via_body:
            resp = client.post("/api/admin/refresh", json={"adminKey": settings.admin_key})
        else:
            resp = client.post("/api/admin/refresh", headers=admin_headers)

        assert resp.status_code == 502
        assert client.app.state.sync_job.is_running is False
