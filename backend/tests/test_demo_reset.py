"""
Tests for demo reset endpoint. Demo reset is only available when DEMO_MODE=true.
"""


class TestDemoResetEndpoint:
    """Test POST /demo/reset is gated by DEMO_MODE and behaves correctly."""

    def test_demo_status_reflects_env(self, client, monkeypatch):
        monkeypatch.setenv("DEMO_MODE", "TRUE")
        assert client.get("/demo/status").json() == {"demoMode": True}
        monkeypatch.delenv("DEMO_MODE", raising=False)
        assert client.get("/demo/status").json() == {"demoMode": False}

    def test_demo_reset_endpoint_disabled_when_demo_mode_false(self, client, monkeypatch):
        """When DEMO_MODE is false, POST /demo/reset returns 404."""
        monkeypatch.setenv("DEMO_MODE", "false")

        resp = client.post("/demo/reset")
        assert resp.status_code == 404
        assert "detail" in resp.json()

    def test_demo_reset_endpoint_disabled_when_demo_mode_unset(self, client, monkeypatch):
        """When DEMO_MODE is unset, POST /demo/reset returns 404."""
        monkeypatch.delenv("DEMO_MODE", raising=False)

        resp = client.post("/demo/reset")
        assert resp.status_code == 404

    def test_demo_reset_clears_alerts_and_restores_clinics(self, client, monkeypatch):
        """When DEMO_MODE=true, reset clears alerts, toasts and events and reseeds clinics."""
        monkeypatch.setenv("DEMO_MODE", "true")

        client.post("/alerts/check")
        assert client.get("/alerts/stats").json()["active"] == 5
        c5 = next(c for c in client.get("/clinics").json() if c["id"] == "C5")
        assert c5["isActive"] is False

        reset_resp = client.post("/demo/reset")
        assert reset_resp.status_code == 200
        assert reset_resp.json() == {"status": "ok"}

        assert client.get("/alerts/stats").json()["total"] == 0
        assert client.get("/alerts").json() == []
        assert client.get("/notifications").json() == []
        assert client.get("/usage-events").json() == []

        c5 = next(c for c in client.get("/clinics").json() if c["id"] == "C5")
        assert c5["isActive"] is True
        assert c5["subscriptionStatus"] == "trial"

        # Same conditions fire again as fresh alerts after reset
        again = client.post("/alerts/check").json()
        assert again["summary"]["alertsCreated"] == 5
