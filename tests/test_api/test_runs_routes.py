"""
Tests for the run lifecycle endpoints.

Tests registration, live status reporting and cleanup on run end.
"""


class TestRunsRoutes:
    """Test /api/v1/runs endpoints."""

    def test_register_generates_streaming_id(self, client):
        response = client.post("/api/v1/runs")

        assert response.status_code == 200
        streaming_id = response.json()["streamingId"]
        assert streaming_id
        assert client.get("/api/v1/status").json()["active_runs"] == 1

    def test_register_with_given_id(self, client):
        response = client.post("/api/v1/runs", json={"streamingId": "run-1"})
        assert response.json()["streamingId"] == "run-1"

    def test_report_status(self, client):
        client.post("/api/v1/runs", json={"streamingId": "run-1"})

        response = client.post("/api/v1/runs/run-1/status", json={"currentStatus": "Thinking"})

        assert response.status_code == 200
        body = response.json()
        assert body["streamingId"] == "run-1"
        assert body["currentStatus"] == "Thinking"
        assert body["connectionState"] == "connected"

    def test_report_status_requires_phase(self, client):
        response = client.post("/api/v1/runs/run-1/status", json={})
        assert response.status_code == 400

    def test_end_run_cleans_up_requests(self, client, permission_payload):
        client.post("/api/v1/runs", json={"streamingId": "run-1"})
        for correlation_id in ("run-1", "run-1", "run-2"):
            client.post(
                "/mediate/notify",
                json={"kind": "permission", "payload": permission_payload, "correlationId": correlation_id},
            )

        response = client.delete("/api/v1/runs/run-1")

        assert response.status_code == 200
        assert response.json() == {"streamingId": "run-1", "removed": 2}
        assert client.get("/mediate", params={"correlationId": "run-1"}).json()["requests"] == []
        assert len(client.get("/mediate", params={"correlationId": "run-2"}).json()["requests"]) == 1

        # Ending again removes nothing
        assert client.delete("/api/v1/runs/run-1").json()["removed"] == 0
