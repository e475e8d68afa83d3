"""
Tests for the events WebSocket.

Tests the pending snapshot on connect, ping/pong and pushed store events.
"""


class TestEventsWebSocket:
    """Test /api/v1/events/ws."""

    def test_snapshot_on_connect(self, client, permission_payload):
        client.post(
            "/mediate/notify",
            json={"kind": "permission", "payload": permission_payload, "correlationId": "run-1"},
        )

        with client.websocket_connect("/api/v1/events/ws") as ws:
            message = ws.receive_json()

        assert message["type"] == "snapshot"
        assert len(message["requests"]) == 1
        assert message["requests"][0]["payload"]["toolName"] == "edit_file"

    def test_ping_pong(self, client):
        with client.websocket_connect("/api/v1/events/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_store_events_are_pushed(self, client, permission_payload):
        with client.websocket_connect("/api/v1/events/ws") as ws:
            assert ws.receive_json()["requests"] == []
            assert client.get("/api/v1/status").json()["push_connections"] == 1

            request_id = client.post(
                "/mediate/notify",
                json={"kind": "permission", "payload": permission_payload, "correlationId": "run-1"},
            ).json()["id"]
            created = ws.receive_json()

            client.post(f"/mediate/{request_id}/decide", json={"approved": True})
            decided = ws.receive_json()

        assert created["type"] == "request_created"
        assert created["request"]["id"] == request_id
        assert decided["type"] == "request_decided"
        assert decided["request"]["status"] == "approved"

