"""
Tests for the conversation endpoints.

Tests upsert, paginated listing with live status and the live WebSocket view.
"""

import asyncio
from unittest.mock import patch

import pytest

from mediator.api.routes.conversations import report_pump_failure


def _put(client, session_id, **fields):
    return client.put(f"/api/v1/conversations/{session_id}", json=fields)


class TestConversationsRoutes:
    """Test /api/v1/conversations endpoints."""

    def test_upsert_and_get(self, client):
        response = _put(client, "session-1", title="Fix tests", projectPath="/work/app")
        assert response.status_code == 200
        assert response.json()["sessionId"] == "session-1"

        body = client.get("/api/v1/conversations/session-1").json()
        assert body["title"] == "Fix tests"
        assert body["projectPath"] == "/work/app"
        assert body["status"] == "ongoing"
        assert body["liveStatus"] is None

    def test_get_missing_is_404(self, client):
        assert client.get("/api/v1/conversations/nope").status_code == 404

    def test_list_has_more(self, client):
        for index in range(3):
            _put(client, f"session-{index}", updatedAt=f"2026-01-01T12:0{index}:00")

        first = client.get("/api/v1/conversations", params={"limit": 2}).json()
        second = client.get("/api/v1/conversations", params={"limit": 2, "offset": 2}).json()

        assert [c["sessionId"] for c in first["conversations"]] == ["session-2", "session-1"]
        assert first["hasMore"] is True
        assert [c["sessionId"] for c in second["conversations"]] == ["session-0"]
        assert second["hasMore"] is False

    def test_list_merges_finished_run(self, client):
        client.post("/api/v1/runs", json={"streamingId": "run-1"})
        _put(client, "session-1", streamingId="run-1")
        client.post("/api/v1/runs/run-1/status", json={"currentStatus": "Completed"})
        client.delete("/api/v1/runs/run-1")

        conversation = client.get("/api/v1/conversations").json()["conversations"][0]

        assert conversation["status"] == "completed"
        assert conversation["liveStatus"]["connectionState"] == "disconnected"
        assert client.get("/api/v1/conversations/session-1").json()["status"] == "completed"

    def test_list_ignores_live_status_of_completed_conversation(self, client):
        client.post("/api/v1/runs", json={"streamingId": "run-1"})
        _put(client, "session-1", streamingId="run-1", status="completed")

        conversation = client.get("/api/v1/conversations").json()["conversations"][0]

        assert conversation["status"] == "completed"
        assert conversation["liveStatus"] is None

    def test_websocket_load_and_live_update(self, client):
        client.post("/api/v1/runs", json={"streamingId": "run-1"})
        _put(client, "session-1", streamingId="run-1")

        with client.websocket_connect("/api/v1/conversations/ws") as ws:
            ws.send_json({"type": "load"})
            message = ws.receive_json()
            assert message["type"] == "conversations"
            assert message["hasMore"] is False
            assert message["conversations"][0]["status"] == "ongoing"
            assert message["conversations"][0]["liveStatus"]["currentStatus"] == "Running"

            client.post("/api/v1/runs/run-1/status", json={"currentStatus": "Thinking"})
            message = ws.receive_json()
            assert message["conversations"][0]["liveStatus"]["currentStatus"] == "Thinking"

    def test_websocket_load_more(self, client):
        for index in range(2):
            _put(client, f"session-{index}")

        with client.websocket_connect("/api/v1/conversations/ws") as ws:
            ws.send_json({"type": "load"})
            assert len(ws.receive_json()["conversations"]) == 2

            ws.send_json({"type": "load_more"})
            assert len(ws.receive_json()["conversations"]) == 2


class TestPushFailureReporting:
    """Test the done callback of the WebSocket push task."""

    @pytest.mark.asyncio
    async def test_failed_push_is_logged(self):
        async def send():
            raise RuntimeError("socket closed")

        task = asyncio.create_task(send())
        await asyncio.wait([task])

        with patch("mediator.api.routes.conversations.logger") as logger:
            report_pump_failure(task)

        logger.error.assert_called_once()
        assert "socket closed" in logger.error.call_args.args[0]

    @pytest.mark.asyncio
    async def test_cancelled_push_is_ignored(self):
        task = asyncio.create_task(asyncio.sleep(60))
        task.cancel()
        await asyncio.wait([task])

        with patch("mediator.api.routes.conversations.logger") as logger:
            report_pump_failure(task)

        logger.error.assert_not_called()
