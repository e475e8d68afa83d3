"""
Tests for the mediation HTTP endpoints.

Tests notify, list and decide over the wire, including error status codes.
"""


class TestMediationRoutes:
    """Test /mediate endpoints."""

    def _notify(self, client, kind, payload, correlation_id="run-1"):
        return client.post(
            "/mediate/notify",
            json={"kind": kind, "payload": payload, "correlationId": correlation_id},
        )

    def test_notify_list_decide_flow(self, client, permission_payload):
        response = self._notify(client, "permission", permission_payload)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        request_id = body["id"]

        response = client.get("/mediate", params={"correlationId": "run-1", "status": "pending"})
        assert response.status_code == 200
        requests = response.json()["requests"]
        assert [r["id"] for r in requests] == [request_id]
        assert requests[0]["kind"] == "permission"
        assert requests[0]["payload"]["toolName"] == "edit_file"
        assert requests[0]["correlationId"] == "run-1"

        response = client.post(f"/mediate/{request_id}/decide", json={"approved": True})
        assert response.status_code == 200
        assert response.json()["success"] is True

        response = client.get("/mediate", params={"correlationId": "run-1", "status": "pending"})
        assert response.json()["requests"] == []

        response = client.get("/mediate", params={"correlationId": "run-1"})
        decided = response.json()["requests"][0]
        assert decided["status"] == "approved"
        assert decided["decision"]["approved"] is True

    def test_question_multi_select_over_http(self, client, question_payload):
        request_id = self._notify(client, "question", question_payload).json()["id"]

        response = client.post(
            f"/mediate/{request_id}/decide",
            json={"answers": {"Framework": "Vue", "Linters": ["a", "b"]}},
        )
        assert response.status_code == 200

        stored = client.get("/mediate", params={"correlationId": "run-1"}).json()["requests"][0]
        assert stored["status"] == "answered"
        assert stored["decision"]["answers"] == {"Framework": "Vue", "Linters": "a, b"}
        assert stored["payload"]["questions"][1]["multiSelect"] is True

    def test_empty_questions_is_400(self, client):
        response = self._notify(client, "question", {"questions": []})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "ERR_VALIDATION"
        assert body["error"]["message"] == "questions array is required"

    def test_unknown_kind_is_400(self, client, permission_payload):
        response = self._notify(client, "telepathy", permission_payload)
        assert response.status_code == 400

    def test_missing_body_fields_is_400(self, client):
        response = client.post("/mediate/notify", json={"kind": "permission"})
        assert response.status_code == 400

    def test_missing_correlation_id_is_unknown(self, client, permission_payload):
        response = client.post(
            "/mediate/notify", json={"kind": "permission", "payload": permission_payload}
        )
        assert response.status_code == 200

        listed = client.get("/mediate", params={"correlationId": "unknown"}).json()["requests"]
        assert len(listed) == 1

    def test_decide_unknown_is_404(self, client):
        response = client.post("/mediate/does-not-exist/decide", json={"approved": True})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "ERR_NOT_FOUND"

    def test_second_decide_is_404(self, client, permission_payload):
        request_id = self._notify(client, "permission", permission_payload).json()["id"]
        client.post(f"/mediate/{request_id}/decide", json={"approved": False})

        response = client.post(f"/mediate/{request_id}/decide", json={"approved": True})

        assert response.status_code == 404
        stored = client.get("/mediate").json()["requests"][0]
        assert stored["status"] == "denied"

    def test_malformed_decision_is_400(self, client, permission_payload):
        request_id = self._notify(client, "permission", permission_payload).json()["id"]

        response = client.post(f"/mediate/{request_id}/decide", json={"answers": {}})

        assert response.status_code == 400

    def test_unknown_status_filter_is_400(self, client):
        response = client.get("/mediate", params={"status": "maybe"})
        assert response.status_code == 400

    def test_list_without_filters(self, client, permission_payload):
        self._notify(client, "permission", permission_payload, "run-1")
        self._notify(client, "permission", permission_payload, "run-2")

        requests = client.get("/mediate").json()["requests"]

        assert [r["correlationId"] for r in requests] == ["run-1", "run-2"]

    def test_status_endpoint_counts_pending(self, client, permission_payload):
        self._notify(client, "permission", permission_payload)

        body = client.get("/api/v1/status").json()

        assert body["status"] == "online"
        assert body["pending_requests"] == 1
        assert body["active_runs"] == 0

    def test_non_string_multi_select_item_is_400(self, client, question_payload):
        request_id = self._notify(client, "question", question_payload).json()["id"]

        response = client.post(
            f"/mediate/{request_id}/decide",
            json={"answers": {"Framework": "Vue", "Linters": ["a", None]}},
        )

        assert response.status_code == 400
        stored = client.get("/mediate").json()["requests"][0]
        assert stored["status"] == "pending"

    def test_string_approval_is_400(self, client, permission_payload):
        """Only a JSON boolean can grant a permission."""
        request_id = self._notify(client, "permission", permission_payload).json()["id"]

        response = client.post(f"/mediate/{request_id}/decide", json={"approved": "yes"})

        assert response.status_code == 400
        stored = client.get("/mediate").json()["requests"][0]
        assert stored["status"] == "pending"
