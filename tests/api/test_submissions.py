"""HTTP tests for submission intake, listing, status, and completion routes."""

from __future__ import annotations

from typing import Any

from fastapi.testclient import TestClient

from itineraries.audit.store import query_audit_trail


def _structured_body(items: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "request_id": "req_001",
        "agent_id": "agent_001",
        "traveler_id": "trav_001",
        "content": {"source": "STRUCTURED_INPUT", "data": {"items": items}},
    }


def _free_text_body(text: str, agent_id: str = "agent_002") -> dict[str, Any]:
    return {
        "request_id": "req_001",
        "agent_id": agent_id,
        "traveler_id": "trav_001",
        "content": {"source": "FREE_TEXT", "content": text},
    }


def _advance(client: TestClient, submission_id: str, *statuses: str) -> None:
    for status in statuses:
        response = client.post(
            f"/submissions/{submission_id}/status",
            json={"status": status, "actor_id": "parser"},
        )
        assert response.status_code == 200, response.text


class TestCreate:
    def test_returns_201_with_pending_submission(self, client: TestClient) -> None:
        response = client.post("/submissions", json=_free_text_body("Day 1: Udaipur"))

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "PENDING"
        assert body["source"] == "FREE_TEXT"
        assert body["resulting_itinerary_id"] is None

    def test_duplicate_returns_409_with_original_id(self, client: TestClient) -> None:
        first = client.post("/submissions", json=_free_text_body("Day 1: Udaipur"))
        second = client.post(
            "/submissions", json=_free_text_body("  Day 1:   Udaipur ", agent_id="agent_003")
        )

        assert second.status_code == 409
        detail = second.json()["detail"]
        assert detail["error"] == "duplicate_submission"
        assert detail["original_submission_id"] == first.json()["id"]

    def test_invalid_content_returns_422_with_reason(self, client: TestClient) -> None:
        response = client.post("/submissions", json=_free_text_body("   "))

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["error"] == "invalid_submission"
        assert detail["source"] == "FREE_TEXT"

    def test_unknown_source_is_rejected(self, client: TestClient) -> None:
        body = _free_text_body("x")
        body["content"]["source"] = "FAX"
        assert client.post("/submissions", json=body).status_code == 422

    def test_request_id_becomes_audit_correlation_id(
        self, client: TestClient, services: dict[str, Any]
    ) -> None:
        response = client.post(
            "/submissions",
            json=_free_text_body("Day 1: Udaipur"),
            headers={"X-Request-ID": "req-trace-1"},
        )

        assert response.headers["X-Request-ID"] == "req-trace-1"
        entries = query_audit_trail(services["audit_conn"], entity_id=response.json()["id"])
        assert entries[0]["correlation_id"] == "req-trace-1"


class TestRead:
    def test_get_by_id(self, client: TestClient) -> None:
        created = client.post("/submissions", json=_free_text_body("Day 1: Udaipur")).json()

        response = client.get(f"/submissions/{created['id']}")

        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    def test_get_unknown_returns_404(self, client: TestClient) -> None:
        response = client.get("/submissions/nope")
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "not_found"

    def test_list_by_request_and_agent(self, client: TestClient) -> None:
        for i in range(3):
            client.post("/submissions", json=_free_text_body(f"option {i}"))
        client.post("/submissions", json=_free_text_body("other", agent_id="agent_009"))

        by_request = client.get("/submissions", params={"request_id": "req_001", "limit": 2})
        by_agent = client.get("/submissions", params={"agent_id": "agent_009"})

        assert by_request.status_code == 200
        assert by_request.json()["total"] == 4
        assert len(by_request.json()["items"]) == 2
        assert by_agent.json()["total"] == 1

    def test_list_requires_a_filter(self, client: TestClient) -> None:
        response = client.get("/submissions")
        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "invalid_request"

    def test_list_rejects_oversized_limit(self, client: TestClient) -> None:
        response = client.get("/submissions", params={"request_id": "r", "limit": 500})
        assert response.status_code == 422


class TestStatusAndCompletion:
    def test_status_progression(self, client: TestClient) -> None:
        created = client.post("/submissions", json=_free_text_body("Day 1: Udaipur")).json()

        response = client.post(
            f"/submissions/{created['id']}/status",
            json={"status": "PROCESSING", "actor_id": "parser"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "PROCESSING"

    def test_illegal_transition_returns_generic_409(self, client: TestClient) -> None:
        created = client.post("/submissions", json=_free_text_body("Day 1: Udaipur")).json()

        response = client.post(
            f"/submissions/{created['id']}/status",
            json={"status": "PARSED", "actor_id": "parser"},
        )

        assert response.status_code == 409
        assert response.json()["detail"] == {
            "error": "conflict",
            "message": "The submission cannot be changed in its current state",
        }

    def test_complete_structured_submission(
        self, client: TestClient, sample_item_data: list[dict[str, Any]]
    ) -> None:
        created = client.post("/submissions", json=_structured_body(sample_item_data)).json()
        _advance(client, created["id"], "PROCESSING", "PARSED")

        response = client.post(
            f"/submissions/{created['id']}/complete", json={"actor_id": "parser"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["submission"]["status"] == "COMPLETED"
        assert body["submission"]["resulting_itinerary_id"] == body["version"]["itinerary_id"]
        assert body["version"]["version_number"] == 1

    def test_complete_free_text_without_items_returns_422(self, client: TestClient) -> None:
        created = client.post("/submissions", json=_free_text_body("Day 1: Udaipur")).json()
        _advance(client, created["id"], "PROCESSING", "PARSED")

        response = client.post(
            f"/submissions/{created['id']}/complete", json={"actor_id": "parser"}
        )

        assert response.status_code == 422
        assert response.json()["detail"]["error"] == "invalid_submission"

    def test_complete_pending_submission_returns_409(
        self, client: TestClient, sample_item_data: list[dict[str, Any]]
    ) -> None:
        created = client.post("/submissions", json=_structured_body(sample_item_data)).json()

        response = client.post(
            f"/submissions/{created['id']}/complete", json={"actor_id": "parser"}
        )

        assert response.status_code == 409
