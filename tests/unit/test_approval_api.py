"""Tests for approval API endpoints."""

import pytest
from fastapi.testclient import TestClient

from approvalflow.main import create_app
from approvalflow.repositories.memory import InMemoryApprovalStore
from approvalflow.services.approval import (
    ApprovalWorkflowEngine,
    get_approval_workflow_engine,
)
from approvalflow.services.audit import AuditLogger, get_audit_logger

BASE = "/api/v1/approvals"


def _headers(user_id: str, name: str | None = None) -> dict[str, str]:
    headers = {"X-User-Id": user_id}
    if name:
        headers["X-User-Name"] = name
    return headers


ALICE = _headers("alice", "Alice")
U1 = _headers("u1", "User One")
U2 = _headers("u2", "User Two")
U3 = _headers("u3", "User Three")


def _submission(**overrides) -> dict:
    body = {
        "type": "purchase_order",
        "entityId": "po-42",
        "entityType": "purchase_order",
        "entityName": "Laptops",
        "priority": "high",
        "amount": "2400.00",
        "currency": "EUR",
        "projectId": "proj-7",
        "description": "Replace three laptops",
        "approvers": [
            {"userId": "u1", "userName": "User One", "level": 1},
            {"userId": "u2", "userName": "User Two", "level": 1},
            {"userId": "u3", "userName": "User Three", "level": 2},
        ],
    }
    body.update(overrides)
    return body


@pytest.fixture
def audit() -> AuditLogger:
    return AuditLogger()


@pytest.fixture
def client(settings, clock, audit):
    """Create test client over a fresh engine and audit log."""
    app = create_app()
    engine = ApprovalWorkflowEngine(InMemoryApprovalStore(), settings, clock)
    app.dependency_overrides[get_approval_workflow_engine] = lambda: engine
    app.dependency_overrides[get_audit_logger] = lambda: audit
    return TestClient(app)


def _create(client, **overrides) -> str:
    response = client.post(BASE, json=_submission(**overrides), headers=ALICE)
    assert response.status_code == 201
    return response.json()["request"]["id"]


class TestApprovalAPIEndpoints:
    """Tests for approval API endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_missing_identity(self, client):
        """Calls without X-User-Id are refused."""
        response = client.get(BASE)
        assert response.status_code == 401

    def test_create_request(self, client):
        """Caller becomes the requester; document is camelCase."""
        response = client.post(BASE, json=_submission(), headers=ALICE)

        assert response.status_code == 201
        data = response.json()
        assert data["action"] == "submitted"
        assert data["previousStatus"] is None
        assert data["newStatus"] == "pending"
        request = data["request"]
        assert request["requestedBy"] == "alice"
        assert request["requestedByName"] == "Alice"
        assert request["currentApproverLevel"] == 1
        assert request["amount"] == "2400.00"
        assert request["approvalHistory"][0]["action"] == "submitted"

    def test_display_name_defaults_to_id(self, client):
        response = client.post(BASE, json=_submission(), headers=_headers("carol"))
        assert response.json()["request"]["requestedByName"] == "carol"

    def test_create_validation_error(self, client):
        """Engine validation errors map to 422 with their code."""
        response = client.post(BASE, json=_submission(description=" "), headers=ALICE)

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "validation_error"
        assert body["details"]["field"] == "description"
        assert body["retryable"] is False

    def test_create_malformed_body(self, client):
        response = client.post(BASE, json={"type": "expense"}, headers=ALICE)
        assert response.status_code == 422

    def test_full_approval_flow(self, client):
        request_id = _create(client)

        response = client.post(f"{BASE}/{request_id}/approve", json={}, headers=U1)
        assert response.status_code == 200
        assert response.json()["newLevel"] == 1

        response = client.post(
            f"{BASE}/{request_id}/approve", json={"comments": "ok"}, headers=U2
        )
        assert response.json()["newLevel"] == 2

        response = client.post(f"{BASE}/{request_id}/approve", json={}, headers=U3)
        assert response.json()["newStatus"] == "approved"

        detail = client.get(f"{BASE}/{request_id}", headers=ALICE).json()
        assert detail["status"] == "approved"
        assert len(detail["approvalHistory"]) == 4

    def test_reject_and_conflict(self, client):
        """Rejected request answers later decisions with 409."""
        request_id = _create(client)

        response = client.post(
            f"{BASE}/{request_id}/reject", json={"reason": "budget exceeded"}, headers=U1
        )
        assert response.status_code == 200
        assert response.json()["newStatus"] == "rejected"

        response = client.post(f"{BASE}/{request_id}/approve", json={}, headers=U2)
        assert response.status_code == 409
        assert response.json()["code"] == "invalid_state"

    def test_reject_requires_reason(self, client):
        request_id = _create(client)
        response = client.post(
            f"{BASE}/{request_id}/reject", json={"reason": ""}, headers=U1
        )
        assert response.status_code == 422
        assert response.json()["details"]["field"] == "reason"

    def test_not_authorized_approver(self, client):
        request_id = _create(client)
        response = client.post(f"{BASE}/{request_id}/approve", json={}, headers=U3)

        assert response.status_code == 403
        assert response.json()["code"] == "not_authorized_approver"

    def test_not_found(self, client):
        response = client.get(f"{BASE}/apr_missing", headers=ALICE)
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

        response = client.post(f"{BASE}/apr_missing/cancel", json={}, headers=ALICE)
        assert response.status_code == 404

    def test_cancel_and_comment(self, client):
        request_id = _create(client)

        response = client.post(
            f"{BASE}/{request_id}/cancel", json={"reason": "dup"}, headers=ALICE
        )
        assert response.json()["newStatus"] == "cancelled"

        response = client.post(
            f"{BASE}/{request_id}/comments", json={"comment": "closing"}, headers=U1
        )
        assert response.status_code == 200
        data = response.json()
        assert data["action"] == "commented"
        assert data["request"]["status"] == "cancelled"
        assert data["request"]["approvalHistory"][-1]["newStatus"] is None

    def test_list_and_filters(self, client):
        first = _create(client)
        second = _create(client, type="expense", priority="low")

        response = client.get(BASE, headers=ALICE)
        assert [r["id"] for r in response.json()] == [second, first]

        response = client.get(BASE, params={"type": "expense"}, headers=ALICE)
        assert [r["id"] for r in response.json()] == [second]

        response = client.get(BASE, params={"limit": 1}, headers=ALICE)
        assert len(response.json()) == 1

    def test_pending_and_mine(self, client):
        request_id = _create(client)

        pending = client.get(f"{BASE}/pending", headers=U1).json()
        assert [r["id"] for r in pending] == [request_id]
        assert client.get(f"{BASE}/pending", headers=U3).json() == []

        mine = client.get(f"{BASE}/mine", headers=ALICE).json()
        assert [r["id"] for r in mine] == [request_id]

    def test_entity_lookup(self, client):
        request_id = _create(client)

        found = client.get(f"{BASE}/entity/purchase_order/po-42", headers=ALICE)
        assert found.json()["id"] == request_id

        missing = client.get(f"{BASE}/entity/purchase_order/po-0", headers=ALICE)
        assert missing.status_code == 200
        assert missing.json() is None

    def test_stats(self, client):
        request_id = _create(client)
        _create(client)
        client.post(f"{BASE}/{request_id}/cancel", json={}, headers=ALICE)

        stats = client.get(f"{BASE}/stats", headers=ALICE).json()
        assert stats["total"] == 2
        assert stats["pending"] == 1
        assert stats["cancelled"] == 1
        assert stats["byType"]["purchase_order"] == 2

    def test_audit_trail(self, client, audit):
        """Each successful mutation writes one audit entry; failures write none."""
        request_id = _create(client)
        client.post(f"{BASE}/{request_id}/approve", json={}, headers=U1)
        client.post(f"{BASE}/{request_id}/approve", json={}, headers=U3)

        response = client.get(
            f"{BASE}/audit", params={"request_id": request_id}, headers=ALICE
        )
        entries = response.json()
        assert [e["action"] for e in entries] == [
            "approval.approved",
            "approval.created",
        ]
        assert entries[0]["actor_id"] == "u1"
        assert entries[0]["changes"]["before"]["status"] == "pending"

        response = client.get(
            f"{BASE}/audit", params={"action": "approval.created"}, headers=ALICE
        )
        assert len(response.json()) == 1
