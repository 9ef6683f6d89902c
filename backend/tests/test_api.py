"""Tests for the HTTP surface."""
import uuid
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from hippo.services.conversations import ConversationRegistry

CONVERSATION = {
    "itemId": "X",
    "itemName": "Cordless drill",
    "ownerId": "A",
    "ownerName": "Ada",
    "borrowerId": "B",
    "borrowerName": "Bea",
}

LOAN = {
    "itemId": "X",
    "itemName": "Cordless drill",
    "itemDescription": "18V with two batteries",
    "itemImagePath": "",
    "ownerId": "A",
    "ownerName": "Ada",
    "borrowerId": "B",
    "borrowerName": "Bea",
    "itemValue": 100,
}


def test_health(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Trace-ID" in response.headers


def test_detailed_health_reports_database(client: TestClient):
    response = client.get("/health/detailed")

    assert response.status_code == 200
    assert response.json()["checks"]["database"] == "healthy"
    assert response.json()["store"]["timeout_seconds"] == 5.0
    assert response.json()["store"]["dialect"] == "sqlite"
    assert response.json()["store"]["pool"]


def test_create_conversation_then_find_existing(client: TestClient):
    """Test 201 on creation and 200 with the same thread afterwards."""
    created = client.post("/api/conversations", json=CONVERSATION)
    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "active"
    assert body["lastMessage"] is None
    assert body["unreadCount"] == 0

    swapped = dict(CONVERSATION, ownerId="B", borrowerId="A")
    again = client.post("/api/conversations", json=swapped)
    assert again.status_code == 200
    assert again.json()["id"] == body["id"]


def test_create_conversation_requires_fields(client: TestClient):
    """Test that a missing party id is a validation failure."""
    incomplete = {k: v for k, v in CONVERSATION.items() if k != "borrowerId"}

    response = client.post("/api/conversations", json=incomplete)

    assert response.status_code == 422
    assert response.json()["error"] == "validation_failure"


def test_conversation_messaging_scenario(client: TestClient):
    """Test create, send, list, mark read and mark read again."""
    conversation = client.post("/api/conversations", json=CONVERSATION).json()
    base = f"/api/conversations/{conversation['id']}"

    sent = client.post(f"{base}/messages", json={"senderId": "B", "senderName": "Bea", "content": "hi"})
    assert sent.status_code == 201
    assert sent.json()["isRead"] is False
    assert sent.json()["type"] == "text"

    messages = client.get(f"{base}/messages").json()
    assert len(messages) == 1
    assert messages[0]["content"] == "hi"

    summary = client.get(base).json()
    assert summary["lastMessage"]["id"] == sent.json()["id"]
    assert summary["unreadCount"] == 1

    assert client.get(f"{base}/unread", params={"userId": "A"}).json()["unreadCount"] == 1

    first = client.put(f"{base}/read", json={"userId": "A"})
    assert first.status_code == 200
    assert first.json() == {"success": True, "updated": 1}
    assert client.get(f"{base}/messages").json()[0]["isRead"] is True

    second = client.put(f"{base}/read", json={"userId": "A"})
    assert second.json() == {"success": True, "updated": 0}
    assert client.get(f"{base}/unread", params={"userId": "A"}).json()["unreadCount"] == 0


def test_reader_does_not_mark_own_messages(client: TestClient):
    conversation = client.post("/api/conversations", json=CONVERSATION).json()
    base = f"/api/conversations/{conversation['id']}"
    client.post(f"{base}/messages", json={"senderId": "B", "senderName": "Bea", "content": "hi"})

    client.put(f"{base}/read", json={"userId": "B"})

    assert client.get(f"{base}/messages").json()[0]["isRead"] is False


def test_send_message_with_metadata(client: TestClient):
    conversation = client.post("/api/conversations", json=CONVERSATION).json()

    response = client.post(
        f"/api/conversations/{conversation['id']}/messages",
        json={
            "senderId": "A",
            "senderName": "Ada",
            "content": "Request approved",
            "type": "approval",
            "metadata": {"loanDays": 3},
        }
    )

    assert response.status_code == 201
    assert response.json()["type"] == "approval"
    assert response.json()["metadata"] == {"loanDays": 3}


def test_send_message_validation(client: TestClient):
    """Test that empty content and unknown types are rejected."""
    conversation = client.post("/api/conversations", json=CONVERSATION).json()
    url = f"/api/conversations/{conversation['id']}/messages"

    blank = client.post(url, json={"senderId": "B", "senderName": "Bea", "content": "   "})
    assert blank.status_code == 422

    bad_type = client.post(url, json={"senderId": "B", "senderName": "Bea", "content": "hi", "type": "sticker"})
    assert bad_type.status_code == 422


def test_send_message_to_missing_conversation(client: TestClient):
    response = client.post(
        f"/api/conversations/{uuid.uuid4()}/messages",
        json={"senderId": "B", "senderName": "Bea", "content": "hi"}
    )

    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_get_missing_conversation(client: TestClient):
    assert client.get(f"/api/conversations/{uuid.uuid4()}").status_code == 404
    assert client.get("/api/conversations/not-an-id").status_code == 404


def test_list_user_conversations(client: TestClient):
    first = client.post("/api/conversations", json=CONVERSATION).json()
    second = client.post("/api/conversations", json=dict(CONVERSATION, itemId="Y")).json()
    client.post(
        f"/api/conversations/{first['id']}/messages",
        json={"senderId": "B", "senderName": "Bea", "content": "bump"}
    )

    listed = client.get("/api/conversations/user/A").json()

    assert [c["id"] for c in listed] == [first["id"], second["id"]]
    assert client.get("/api/conversations/user/nobody").json() == []


def test_find_conversation(client: TestClient):
    conversation = client.post("/api/conversations", json=CONVERSATION).json()

    found = client.get("/api/conversations/find", params={"itemId": "X", "borrowerId": "B"})
    assert found.status_code == 200
    assert found.json()["id"] == conversation["id"]

    missing = client.get("/api/conversations/find", params={"itemId": "Z", "borrowerId": "B"})
    assert missing.status_code == 200
    assert missing.json() is None


def test_update_conversation_status(client: TestClient):
    conversation = client.post("/api/conversations", json=CONVERSATION).json()
    url = f"/api/conversations/{conversation['id']}/status"

    archived = client.put(url, json={"status": "archived"})
    assert archived.status_code == 200
    assert archived.json()["status"] == "archived"

    reopened = client.put(url, json={"status": "active"})
    assert reopened.status_code == 409
    assert reopened.json()["error"] == "conflict"

    assert client.put(url, json={"status": "sleeping"}).status_code == 422
    assert client.put(
        f"/api/conversations/{uuid.uuid4()}/status", json={"status": "completed"}
    ).status_code == 404


def test_loan_lifecycle_scenario(client: TestClient):
    """Test create, find open, return, find again and list."""
    created = client.post("/api/loans", json=LOAN)
    assert created.status_code == 201
    loan = created.json()
    assert loan["status"] == "active"
    assert loan["endDate"] is None

    found = client.get("/api/loans/find", params={"itemId": "X", "borrowerId": "B"}).json()
    assert found["id"] == loan["id"]

    returned = client.put(f"/api/loans/{loan['id']}/return")
    assert returned.status_code == 200
    assert returned.json()["status"] == "returned"
    assert returned.json()["endDate"] is not None

    assert client.get("/api/loans/find", params={"itemId": "X", "borrowerId": "B"}).json() is None
    assert [l["id"] for l in client.get("/api/loans/user/B").json()] == [loan["id"]]

    again = client.put(f"/api/loans/{loan['id']}/return")
    assert again.status_code == 409


def test_loan_listings_by_role(client: TestClient):
    lent = client.post("/api/loans", json=LOAN).json()
    cancelled = client.post("/api/loans", json=dict(LOAN, itemId="Y")).json()
    client.put(f"/api/loans/{cancelled['id']}/status", json={"status": "cancelled", "notes": "changed plans"})

    assert [l["id"] for l in client.get("/api/loans/borrower/B").json()] == [lent["id"]]
    assert [l["id"] for l in client.get("/api/loans/owner/A").json()] == [lent["id"]]
    assert client.get("/api/loans/owner/B").json() == []


def test_update_loan_status(client: TestClient):
    loan = client.post("/api/loans", json=LOAN).json()
    url = f"/api/loans/{loan['id']}/status"

    completed = client.put(url, json={"status": "completed", "notes": "done early"})
    assert completed.status_code == 200
    assert completed.json()["status"] == "completed"
    assert completed.json()["notes"] == "done early"
    assert completed.json()["endDate"] is None

    as_returned = client.put(url, json={"status": "returned"})
    assert as_returned.status_code == 422
    assert as_returned.json()["error"] == "validation_failure"

    assert client.put(url, json={"status": "lost"}).status_code == 422


def test_get_missing_loan(client: TestClient):
    missing = uuid.uuid4()

    assert client.get(f"/api/loans/{missing}").status_code == 404
    assert client.put(f"/api/loans/{missing}/return").status_code == 404
    assert client.put(f"/api/loans/{missing}/status", json={"status": "completed"}).status_code == 404


def test_create_loan_validation(client: TestClient):
    response = client.post("/api/loans", json=dict(LOAN, itemValue=-5))

    assert response.status_code == 422
    assert "fields" in response.json()


def test_store_failure_outside_registry_is_store_unavailable(client: TestClient, monkeypatch):
    """Test that a raw store error while serving a route renders like any store outage."""
    def fail(self, conversation_id):
        raise OperationalError("SELECT conversations", {}, Exception("database is locked"))

    monkeypatch.setattr(ConversationRegistry, "get", fail)
    response = client.get(f"/api/conversations/{uuid.uuid4()}")

    assert response.status_code == 500
    assert response.json()["error"] == "store_unavailable"


def test_cors_allows_configured_origins(client: TestClient):
    preflight = {"Access-Control-Request-Method": "GET"}

    allowed = client.options("/api/loans/find", headers={"Origin": "http://localhost:8081", **preflight})
    assert allowed.status_code == 200
    assert allowed.headers["access-control-allow-origin"] == "http://localhost:8081"

    refused = client.options("/api/loans/find", headers={"Origin": "http://evil.example", **preflight})
    assert "access-control-allow-origin" not in refused.headers
