"""HTTP surface: authorization gate, envelope building and outcome mapping."""

from __future__ import annotations

import json
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from src.userservice.api.user_routes import get_bridge
from src.userservice.auth.credentials import encode_credential
from src.userservice.auth.policy import Role
from src.userservice.contracts.operation_envelope import OperationEnvelope, OperationType
from src.userservice.main import create_app
from src.userservice.rpc.outcome import NO_REPLY_MESSAGE

NEW_USER = {
    "email": "john.doe@gmail.com",
    "name": "John",
    "surname": "Doe",
    "username": "john_doe",
    "password": "$2a$10$hashedpassword",
    "enabled": True,
    "authorities": None,
}


class RecordingBridge:
    """Stands in for RpcBridge; returns a canned raw reply."""

    def __init__(self, reply: Optional[str] = None, error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.sent: List[OperationEnvelope] = []

    async def send(self, envelope: OperationEnvelope) -> Optional[str]:
        self.sent.append(envelope)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def bridge() -> RecordingBridge:
    return RecordingBridge()


@pytest.fixture
def client(bridge: RecordingBridge) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_bridge] = lambda: bridge
    return TestClient(app)


def _auth(*roles: Role) -> dict:
    return {"Authorization": f"Bearer {encode_credential('tester', roles)}"}


SUPERADMIN = _auth(Role.SUPERADMIN)
SYSADMIN = _auth(Role.SYSTEM_ADMINISTRATOR)


def test_insert_success_returns_ack_wrapper(client, bridge):
    bridge.reply = '{"success": true, "message": "Ok", "payload": 42}'

    resp = client.post("/user/insert", json=NEW_USER, headers=SUPERADMIN)

    assert resp.status_code == 200
    assert '"payload":42' in resp.text
    assert '"success":true' in resp.text
    envelope = bridge.sent[0]
    assert envelope.operation_type == OperationType.INSERT
    assert envelope.payload.username == "john_doe"
    assert envelope.search_string is None


def test_insert_without_identifier_returns_minimal_ok(client, bridge):
    bridge.reply = '{"success": true}'

    resp = client.post("/user/insert", json=NEW_USER, headers=SUPERADMIN)

    assert resp.status_code == 200
    assert resp.json() == {"response": "OK"}


def test_insert_rejected_by_worker(client, bridge):
    bridge.reply = '{"success": false, "message": "User already exists"}'

    resp = client.post("/user/insert", json=NEW_USER, headers=SUPERADMIN)

    assert resp.status_code == 400
    assert resp.text == "User already exists"


def test_edit_builds_update_envelope(client, bridge):
    bridge.reply = '{"success": true, "payload": 5}'

    resp = client.post("/user/edit", json={"id": 5, "surname": "Smith"}, headers=SUPERADMIN)

    assert resp.status_code == 200
    assert bridge.sent[0].operation_type == OperationType.UPDATE
    assert bridge.sent[0].payload.id == 5


def test_delete_not_found(client, bridge):
    bridge.reply = '{"success": false, "message": "not found"}'

    resp = client.post("/user/delete/17", headers=SUPERADMIN)

    assert resp.status_code == 400
    assert resp.text == "not found"
    assert bridge.sent[0].to_dict() == {"operationType": "DELETE", "payload": {"id": 17}, "searchString": None}


def test_search_returns_bare_payload(client, bridge):
    users = [{"id": 1, "username": "john_doe"}]
    bridge.reply = json.dumps({"success": True, "message": "Ok", "payload": users})

    resp = client.get("/user/view", params={"searchString": "doe"}, headers=SUPERADMIN)

    assert resp.status_code == 200
    assert resp.json() == users
    assert bridge.sent[0].search_string == "doe"
    assert bridge.sent[0].payload is None


@pytest.mark.parametrize(
    "method,path,body",
    [
        ("post", "/user/insert", NEW_USER),
        ("post", "/user/edit", {"id": 1}),
        ("post", "/user/delete/1", None),
        ("get", "/user/view", None),
    ],
)
def test_no_reply_is_500(client, bridge, method, path, body):
    bridge.reply = None

    resp = client.request(method.upper(), path, json=body, headers=SUPERADMIN)

    assert resp.status_code == 500
    assert resp.text == NO_REPLY_MESSAGE


def test_malformed_reply_is_500(client, bridge):
    bridge.reply = "not an ack"

    resp = client.post("/user/delete/1", headers=SUPERADMIN)

    assert resp.status_code == 500
    assert resp.text != NO_REPLY_MESSAGE


def test_unexpected_error_is_500_with_message(client, bridge):
    bridge.error = RuntimeError("boom")

    resp = client.post("/user/delete/1", headers=SUPERADMIN)

    assert resp.status_code == 500
    assert resp.text == "boom"


def test_lesser_role_cannot_insert_and_bridge_is_not_called(client, bridge):
    resp = client.post("/user/insert", json=NEW_USER, headers=SYSADMIN)

    assert resp.status_code == 403
    assert bridge.sent == []


@pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer not-a-jwt"}])
def test_missing_or_invalid_token_is_401(client, bridge, headers):
    resp = client.get("/user/view", headers=headers)

    assert resp.status_code == 401
    assert bridge.sent == []


def test_invalid_body_never_reaches_bridge(client, bridge):
    resp = client.post("/user/insert", json={"username": "no-email"}, headers=SUPERADMIN)

    assert resp.status_code == 422
    assert bridge.sent == []


def test_hello_for_system_administrator(client):
    resp = client.get("/user/hello", headers=SYSADMIN)

    assert resp.status_code == 200
    assert resp.text == "Hello!"


def test_hello_for_superadmin_through_hierarchy(client):
    assert client.get("/user/hello", headers=SUPERADMIN).status_code == 200


def test_hello_without_role(client):
    assert client.get("/user/hello", headers=_auth()).status_code == 403
