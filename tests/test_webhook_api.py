import json

import pytest
from fastapi.testclient import TestClient

from app.api import momo as momo_api
from app.api import webhook as webhook_api
from app.core.config import settings
from app.core.security import compute_signature
from app.main import app

client = TestClient(app)

MESSENGER_BODY = {
    "object": "page",
    "entry": [{
        "id": "PAGE_ID",
        "time": 1700000000000,
        "messaging": [
            {"sender": {"id": "psid-1"}, "recipient": {"id": "PAGE_ID"}, "message": {"mid": "m_1", "text": "Hi"}},
            {"sender": {"id": "psid-2"}, "recipient": {"id": "PAGE_ID"}, "postback": {"payload": "I_AGREE"}},
            {"sender": {"id": "PAGE_ID"}, "recipient": {"id": "psid-1"}, "message": {"is_echo": True, "text": "x"}},
            {"sender": {"id": "psid-3"}, "recipient": {"id": "PAGE_ID"}, "delivery": {"mids": ["m_0"]}},
        ],
    }],
}


@pytest.fixture
def dispatched(monkeypatch):
    events = []

    async def record(event):
        events.append(event)

    monkeypatch.setattr(webhook_api, "dispatch_event", record)
    return events


@pytest.fixture
def reconciled(monkeypatch):
    calls = []

    async def record(payload, headers):
        calls.append((payload, headers))

    monkeypatch.setattr(momo_api, "reconcile", record)
    return calls


def test_verify_handshake(monkeypatch):
    monkeypatch.setattr(settings, "VERIFY_TOKEN", "let-me-in")
    response = client.get("/webhook", params={
        "hub.mode": "subscribe", "hub.verify_token": "let-me-in", "hub.challenge": "12345",
    })
    assert response.status_code == 200
    assert response.text == "12345"


def test_verify_handshake_wrong_token(monkeypatch):
    monkeypatch.setattr(settings, "VERIFY_TOKEN", "let-me-in")
    response = client.get("/webhook", params={
        "hub.mode": "subscribe", "hub.verify_token": "nope", "hub.challenge": "12345",
    })
    assert response.status_code == 403


def test_events_are_acknowledged_and_dispatched(monkeypatch, dispatched):
    monkeypatch.setattr(settings, "FB_APP_SECRET", None)

    response = client.post("/webhook", json=MESSENGER_BODY)

    assert response.status_code == 200
    assert response.text == "EVENT_RECEIVED"
    assert [(e.sender_identity, e.text, e.postback_payload) for e in dispatched] == [
        ("psid-1", "Hi", None),
        ("psid-2", None, "I_AGREE"),
    ]


def test_signed_request_is_accepted(monkeypatch, dispatched):
    monkeypatch.setattr(settings, "FB_APP_SECRET", "app-secret")
    body = json.dumps(MESSENGER_BODY).encode()

    response = client.post(
        "/webhook",
        content=body,
        headers={"Content-Type": "application/json", "X-Hub-Signature-256": compute_signature(body, "app-secret")},
    )

    assert response.status_code == 200
    assert len(dispatched) == 2


def test_bad_signature_is_rejected(monkeypatch, dispatched):
    monkeypatch.setattr(settings, "FB_APP_SECRET", "app-secret")

    response = client.post(
        "/webhook",
        json=MESSENGER_BODY,
        headers={"X-Hub-Signature-256": "sha256=deadbeef"},
    )

    assert response.status_code == 401
    assert response.json()["code"] == "AUTHENTICATION_FAILED"
    assert dispatched == []


def test_non_page_object_is_acknowledged(monkeypatch, dispatched):
    monkeypatch.setattr(settings, "FB_APP_SECRET", None)
    response = client.post("/webhook", json={"object": "instagram", "entry": []})
    assert response.status_code == 200
    assert dispatched == []


def test_malformed_body_is_acknowledged(monkeypatch, dispatched):
    monkeypatch.setattr(settings, "FB_APP_SECRET", None)
    response = client.post("/webhook", content=b"not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 200
    assert dispatched == []


def test_momo_callback_acknowledges_and_reconciles(reconciled):
    payload = {"externalId": "ext-1", "status": "SUCCESSFUL"}

    response = client.post("/momo/callback", json=payload, headers={"X-Reference-Id": "ref-1"})

    assert response.status_code == 200
    assert response.json() == {"status": "OK"}
    assert reconciled[0][0] == payload
    assert reconciled[0][1]["x-reference-id"] == "ref-1"


def test_momo_callback_with_invalid_json_still_acknowledged(reconciled):
    response = client.post("/momo/callback", content=b"{oops", headers={"Content-Type": "application/json"})

    assert response.status_code == 200
    assert response.json() == {"status": "OK"}
    assert reconciled[0][0] == {}


def test_unresolvable_callback_is_acknowledged(fake_db, sent):
    # real reconciler: nothing matches, nothing is sent
    response = client.post("/momo/callback", json={"externalId": "unknown", "status": "SUCCESSFUL"})

    assert response.status_code == 200
    assert response.json() == {"status": "OK"}
    assert sent.deliveries == []


def test_momo_health():
    response = client.get("/momo/health")
    assert response.status_code == 200
    assert set(response.json()) == {"configured", "environment", "base_url", "token_cached"}


def test_payment_admin_requires_key(monkeypatch, fake_db):
    monkeypatch.setattr(settings, "ADMIN_API_KEY", "admin")

    assert client.get("/payment/pending").status_code == 401
    response = client.get("/payment/pending", headers={"X-Admin-Key": "admin"})
    assert response.status_code == 200
    assert response.json() == {"count": 0, "payments": []}


def test_payment_status_unknown_user(monkeypatch, fake_db):
    monkeypatch.setattr(settings, "ADMIN_API_KEY", None)
    response = client.get("/payment/status/nobody")
    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_live():
    assert client.get("/live").json() == {"status": "alive"}
