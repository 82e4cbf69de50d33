from fastapi.testclient import TestClient
from app.core.config import settings
from app.main import app
import pytest

client = TestClient(app)


@pytest.fixture
def open_admin(monkeypatch):
    monkeypatch.setattr(settings, "ADMIN_API_KEY", None)


def test_unknown_route_is_http_error():
    response = client.get("/no-such-route")
    assert response.status_code == 404
    data = response.json()
    assert data["code"] == "HTTP_ERROR"
    assert data["details"] is None


def test_query_validation_error_structure(open_admin, fake_db):
    response = client.get("/payment/pending", params={"limit": 0})
    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "VALIDATION_ERROR"
    assert data["error"] == "Input validation failed"
    assert data["details"][0]["loc"] == ["query", "limit"]


def test_missing_user_renders_not_found(open_admin, fake_db):
    response = client.get("/payment/status/psid-unknown")
    assert response.status_code == 404
    data = response.json()
    assert data["code"] == "NOT_FOUND"
    assert data["error"] == "User psid-unknown not found"


def test_wrong_admin_key_renders_authentication_error(monkeypatch, fake_db):
    monkeypatch.setattr(settings, "ADMIN_API_KEY", "secret")
    response = client.post("/payment/cleanup", headers={"X-Admin-Key": "guess"})
    assert response.status_code == 401
    assert response.json()["code"] == "AUTHENTICATION_FAILED"

def test_stale_state_maps_to_conflict():
    from app.core.exceptions import StaleStateError

    @app.get("/test-stale-state")
    def trigger_stale_state():
        raise StaleStateError(details={"identity": "psid-1", "version": 3})

    response = client.get("/test-stale-state")
    assert response.status_code == 409
    data = response.json()
    assert data["code"] == "STALE_STATE"
    assert data["details"] == {"identity": "psid-1", "version": 3}

@pytest.mark.parametrize("exc_name, status, code", [
    ("AuthenticationError", 401, "AUTHENTICATION_FAILED"),
    ("ExternalServiceError", 502, "EXTERNAL_SERVICE_ERROR"),
    ("AIServiceError", 502, "AI_SERVICE_ERROR"),
    ("PaymentGatewayError", 502, "PAYMENT_GATEWAY_ERROR"),
    ("InvalidTransitionError", 409, "INVALID_TRANSITION"),
])
def test_error_hierarchy(exc_name, status, code):
    from app.core import exceptions

    exc = getattr(exceptions, exc_name)("boom")
    assert isinstance(exc, exceptions.AnswerBotError)
    assert exc.status_code == status
    assert exc.code == code
