import pytest

from reviewplates.auth.jwt import issue_jwt
from reviewplates.config import settings


def _bearer(role: str, sub: str = "ops-1") -> dict[str, str]:
    token = issue_jwt({"sub": sub, "role": role}, settings.jwt_secret)
    return {"Authorization": f"Bearer {token}"}


def test_metrics_endpoint_returns_typed_payload(client):
    response = client.get("/metrics", headers=_bearer("OPS"))

    assert response.status_code == 200
    payload = response.json()
    assert isinstance(payload["counters"], dict)
    assert isinstance(payload["timings"], dict)


def test_metrics_endpoint_exposes_explicit_response_schema(client):
    openapi = client.get("/openapi.json")
    assert openapi.status_code == 200

    metrics_get = openapi.json()["paths"]["/metrics"]["get"]
    assert metrics_get["responses"]["200"]["content"]["application/json"]["schema"]["$ref"] == (
        "#/components/schemas/MetricsResponse"
    )


def test_metrics_endpoint_requires_bearer_token(client):
    response = client.get("/metrics")

    assert response.status_code == 401
    assert response.json()["detail"] == "Missing bearer token"


def test_metrics_endpoint_rejects_unknown_role(client):
    response = client.get("/metrics", headers=_bearer("MERCHANT", "merchant-1"))

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid JWT claims"


def test_metrics_endpoint_rejects_token_signed_with_other_secret(client):
    token = issue_jwt({"sub": "ops-1", "role": "OPS"}, "not-the-configured-secret")
    response = client.get("/metrics", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid JWT"


def test_metrics_endpoint_rejects_expired_token(client):
    token = issue_jwt({"sub": "ops-1", "role": "OPS"}, settings.jwt_secret, expires_in_s=-10)
    response = client.get("/metrics", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401


@pytest.mark.parametrize("role", ["OPS", "ADMIN"])
def test_metrics_endpoint_accepts_backoffice_roles(client, role):
    response = client.get("/metrics", headers=_bearer(role))

    assert response.status_code == 200


def test_metrics_capture_readiness_error_counter_on_degraded_check(client, monkeypatch):
    from reviewplates.routers import health

    monkeypatch.setattr(health, "database_dependency_status", lambda *_a, **_k: "error")

    ready = client.get("/ready")
    assert ready.status_code == 503

    metrics = client.get("/metrics", headers=_bearer("ADMIN", "admin-1"))
    counters = metrics.json().get("counters", {})
    assert int(counters.get("readiness_dependency_checked_total", 0)) >= 1
    assert int(counters.get("readiness_dependency_error_total", 0)) >= 1
