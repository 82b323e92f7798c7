def test_health_check(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_readiness_check(client):
    response = client.get("/ready")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "dependencies": [{"name": "database", "status": "ok"}],
    }


def test_readiness_check_includes_smtp_when_notifications_enabled(client, monkeypatch):
    from reviewplates.routers import health

    monkeypatch.setattr(health.settings, "plates_notification_email", "ops@example.com")
    monkeypatch.setattr(health, "smtp_dependency_status", lambda *_args, **_kwargs: "ok")

    response = client.get("/ready")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "dependencies": [
            {"name": "database", "status": "ok"},
            {"name": "smtp", "status": "ok"},
        ],
    }


def test_readiness_check_degraded_when_smtp_unavailable(client, monkeypatch):
    from reviewplates.routers import health

    monkeypatch.setattr(health.settings, "plates_notification_email", "ops@example.com")
    monkeypatch.setattr(health, "smtp_dependency_status", lambda *_args, **_kwargs: "error")

    response = client.get("/ready")

    assert response.status_code == 503
    assert response.json()["status"] == "degraded"


def test_readiness_check_degraded_when_database_unavailable(client, monkeypatch):
    from reviewplates.routers import health

    def _broken_db(*args, **kwargs):
        raise RuntimeError("unexpected")

    monkeypatch.setattr(health, "database_dependency_status", _broken_db)

    response = client.get("/ready")

    assert response.status_code == 503
    assert response.json() == {
        "status": "degraded",
        "dependencies": [{"name": "database", "status": "error"}],
    }


def test_health_endpoint_exposes_explicit_response_schema(client):
    openapi = client.get("/openapi.json")
    assert openapi.status_code == 200

    payload = openapi.json()
    ready_get = payload["paths"]["/ready"]["get"]

    assert ready_get["responses"]["200"]["content"]["application/json"]["schema"]["$ref"] == (
        "#/components/schemas/ReadinessResponse"
    )
    assert ready_get["responses"]["503"]["content"]["application/json"]["schema"]["$ref"] == (
        "#/components/schemas/ReadinessResponse"
    )
