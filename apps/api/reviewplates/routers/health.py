from fastapi import APIRouter, Response, status

from reviewplates.config import settings
from reviewplates.db.session import SessionLocal
from reviewplates.schemas.health import HealthResponse, ReadinessDependency, ReadinessResponse
from reviewplates.services.readiness_service import (
    database_dependency_status,
    safe_dependency_status,
    smtp_dependency_status,
)

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok")


@router.get(
    "/ready",
    summary="Readiness check",
    response_model=ReadinessResponse,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ReadinessResponse}},
)
def readiness(response: Response) -> ReadinessResponse:
    dependencies: list[ReadinessDependency] = [
        ReadinessDependency(
            name="database",
            status=safe_dependency_status(
                "database", lambda: database_dependency_status(SessionLocal)
            ),
        )
    ]

    # SMTP only matters once plate notifications are switched on.
    if settings.plates_notification_email.strip():
        dependencies.append(
            ReadinessDependency(
                name="smtp",
                status=safe_dependency_status(
                    "smtp",
                    lambda: smtp_dependency_status(settings.smtp_host, settings.smtp_port),
                ),
            )
        )

    readiness_status = "ok" if all(dep.status == "ok" for dep in dependencies) else "degraded"
    if readiness_status != "ok":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadinessResponse(status=readiness_status, dependencies=dependencies)
