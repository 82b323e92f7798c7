from fastapi import APIRouter, Depends

from reviewplates.auth.dependencies import AuthContext, require_backoffice
from reviewplates.observability import metrics_store
from reviewplates.schemas.metrics import MetricsResponse

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("", summary="Ingestion metrics", response_model=MetricsResponse)
def metrics_endpoint(
    _auth: AuthContext = Depends(require_backoffice),
) -> MetricsResponse:
    """Webhook, plate and notification counters; OPS/ADMIN only."""
    snapshot = metrics_store.snapshot()
    return MetricsResponse(counters=snapshot.counters, timings=snapshot.timings)
