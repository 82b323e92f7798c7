from reviewplates.schemas.health import HealthResponse, ReadinessDependency, ReadinessResponse
from reviewplates.schemas.metrics import MetricsResponse, TimingMetricStats
from reviewplates.schemas.order import (
    OrderDetailResponse,
    OrderListResponse,
    OrderResponse,
    PlateResponse,
)
from reviewplates.schemas.webhook_event import WebhookEventListResponse, WebhookEventResponse

__all__ = [
    "HealthResponse",
    "ReadinessDependency",
    "ReadinessResponse",
    "MetricsResponse",
    "TimingMetricStats",
    "OrderResponse",
    "OrderDetailResponse",
    "OrderListResponse",
    "PlateResponse",
    "WebhookEventResponse",
    "WebhookEventListResponse",
]
