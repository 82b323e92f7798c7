import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from reviewplates.models.webhook_event import WebhookEventStatus


class WebhookEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    provider: str
    webhook_id: str
    topic: str
    status: WebhookEventStatus
    order_number: str | None
    error: str | None
    created_plates_count: int | None
    attempts: int
    created_at: datetime
    updated_at: datetime


class WebhookEventListResponse(BaseModel):
    items: list[WebhookEventResponse]
