import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from reviewplates.models.order import OrderStatus
from reviewplates.models.plate import PlateStatus


class PlateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    slug: str
    source_key: str
    line_item_id: str
    unit_index: int
    google_review_url: str
    status: PlateStatus
    activated_at: datetime | None
    created_at: datetime


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    customer_email: str
    status: OrderStatus
    activated: bool
    plate_ids: list[str]
    created_at: datetime
    updated_at: datetime


class OrderDetailResponse(OrderResponse):
    plates: list[PlateResponse]


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
