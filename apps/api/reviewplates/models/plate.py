import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from reviewplates.db.base import Base
from reviewplates.models.domain import now_utc


class PlateStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVATED = "activated"


class Plate(Base):
    __tablename__ = "plates"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    slug: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    # order_number|line_item_id|unit_index
    source_key: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    line_item_id: Mapped[str] = mapped_column(String(128), nullable=False)
    unit_index: Mapped[int] = mapped_column(Integer, nullable=False)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    google_review_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    status: Mapped[PlateStatus] = mapped_column(
        Enum(
            PlateStatus,
            name="plate_status",
            values_callable=lambda members: [member.value for member in members],
        ),
        nullable=False,
        default=PlateStatus.PENDING,
    )
    activated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now_utc, server_default=func.now()
    )
