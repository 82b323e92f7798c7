"""create webhook_events, orders, plates

Revision ID: 20261001_0001
Revises:
Create Date: 2026-10-01 00:00:00
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261001_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

webhook_event_status = sa.Enum("received", "processed", "failed", name="webhook_event_status")
order_status = sa.Enum("paid", "pending", "cancelled", name="order_status")
plate_status = sa.Enum("pending", "activated", name="plate_status")


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "webhook_events",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("provider", sa.String(length=32), nullable=False),
        sa.Column("webhook_id", sa.String(length=255), nullable=False),
        sa.Column("topic", sa.String(length=64), nullable=False),
        sa.Column("status", webhook_event_status, nullable=False),
        sa.Column("order_number", sa.String(length=64), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_plates_count", sa.Integer(), nullable=True),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_webhook_events_webhook_id"), "webhook_events", ["webhook_id"], unique=True
    )
    op.create_index(op.f("ix_webhook_events_topic"), "webhook_events", ["topic"], unique=False)
    op.create_index(
        op.f("ix_webhook_events_order_number"), "webhook_events", ["order_number"], unique=False
    )
    op.create_index(
        "ix_webhook_events_status_created_at",
        "webhook_events",
        ["status", "created_at"],
        unique=False,
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_number", sa.String(length=64), nullable=False),
        sa.Column("customer_email", sa.String(length=320), nullable=False),
        sa.Column("status", order_status, nullable=False),
        sa.Column("activated", sa.Boolean(), nullable=False),
        sa.Column("plate_ids", sa.JSON(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_orders_order_number"), "orders", ["order_number"], unique=True)

    op.create_table(
        "plates",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("slug", sa.String(length=32), nullable=False),
        sa.Column("source_key", sa.String(length=255), nullable=False),
        sa.Column("line_item_id", sa.String(length=128), nullable=False),
        sa.Column("unit_index", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Uuid(), nullable=False),
        sa.Column("google_review_url", sa.String(length=1024), nullable=False),
        sa.Column("status", plate_status, nullable=False),
        sa.Column("activated_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_plates_slug"), "plates", ["slug"], unique=True)
    op.create_index(op.f("ix_plates_source_key"), "plates", ["source_key"], unique=True)
    op.create_index(op.f("ix_plates_order_id"), "plates", ["order_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_plates_order_id"), table_name="plates")
    op.drop_index(op.f("ix_plates_source_key"), table_name="plates")
    op.drop_index(op.f("ix_plates_slug"), table_name="plates")
    op.drop_table("plates")

    op.drop_index(op.f("ix_orders_order_number"), table_name="orders")
    op.drop_table("orders")

    op.drop_index("ix_webhook_events_status_created_at", table_name="webhook_events")
    op.drop_index(op.f("ix_webhook_events_order_number"), table_name="webhook_events")
    op.drop_index(op.f("ix_webhook_events_topic"), table_name="webhook_events")
    op.drop_index(op.f("ix_webhook_events_webhook_id"), table_name="webhook_events")
    op.drop_table("webhook_events")

    bind = op.get_bind()
    plate_status.drop(bind, checkfirst=True)
    order_status.drop(bind, checkfirst=True)
    webhook_event_status.drop(bind, checkfirst=True)
