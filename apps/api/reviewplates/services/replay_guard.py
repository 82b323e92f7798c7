"""Register each Shopify delivery exactly once.

The unique index on ``webhook_events.webhook_id`` is the only
synchronization primitive: whichever execution commits the insert owns
the delivery, every other execution sees a unique violation and stops.

A row left at ``received`` by an execution that died or hit an
infrastructure error can be claimed again once its claim has been
released or has gone stale. The reclaim is a single conditional UPDATE,
so two redeliveries racing for the same stale row cannot both win.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from reviewplates.config import settings
from reviewplates.models.domain import now_utc
from reviewplates.models.webhook_event import WebhookEvent, WebhookEventStatus
from reviewplates.observability import log_event, metrics_store
from reviewplates.services.db_errors import is_unique_violation
from reviewplates.services.errors import InfrastructureError

SHOPIFY_PROVIDER = "shopify"


@dataclass(frozen=True)
class DeliveryClaim:
    webhook_id: str
    event_id: uuid.UUID | None
    replay: bool
    reclaimed: bool = False


def _insert_event(db: Session, *, webhook_id: str, topic: str, now: datetime) -> uuid.UUID:
    event = WebhookEvent(
        provider=SHOPIFY_PROVIDER,
        webhook_id=webhook_id,
        topic=topic,
        status=WebhookEventStatus.RECEIVED,
        attempts=1,
        claimed_at=now,
    )
    db.add(event)
    db.commit()
    return event.id


def _reclaim_stale_event(db: Session, *, webhook_id: str, now: datetime) -> uuid.UUID | None:
    cutoff = now - timedelta(seconds=settings.webhook_claim_timeout_s)
    result = db.execute(
        update(WebhookEvent)
        .where(
            WebhookEvent.webhook_id == webhook_id,
            WebhookEvent.status == WebhookEventStatus.RECEIVED,
            or_(WebhookEvent.claimed_at.is_(None), WebhookEvent.claimed_at < cutoff),
        )
        .values(claimed_at=now, attempts=WebhookEvent.attempts + 1, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    claimed = result.rowcount == 1
    db.commit()
    if not claimed:
        return None
    return db.scalar(select(WebhookEvent.id).where(WebhookEvent.webhook_id == webhook_id))


def register_delivery(
    db: Session,
    *,
    webhook_id: str,
    topic: str,
    now: datetime | None = None,
) -> DeliveryClaim:
    now = now or now_utc()
    try:
        event_id = _insert_event(db, webhook_id=webhook_id, topic=topic, now=now)
    except IntegrityError as exc:
        db.rollback()
        if not is_unique_violation(exc):
            raise InfrastructureError(f"Unable to register webhook event: {exc.orig}") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise InfrastructureError(f"Unable to register webhook event: {exc}") from exc
    else:
        metrics_store.increment("webhook_received_total")
        return DeliveryClaim(webhook_id=webhook_id, event_id=event_id, replay=False)

    try:
        event_id = _reclaim_stale_event(db, webhook_id=webhook_id, now=now)
    except SQLAlchemyError as exc:
        db.rollback()
        raise InfrastructureError(f"Unable to reclaim webhook event: {exc}") from exc

    if event_id is None:
        metrics_store.increment("webhook_duplicate_total")
        return DeliveryClaim(webhook_id=webhook_id, event_id=None, replay=True)

    metrics_store.increment("webhook_reclaimed_total")
    log_event("webhook_event_reclaimed", webhook_id=webhook_id)
    return DeliveryClaim(webhook_id=webhook_id, event_id=event_id, replay=False, reclaimed=True)


def release_claim(db: Session, event_id: uuid.UUID) -> bool:
    """Let the next redelivery reclaim a ``received`` row immediately.

    Best effort: when the database is the thing that failed, the claim
    simply goes stale after ``webhook_claim_timeout_s``.
    """
    try:
        db.rollback()
        result = db.execute(
            update(WebhookEvent)
            .where(
                WebhookEvent.id == event_id,
                WebhookEvent.status == WebhookEventStatus.RECEIVED,
            )
            .values(claimed_at=None, updated_at=now_utc())
            .execution_options(synchronize_session=False)
        )
        released = bool(result.rowcount)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        log_event("webhook_claim_release_failed", error=str(exc))
        return False
    return released
