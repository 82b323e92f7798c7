import uuid
from datetime import datetime, timedelta

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reviewplates.auth.access import Action, Capability, Collection, ensure_allowed
from reviewplates.models.domain import now_utc
from reviewplates.models.webhook_event import (
    TERMINAL_WEBHOOK_EVENT_STATUSES,
    WebhookEvent,
    WebhookEventStatus,
)
from reviewplates.observability import metrics_store
from reviewplates.services.errors import InfrastructureError

WEBHOOK_EVENT_STATE_TRANSITIONS: dict[WebhookEventStatus, set[WebhookEventStatus]] = {
    WebhookEventStatus.RECEIVED: {WebhookEventStatus.PROCESSED, WebhookEventStatus.FAILED},
    WebhookEventStatus.PROCESSED: set(),
    WebhookEventStatus.FAILED: set(),
}

MAX_ERROR_LENGTH = 2000


def can_transition(current: WebhookEventStatus, next_status: WebhookEventStatus) -> bool:
    return next_status in WEBHOOK_EVENT_STATE_TRANSITIONS.get(current, set())


def _finalize(
    db: Session,
    event_id: uuid.UUID,
    next_status: WebhookEventStatus,
    values: dict,
) -> bool:
    """Move a ``received`` event to a terminal status.

    The WHERE clause carries the state machine: a row that is already
    terminal is left untouched and False is returned.
    """
    sources = [
        status
        for status, targets in WEBHOOK_EVENT_STATE_TRANSITIONS.items()
        if next_status in targets
    ]
    try:
        result = db.execute(
            update(WebhookEvent)
            .where(WebhookEvent.id == event_id, WebhookEvent.status.in_(sources))
            .values(status=next_status, updated_at=now_utc(), **values)
            .execution_options(synchronize_session=False)
        )
        updated = bool(result.rowcount)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise InfrastructureError(
            f"Unable to mark webhook event {next_status.value}: {exc}"
        ) from exc
    return updated


def mark_processed(
    db: Session,
    event_id: uuid.UUID,
    *,
    order_number: str,
    created_plates_count: int,
) -> bool:
    updated = _finalize(
        db,
        event_id,
        WebhookEventStatus.PROCESSED,
        {
            "order_number": order_number,
            "created_plates_count": created_plates_count,
            "error": None,
            "claimed_at": None,
        },
    )
    if updated:
        metrics_store.increment("webhook_processed_total")
    return updated


def mark_failed(
    db: Session,
    event_id: uuid.UUID,
    *,
    error: str,
    order_number: str | None = None,
) -> bool:
    values: dict = {"error": error[:MAX_ERROR_LENGTH], "claimed_at": None}
    if order_number:
        values["order_number"] = order_number
    updated = _finalize(db, event_id, WebhookEventStatus.FAILED, values)
    if updated:
        metrics_store.increment("webhook_failed_total")
    return updated


def get_webhook_event(
    db: Session, webhook_id: str, *, capability: Capability
) -> WebhookEvent | None:
    ensure_allowed(capability, Collection.WEBHOOK_EVENTS, Action.READ)
    return db.scalar(select(WebhookEvent).where(WebhookEvent.webhook_id == webhook_id))


def list_webhook_events(
    db: Session,
    *,
    capability: Capability,
    status_filter: WebhookEventStatus | None = None,
    order_number: str | None = None,
    limit: int = 50,
) -> list[WebhookEvent]:
    ensure_allowed(capability, Collection.WEBHOOK_EVENTS, Action.READ)
    query = select(WebhookEvent)
    if status_filter:
        query = query.where(WebhookEvent.status == status_filter)
    if order_number:
        query = query.where(WebhookEvent.order_number == order_number)
    return list(db.scalars(query.order_by(WebhookEvent.created_at.desc()).limit(limit)))


def purge_terminal_events(
    db: Session,
    *,
    keep_days: int,
    capability: Capability,
    now: datetime | None = None,
) -> int:
    """Delete processed/failed events older than the retention window.

    ``received`` rows are kept: they are the trail of stuck deliveries.
    """
    ensure_allowed(capability, Collection.WEBHOOK_EVENTS, Action.DELETE)
    cutoff = (now or now_utc()) - timedelta(days=keep_days)
    result = db.execute(
        delete(WebhookEvent)
        .where(
            WebhookEvent.created_at < cutoff,
            WebhookEvent.status.in_(list(TERMINAL_WEBHOOK_EVENT_STATUSES)),
        )
        .execution_options(synchronize_session=False)
    )
    purged = int(result.rowcount or 0)
    db.commit()
    if purged:
        metrics_store.increment("webhook_events_purged_total", purged)
    return purged
