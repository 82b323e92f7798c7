"""Turn one Shopify ``orders/paid`` delivery into plates, exactly once.

Outcomes:
    processed  -- order upserted, plates generated, ledger row closed
    duplicate  -- the delivery id is already owned by another execution
    failed     -- the payload cannot produce plates; recorded, not retried

Authentication problems raise :class:`AuthenticationError` before anything
is persisted. Infrastructure problems raise :class:`InfrastructureError`
with the ledger row still ``received`` so the next redelivery retries.
"""

import enum
import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reviewplates.auth.access import Capability
from reviewplates.config import SHOPIFY_ORDERS_PAID_TOPIC, settings
from reviewplates.observability import log_event, metrics_store, observe_timing
from reviewplates.services.errors import (
    AuthenticationError,
    BusinessDataError,
    InfrastructureError,
)
from reviewplates.services.event_ledger import mark_failed, mark_processed
from reviewplates.services.group_extractor import extract_order_groups, parse_order_payload
from reviewplates.services.orders_service import finalize_order, upsert_paid_order
from reviewplates.services.plate_generator import CreatedPlate, generate_plates
from reviewplates.services.replay_guard import register_delivery, release_claim
from reviewplates.services.signature import verify_shopify_hmac


class IngestStatus(str, enum.Enum):
    PROCESSED = "processed"
    FAILED = "failed"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class WebhookHeaders:
    topic: str | None
    webhook_id: str | None
    hmac: str | None


@dataclass
class IngestOutcome:
    status: IngestStatus
    webhook_id: str
    order_number: str | None = None
    customer_email: str | None = None
    created_plates: list[CreatedPlate] = field(default_factory=list)
    error: str | None = None


def _authenticate(raw_body: bytes, headers: WebhookHeaders) -> str:
    topic = (headers.topic or "").strip()
    webhook_id = (headers.webhook_id or "").strip()

    if topic != SHOPIFY_ORDERS_PAID_TOPIC:
        raise AuthenticationError(f"Unexpected webhook topic: {topic or '<missing>'}")
    if not webhook_id:
        raise AuthenticationError("Missing X-Shopify-Webhook-Id")
    if settings.shopify_webhook_verify_signature and not verify_shopify_hmac(
        raw_body, headers.hmac, settings.shopify_webhook_secret
    ):
        raise AuthenticationError("Invalid HMAC")
    return webhook_id


def _infrastructure_failure(
    db: Session,
    event_id: uuid.UUID,
    *,
    webhook_id: str,
    order_number: str | None,
    exc: Exception,
) -> InfrastructureError:
    metrics_store.increment("webhook_infra_error_total")
    release_claim(db, event_id)
    log_event(
        "webhook_infrastructure_error",
        webhook_id=webhook_id,
        order_number=order_number,
        error=str(exc),
        level=logging.ERROR,
        exc_info=True,
    )
    if isinstance(exc, InfrastructureError):
        return exc
    if isinstance(exc, SQLAlchemyError):
        return InfrastructureError(f"Database error while ingesting: {exc}")
    return InfrastructureError(
        f"Unexpected error while ingesting: {type(exc).__name__}: {exc}", code="UNEXPECTED"
    )


def _record_business_failure(
    db: Session,
    event_id: uuid.UUID,
    *,
    webhook_id: str,
    order_number: str | None,
    exc: BusinessDataError,
) -> IngestOutcome:
    db.rollback()
    try:
        mark_failed(db, event_id, error=exc.message, order_number=order_number)
    except InfrastructureError as ledger_exc:
        raise _infrastructure_failure(
            db, event_id, webhook_id=webhook_id, order_number=order_number, exc=ledger_exc
        ) from exc

    log_event(
        "webhook_failed",
        webhook_id=webhook_id,
        order_number=order_number,
        error=str(exc),
        level=logging.WARNING,
    )
    return IngestOutcome(
        status=IngestStatus.FAILED,
        webhook_id=webhook_id,
        order_number=order_number,
        error=exc.message,
    )


def ingest_orders_paid(
    db: Session,
    *,
    raw_body: bytes,
    headers: WebhookHeaders,
    capability: Capability,
) -> IngestOutcome:
    with observe_timing("webhook_ingest_duration_seconds"):
        try:
            webhook_id = _authenticate(raw_body, headers)
        except AuthenticationError as exc:
            metrics_store.increment("webhook_auth_failed_total")
            log_event(
                "webhook_rejected",
                webhook_id=headers.webhook_id,
                error=exc.message,
                level=logging.WARNING,
            )
            raise

        claim = register_delivery(db, webhook_id=webhook_id, topic=SHOPIFY_ORDERS_PAID_TOPIC)
        if claim.replay:
            log_event("webhook_duplicate", webhook_id=webhook_id)
            return IngestOutcome(status=IngestStatus.DUPLICATE, webhook_id=webhook_id)

        event_id = claim.event_id
        order_number: str | None = None
        try:
            parsed = parse_order_payload(raw_body)
            order_number = parsed.order_number
            groups = extract_order_groups(parsed)

            order = upsert_paid_order(
                db,
                order_number=parsed.order_number,
                customer_email=parsed.customer_email,
                capability=capability,
            )
            generation = generate_plates(db, order=order, groups=groups, capability=capability)
            finalize_order(db, order, generation.plates, capability=capability)
            mark_processed(
                db,
                event_id,
                order_number=parsed.order_number,
                created_plates_count=len(generation.created),
            )
        except BusinessDataError as exc:
            return _record_business_failure(
                db, event_id, webhook_id=webhook_id, order_number=order_number, exc=exc
            )
        except (InfrastructureError, SQLAlchemyError) as exc:
            error = _infrastructure_failure(
                db, event_id, webhook_id=webhook_id, order_number=order_number, exc=exc
            )
            if error is exc:
                raise
            raise error from exc
        except Exception as exc:
            # Any other fault leaves the claim free for the next redelivery.
            raise _infrastructure_failure(
                db, event_id, webhook_id=webhook_id, order_number=order_number, exc=exc
            ) from exc

        log_event(
            "webhook_processed",
            webhook_id=webhook_id,
            order_number=parsed.order_number,
            plate_count=len(generation.created),
        )
        return IngestOutcome(
            status=IngestStatus.PROCESSED,
            webhook_id=webhook_id,
            order_number=parsed.order_number,
            customer_email=parsed.customer_email,
            created_plates=generation.created,
        )
