import json

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from reviewplates.auth.access import PIPELINE_CAPABILITY
from reviewplates.config import settings
from reviewplates.models.order import Order
from reviewplates.models.plate import Plate
from reviewplates.models.webhook_event import WebhookEvent, WebhookEventStatus
from reviewplates.observability import metrics_store
from reviewplates.services import webhook_ingest_service
from reviewplates.services.errors import (
    AuthenticationError,
    ConfigurationError,
    InfrastructureError,
)
from reviewplates.services.signature import compute_shopify_hmac
from reviewplates.services.webhook_ingest_service import (
    IngestStatus,
    WebhookHeaders,
    ingest_orders_paid,
)

PAYLOAD = {
    "order_number": 1001,
    "email": "client@example.com",
    "line_items": [
        {
            "id": "li_77",
            "variant_title": "blanc / 2 Plaques",
            "quantity": 1,
            "properties": [
                {"name": "google_business_url", "value": "https://g.page/r/ABC123/review"}
            ],
        }
    ],
}


def _signed(body: bytes, webhook_id: str = "wh-1", topic: str = "orders/paid") -> WebhookHeaders:
    return WebhookHeaders(
        topic=topic,
        webhook_id=webhook_id,
        hmac=compute_shopify_hmac(body, settings.shopify_webhook_secret),
    )


def _count(db_session, model) -> int:
    return db_session.scalar(select(func.count()).select_from(model))


def _ingest(db_session, body: bytes, headers: WebhookHeaders):
    return ingest_orders_paid(
        db_session, raw_body=body, headers=headers, capability=PIPELINE_CAPABILITY
    )


def test_processed_outcome_reports_created_plates(db_session):
    body = json.dumps(PAYLOAD).encode()

    outcome = _ingest(db_session, body, _signed(body))

    assert outcome.status == IngestStatus.PROCESSED
    assert outcome.order_number == "1001"
    assert outcome.customer_email == "client@example.com"
    assert [plate.source_key for plate in outcome.created_plates] == [
        "1001|li_77|0",
        "1001|li_77|1",
    ]
    counters = metrics_store.snapshot().counters
    assert counters["webhook_processed_total"] == 1
    assert "webhook_ingest_duration_seconds" in metrics_store.snapshot().timings


@pytest.mark.parametrize(
    "headers",
    [
        WebhookHeaders(topic="orders/create", webhook_id="wh-1", hmac=None),
        WebhookHeaders(topic=None, webhook_id="wh-1", hmac=None),
        WebhookHeaders(topic="orders/paid", webhook_id=" ", hmac=None),
        WebhookHeaders(topic="orders/paid", webhook_id="wh-1", hmac="forged"),
    ],
)
def test_authentication_failures_persist_nothing(db_session, headers):
    with pytest.raises(AuthenticationError):
        _ingest(db_session, json.dumps(PAYLOAD).encode(), headers)

    assert _count(db_session, WebhookEvent) == 0
    assert metrics_store.snapshot().counters["webhook_auth_failed_total"] == 1


def test_missing_secret_is_a_configuration_error(db_session, monkeypatch):
    monkeypatch.setattr(settings, "shopify_webhook_secret", "")
    body = json.dumps(PAYLOAD).encode()

    with pytest.raises(ConfigurationError):
        _ingest(db_session, body, WebhookHeaders("orders/paid", "wh-1", "anything"))

    assert _count(db_session, WebhookEvent) == 0


def test_signature_check_can_be_disabled_for_local_replays(db_session, monkeypatch):
    monkeypatch.setattr(settings, "shopify_webhook_verify_signature", False)
    body = json.dumps(PAYLOAD).encode()

    outcome = _ingest(db_session, body, WebhookHeaders("orders/paid", "wh-1", None))

    assert outcome.status == IngestStatus.PROCESSED


def test_business_failure_marks_event_failed(db_session):
    payload = {**PAYLOAD, "line_items": [{**PAYLOAD["line_items"][0], "variant_title": "blanc"}]}
    body = json.dumps(payload).encode()

    outcome = _ingest(db_session, body, _signed(body))

    event = db_session.scalar(select(WebhookEvent))
    assert outcome.status == IngestStatus.FAILED
    assert outcome.order_number == "1001"
    assert event.status == WebhookEventStatus.FAILED
    assert event.order_number == "1001"
    assert "pack size" in event.error
    assert _count(db_session, Plate) == 0
    assert _count(db_session, Order) == 0


def test_infrastructure_failure_releases_claim_and_keeps_event_received(db_session, monkeypatch):
    def broken_generate(*args, **kwargs):
        raise OperationalError("INSERT INTO plates", {}, Exception("database is locked"))

    monkeypatch.setattr(webhook_ingest_service, "generate_plates", broken_generate)
    body = json.dumps(PAYLOAD).encode()

    with pytest.raises(InfrastructureError):
        _ingest(db_session, body, _signed(body))

    event = db_session.scalar(select(WebhookEvent))
    assert event.status == WebhookEventStatus.RECEIVED
    assert event.claimed_at is None
    assert metrics_store.snapshot().counters["webhook_infra_error_total"] == 1

    monkeypatch.undo()
    retry = _ingest(db_session, body, _signed(body))

    assert retry.status == IngestStatus.PROCESSED
    assert len(retry.created_plates) == 2
    assert _count(db_session, WebhookEvent) == 1


def test_unexpected_error_releases_claim_so_redelivery_is_processed(db_session, monkeypatch):
    def broken_generate(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(webhook_ingest_service, "generate_plates", broken_generate)
    body = json.dumps(PAYLOAD).encode()

    with pytest.raises(InfrastructureError) as exc_info:
        _ingest(db_session, body, _signed(body))

    assert exc_info.value.code == "UNEXPECTED"
    event = db_session.scalar(select(WebhookEvent))
    assert event.status == WebhookEventStatus.RECEIVED
    assert event.claimed_at is None

    monkeypatch.undo()
    redelivery = _ingest(db_session, body, _signed(body))

    assert redelivery.status == IngestStatus.PROCESSED
    assert _count(db_session, Plate) == 2


def test_oversized_quantity_does_not_hold_the_claim(db_session):
    line_item = {**PAYLOAD["line_items"][0], "quantity": 10**400}
    body = json.dumps({**PAYLOAD, "line_items": [line_item]}).encode()

    first = _ingest(db_session, body, _signed(body))
    redelivery = _ingest(db_session, body, _signed(body))

    assert first.status == IngestStatus.PROCESSED
    assert [plate.source_key for plate in first.created_plates] == [
        "1001|li_77|0",
        "1001|li_77|1",
    ]
    assert redelivery.status == IngestStatus.DUPLICATE
    assert _count(db_session, Plate) == 2
