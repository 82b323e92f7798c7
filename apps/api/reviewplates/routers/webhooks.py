import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Header, Request, Response, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from reviewplates.auth.access import PIPELINE_CAPABILITY
from reviewplates.db.session import get_db
from reviewplates.dependencies import get_notification_dispatcher
from reviewplates.observability import log_event
from reviewplates.services.errors import AuthenticationError, InfrastructureError
from reviewplates.services.notifications import NotificationDispatcher
from reviewplates.services.webhook_ingest_service import (
    IngestStatus,
    WebhookHeaders,
    ingest_orders_paid,
)

router = APIRouter(prefix="/shopify/webhook", tags=["webhooks"])


@router.post(
    "/orders-paid",
    summary="Shopify orders/paid webhook",
    status_code=status.HTTP_200_OK,
    response_class=Response,
    responses={
        status.HTTP_401_UNAUTHORIZED: {"description": "Topic, webhook id or HMAC rejected"},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"description": "Transient failure; Shopify retries"},
    },
)
async def orders_paid_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    x_shopify_topic: str | None = Header(default=None, alias="X-Shopify-Topic"),
    x_shopify_webhook_id: str | None = Header(default=None, alias="X-Shopify-Webhook-Id"),
    x_shopify_hmac_sha256: str | None = Header(default=None, alias="X-Shopify-Hmac-Sha256"),
) -> Response:
    # The HMAC covers the exact bytes Shopify sent; never re-serialize.
    raw_body = await request.body()
    headers = WebhookHeaders(
        topic=x_shopify_topic,
        webhook_id=x_shopify_webhook_id,
        hmac=x_shopify_hmac_sha256,
    )

    try:
        outcome = await run_in_threadpool(
            ingest_orders_paid,
            db,
            raw_body=raw_body,
            headers=headers,
            capability=PIPELINE_CAPABILITY,
        )
    except AuthenticationError:
        return Response(status_code=status.HTTP_401_UNAUTHORIZED)
    except InfrastructureError as exc:
        log_event(
            "webhook_returned_500",
            webhook_id=headers.webhook_id,
            error=str(exc),
            level=logging.ERROR,
        )
        return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    if outcome.status == IngestStatus.PROCESSED and outcome.created_plates:
        background_tasks.add_task(dispatcher.dispatch, outcome)
    return Response(status_code=status.HTTP_200_OK)
