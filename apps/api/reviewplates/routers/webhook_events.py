from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from reviewplates.auth.access import capability_for
from reviewplates.auth.dependencies import AuthContext, require_backoffice
from reviewplates.db.session import get_db
from reviewplates.models.webhook_event import WebhookEventStatus
from reviewplates.schemas.webhook_event import WebhookEventListResponse, WebhookEventResponse
from reviewplates.services.errors import AccessDeniedError
from reviewplates.services.event_ledger import get_webhook_event, list_webhook_events

router = APIRouter(prefix="/api/v1/webhook-events", tags=["webhook-events"])


@router.get("", response_model=WebhookEventListResponse, summary="List webhook deliveries")
def list_webhook_events_endpoint(
    status_filter: WebhookEventStatus | None = Query(default=None, alias="status"),
    order_number: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_backoffice),
) -> WebhookEventListResponse:
    try:
        events = list_webhook_events(
            db,
            capability=capability_for(auth),
            status_filter=status_filter,
            order_number=order_number,
            limit=limit,
        )
    except AccessDeniedError as err:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=err.message) from err
    return WebhookEventListResponse(
        items=[WebhookEventResponse.model_validate(event) for event in events]
    )


@router.get(
    "/{webhook_id}",
    response_model=WebhookEventResponse,
    summary="Get one webhook delivery",
)
def get_webhook_event_endpoint(
    webhook_id: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_backoffice),
) -> WebhookEventResponse:
    try:
        event = get_webhook_event(db, webhook_id, capability=capability_for(auth))
    except AccessDeniedError as err:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=err.message) from err
    if event is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Webhook event not found")
    return WebhookEventResponse.model_validate(event)
