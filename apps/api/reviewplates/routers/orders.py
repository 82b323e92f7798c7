from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from reviewplates.auth.access import capability_for
from reviewplates.auth.dependencies import AuthContext, require_backoffice
from reviewplates.db.session import get_db
from reviewplates.models.order import OrderStatus
from reviewplates.schemas.order import (
    OrderDetailResponse,
    OrderListResponse,
    OrderResponse,
    PlateResponse,
)
from reviewplates.services.errors import AccessDeniedError
from reviewplates.services.orders_service import get_order_for_capability, list_orders
from reviewplates.services.plates_service import list_plates_for_order

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])


def _forbidden(err: AccessDeniedError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=err.message)


@router.get("", response_model=OrderListResponse, summary="List orders")
def list_orders_endpoint(
    status_filter: OrderStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_backoffice),
) -> OrderListResponse:
    try:
        orders = list_orders(
            db, capability=capability_for(auth), status_filter=status_filter, limit=limit
        )
    except AccessDeniedError as err:
        raise _forbidden(err) from err
    return OrderListResponse(items=[OrderResponse.model_validate(order) for order in orders])


@router.get(
    "/{order_number}",
    response_model=OrderDetailResponse,
    summary="Get order with its plates",
)
def get_order_endpoint(
    order_number: str,
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(require_backoffice),
) -> OrderDetailResponse:
    capability = capability_for(auth)
    try:
        order = get_order_for_capability(db, order_number, capability=capability)
        if order is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
        plates = list_plates_for_order(db, order, capability=capability)
    except AccessDeniedError as err:
        raise _forbidden(err) from err

    base = OrderResponse.model_validate(order)
    return OrderDetailResponse(
        **base.model_dump(),
        plates=[PlateResponse.model_validate(plate) for plate in plates],
    )
