from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from reviewplates.auth.access import Action, Capability, Collection, ensure_allowed
from reviewplates.models.order import Order, OrderStatus
from reviewplates.models.plate import Plate
from reviewplates.services.db_errors import is_unique_violation


def get_order_by_number(db: Session, order_number: str) -> Order | None:
    return db.scalar(select(Order).where(Order.order_number == order_number))


def _apply_paid_fields(order: Order, customer_email: str) -> None:
    order.customer_email = customer_email
    order.status = OrderStatus.PAID


def upsert_paid_order(
    db: Session,
    *,
    order_number: str,
    customer_email: str,
    capability: Capability,
) -> Order:
    """Create or update the order for ``order_number``; never create it twice.

    Two deliveries of the same order may race past the replay guard (an
    original and its retry carry different webhook ids). The loser of the
    insert race falls back to updating the winner's row; whichever update
    commits last wins, which is fine because plate uniqueness does not
    depend on it.
    """
    existing = get_order_by_number(db, order_number)
    if existing is not None:
        ensure_allowed(capability, Collection.ORDERS, Action.UPDATE)
        _apply_paid_fields(existing, customer_email)
        db.commit()
        return existing

    ensure_allowed(capability, Collection.ORDERS, Action.CREATE)
    order = Order(
        order_number=order_number,
        customer_email=customer_email,
        status=OrderStatus.PAID,
        activated=False,
        plate_ids=[],
    )
    db.add(order)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if not is_unique_violation(exc):
            raise
        winner = get_order_by_number(db, order_number)
        if winner is None:
            raise
        _apply_paid_fields(winner, customer_email)
        db.commit()
        return winner
    return order


def finalize_order(
    db: Session,
    order: Order,
    plates: Sequence[Plate],
    *,
    capability: Capability,
) -> Order:
    ensure_allowed(capability, Collection.ORDERS, Action.UPDATE)
    order.activated = True
    order.plate_ids = [str(plate.id) for plate in plates]
    db.commit()
    return order


def list_orders(
    db: Session,
    *,
    capability: Capability,
    status_filter: OrderStatus | None = None,
    limit: int = 50,
) -> list[Order]:
    ensure_allowed(capability, Collection.ORDERS, Action.READ)
    query = select(Order)
    if status_filter:
        query = query.where(Order.status == status_filter)
    return list(db.scalars(query.order_by(Order.created_at.desc()).limit(limit)))


def get_order_for_capability(db: Session, order_number: str, *, capability: Capability) -> Order | None:
    ensure_allowed(capability, Collection.ORDERS, Action.READ)
    return get_order_by_number(db, order_number)
