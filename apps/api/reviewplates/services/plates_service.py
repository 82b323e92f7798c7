from sqlalchemy import select
from sqlalchemy.orm import Session

from reviewplates.auth.access import Action, Capability, Collection, ensure_allowed
from reviewplates.models.order import Order
from reviewplates.models.plate import Plate
from reviewplates.services.plate_generator import list_order_plates


def get_plate_by_slug(db: Session, slug: str, *, capability: Capability) -> Plate | None:
    ensure_allowed(capability, Collection.PLATES, Action.READ)
    return db.scalar(select(Plate).where(Plate.slug == slug))


def list_plates_for_order(db: Session, order: Order, *, capability: Capability) -> list[Plate]:
    ensure_allowed(capability, Collection.PLATES, Action.READ)
    return list_order_plates(db, order)
