"""Deterministic, concurrency-safe plate creation.

Every physical plate is identified by
``source_key = f"{order_number}|{line_item_id}|{unit_index}"`` and the
unique index on ``plates.source_key`` is what guarantees a plate is never
created twice. The snapshot of existing keys read before the loop only
saves round-trips; a concurrent execution may still insert the same key
between the snapshot and our insert, in which case our insert is rejected
and the plate it wanted already exists.
"""

import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from reviewplates.auth.access import Action, Capability, Collection, ensure_allowed
from reviewplates.models.domain import now_utc
from reviewplates.models.order import Order
from reviewplates.models.plate import Plate, PlateStatus
from reviewplates.observability import metrics_store
from reviewplates.services.db_errors import is_unique_violation
from reviewplates.services.errors import BusinessDataError, InfrastructureError
from reviewplates.services.group_extractor import PlateGroup
from reviewplates.services.review_url import normalize_review_url

SLUG_BYTES = 6
MAX_SLUG_ATTEMPTS = 5


@dataclass(frozen=True)
class CreatedPlate:
    slug: str
    source_key: str
    review_url: str

    @property
    def public_path(self) -> str:
        return f"/p/{self.slug}"


@dataclass
class GenerationResult:
    created: list[CreatedPlate] = field(default_factory=list)
    plates: list[Plate] = field(default_factory=list)
    skipped_existing: int = 0
    skipped_race: int = 0


def build_source_key(order_number: str, line_item_id: str, unit_index: int) -> str:
    return f"{order_number}|{line_item_id}|{unit_index}"


def generate_slug() -> str:
    return secrets.token_hex(SLUG_BYTES)


def existing_source_keys(db: Session, order: Order) -> set[str]:
    return set(db.scalars(select(Plate.source_key).where(Plate.order_id == order.id)))


def list_order_plates(db: Session, order: Order) -> list[Plate]:
    return list(
        db.scalars(
            select(Plate)
            .where(Plate.order_id == order.id)
            .order_by(Plate.line_item_id.asc(), Plate.unit_index.asc())
        )
    )


def _normalized_groups(groups: list[PlateGroup]) -> list[tuple[PlateGroup, str]]:
    normalized: list[tuple[PlateGroup, str]] = []
    for group in groups:
        review_url = normalize_review_url(group.review_url)
        if review_url is None:
            raise BusinessDataError(
                f"Invalid Google review URL: {group.review_url}",
                code="INVALID_REVIEW_URL",
            )
        normalized.append((group, review_url))
    return normalized


def _source_key_exists(db: Session, source_key: str) -> bool:
    return db.scalar(select(Plate.id).where(Plate.source_key == source_key)) is not None


def _create_plate(
    db: Session,
    *,
    order_id: uuid.UUID,
    group: PlateGroup,
    unit_index: int,
    source_key: str,
    review_url: str,
    activated_at: datetime,
) -> str | None:
    """Insert one plate; return its slug, or None when another execution won."""
    for _ in range(MAX_SLUG_ATTEMPTS):
        slug = generate_slug()
        db.add(
            Plate(
                slug=slug,
                source_key=source_key,
                line_item_id=group.line_item_id,
                unit_index=unit_index,
                order_id=order_id,
                google_review_url=review_url,
                status=PlateStatus.ACTIVATED,
                activated_at=activated_at,
            )
        )
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if not is_unique_violation(exc):
                raise
            if _source_key_exists(db, source_key):
                return None
            # Slug collision: the source key is still free, try another slug.
            continue
        return slug

    raise InfrastructureError(
        f"Unable to allocate a unique plate slug for {source_key}", code="SLUG_EXHAUSTED"
    )


def generate_plates(
    db: Session,
    *,
    order: Order,
    groups: list[PlateGroup],
    capability: Capability,
    now: datetime | None = None,
) -> GenerationResult:
    ensure_allowed(capability, Collection.PLATES, Action.CREATE)
    normalized = _normalized_groups(groups)
    activated_at = now or now_utc()

    order_id = order.id
    order_number = order.order_number
    known_keys = existing_source_keys(db, order)
    result = GenerationResult()

    for group, review_url in normalized:
        for unit_index in range(group.units):
            source_key = build_source_key(order_number, group.line_item_id, unit_index)
            if source_key in known_keys:
                result.skipped_existing += 1
                continue

            slug = _create_plate(
                db,
                order_id=order_id,
                group=group,
                unit_index=unit_index,
                source_key=source_key,
                review_url=review_url,
                activated_at=activated_at,
            )
            known_keys.add(source_key)
            if slug is None:
                result.skipped_race += 1
                metrics_store.increment("plates_race_skipped_total")
                continue

            result.created.append(
                CreatedPlate(slug=slug, source_key=source_key, review_url=review_url)
            )
            metrics_store.increment("plates_created_total")

    # Authoritative view: rows committed by concurrent executions included.
    result.plates = list_order_plates(db, order)
    return result
