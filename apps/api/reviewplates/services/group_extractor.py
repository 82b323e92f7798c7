"""Parse an ``orders/paid`` payload into plate groups.

Each line item carrying a Google review link in its custom properties
becomes one group. The line item id must come from Shopify: it is part of
every plate's source key, so a generated fallback would break idempotency
across redeliveries.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from reviewplates.services.errors import BusinessDataError
from reviewplates.services.pack_size import get_pack_size

REVIEW_URL_PROPERTY = "google_business_url"
REVIEW_URL_KEYWORD = "google"


@dataclass(frozen=True)
class PlateGroup:
    review_url: str
    units: int
    line_item_id: str


@dataclass(frozen=True)
class ParsedOrder:
    order_number: str
    customer_email: str
    payload: Mapping[str, Any]


def _property_name(prop: Any) -> str:
    if not isinstance(prop, Mapping):
        return ""
    return str(prop.get("name") or "").strip().lower()


def _property_value(prop: Any) -> str | None:
    value = prop.get("value") if isinstance(prop, Mapping) else None
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def find_review_url(properties: Any) -> str | None:
    if not isinstance(properties, list):
        return None

    for prop in properties:
        if _property_name(prop) == REVIEW_URL_PROPERTY:
            value = _property_value(prop)
            if value:
                return value
            break

    for prop in properties:
        if REVIEW_URL_KEYWORD in _property_name(prop):
            value = _property_value(prop)
            if value:
                return value

    return None


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not number.is_integer() or number <= 0:
        return None
    return int(number)


def line_quantity(item: Mapping[str, Any]) -> int:
    for field_name in ("quantity", "current_quantity"):
        quantity = _positive_int(item.get(field_name))
        if quantity is not None:
            return quantity
    return 1


def stable_line_item_id(item: Mapping[str, Any]) -> str | None:
    for field_name in ("id", "admin_graphql_api_id"):
        value = item.get(field_name)
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def extract_groups(payload: Mapping[str, Any]) -> list[PlateGroup]:
    line_items = payload.get("line_items")
    if not isinstance(line_items, list):
        return []

    groups: list[PlateGroup] = []
    for item in line_items:
        if not isinstance(item, Mapping):
            continue

        review_url = find_review_url(item.get("properties"))
        if not review_url:
            continue

        pack_size = get_pack_size(item)
        if pack_size is None:
            raise BusinessDataError(
                "Unable to infer pack size from variant_title/name "
                "(expected 1/2/5 Plaques).",
                code="PACK_SIZE_UNRESOLVED",
            )

        line_item_id = stable_line_item_id(item)
        if line_item_id is None:
            raise BusinessDataError(
                "Missing line item id (idempotence impossible)",
                code="LINE_ITEM_ID_MISSING",
            )

        groups.append(
            PlateGroup(
                review_url=review_url,
                units=line_quantity(item) * pack_size,
                line_item_id=line_item_id,
            )
        )

    return groups


def parse_order_payload(raw_body: bytes) -> ParsedOrder:
    try:
        payload = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise BusinessDataError("Invalid JSON body", code="INVALID_JSON") from exc
    if not isinstance(payload, Mapping):
        raise BusinessDataError("Invalid JSON body", code="INVALID_JSON")

    order_number = str(payload.get("order_number") or payload.get("name") or "").strip()
    customer = payload.get("customer")
    customer_email = payload.get("email") or (
        customer.get("email") if isinstance(customer, Mapping) else None
    )
    customer_email = str(customer_email or "").strip()

    if not order_number or not customer_email:
        raise BusinessDataError(
            "Missing orderNumber or customerEmail", code="MISSING_ORDER_FIELDS"
        )

    return ParsedOrder(order_number=order_number, customer_email=customer_email, payload=payload)


def extract_order_groups(order: ParsedOrder) -> list[PlateGroup]:
    groups = extract_groups(order.payload)
    if not groups:
        raise BusinessDataError("No Google URL found in line_items", code="NO_PLATE_LINES")
    return groups
