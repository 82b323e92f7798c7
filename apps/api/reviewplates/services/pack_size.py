"""Pack size inference from Shopify line item labels.

Packs are sold as variants such as "blanc / 5 Plaques". The number of
plates to generate for a line is ``quantity * pack_size``; guessing a
default here would silently produce the wrong number of physical plates,
so anything outside the supported sizes resolves to ``None``.
"""

import re
from collections.abc import Mapping
from typing import Any

SUPPORTED_PACK_SIZES = frozenset({1, 2, 5})

_PACK_PATTERN = re.compile(r"(?:^|[^\d])(\d+)\s*plaques?\b", re.IGNORECASE)


def resolve_pack_size(label: str) -> int | None:
    match = _PACK_PATTERN.search(label.lower())
    if not match:
        return None

    size = int(match.group(1))
    if size not in SUPPORTED_PACK_SIZES:
        return None
    return size


def get_pack_size(item: Mapping[str, Any]) -> int | None:
    variant = str(item.get("variant_title") or "")
    name = str(item.get("name") or "")
    return resolve_pack_size(f"{variant} {name}")
