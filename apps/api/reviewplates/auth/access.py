"""Access decisions for orders, plates and webhook events.

Callers pass an explicit :class:`Capability`. The ingestion pipeline holds
``PIPELINE_CAPABILITY``; operators get a staff capability derived from
their JWT; anonymous visitors get ``PUBLIC_CAPABILITY``.
"""

import enum
from collections.abc import Callable
from dataclasses import dataclass

from reviewplates.auth.dependencies import AuthContext
from reviewplates.services.errors import AccessDeniedError


class Collection(str, enum.Enum):
    ORDERS = "orders"
    PLATES = "plates"
    WEBHOOK_EVENTS = "webhook-events"


class Action(str, enum.Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Capability:
    principal: str
    internal: bool = False
    staff: bool = False


PIPELINE_CAPABILITY = Capability(principal="shopify-webhook", internal=True)
RETENTION_CAPABILITY = Capability(principal="retention-purge", internal=True)
PUBLIC_CAPABILITY = Capability(principal="anonymous")

Rule = Callable[[Capability], bool]


def _anyone(_capability: Capability) -> bool:
    return True


def _staff(capability: Capability) -> bool:
    return capability.staff


def _staff_or_internal(capability: Capability) -> bool:
    return capability.staff or capability.internal


_RULES: dict[tuple[Collection, Action], Rule] = {
    (Collection.ORDERS, Action.READ): _staff_or_internal,
    (Collection.ORDERS, Action.CREATE): _staff_or_internal,
    (Collection.ORDERS, Action.UPDATE): _staff_or_internal,
    (Collection.ORDERS, Action.DELETE): _staff,
    (Collection.PLATES, Action.READ): _anyone,
    (Collection.PLATES, Action.CREATE): _staff_or_internal,
    (Collection.PLATES, Action.UPDATE): _staff,
    (Collection.PLATES, Action.DELETE): _staff,
    (Collection.WEBHOOK_EVENTS, Action.READ): _staff,
    (Collection.WEBHOOK_EVENTS, Action.CREATE): _staff_or_internal,
    (Collection.WEBHOOK_EVENTS, Action.UPDATE): _staff_or_internal,
    (Collection.WEBHOOK_EVENTS, Action.DELETE): _staff_or_internal,
}


def capability_for(auth: AuthContext) -> Capability:
    return Capability(principal=auth.user_id, staff=True)


def is_allowed(capability: Capability, collection: Collection, action: Action) -> bool:
    rule = _RULES.get((collection, action))
    return bool(rule and rule(capability))


def ensure_allowed(capability: Capability, collection: Collection, action: Action) -> None:
    if not is_allowed(capability, collection, action):
        raise AccessDeniedError(
            f"{capability.principal} may not {action.value} {collection.value}"
        )
