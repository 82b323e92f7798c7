# Import SQLAlchemy models so they register on Base.metadata
from reviewplates.models.order import Order, OrderStatus  # noqa: F401
from reviewplates.models.plate import Plate, PlateStatus  # noqa: F401
from reviewplates.models.webhook_event import WebhookEvent, WebhookEventStatus  # noqa: F401
