from reviewplates.integrations.errors import (
    IntegrationError,
    NotificationError,
    NotificationNotConfiguredError,
)

__all__ = [
    "IntegrationError",
    "NotificationError",
    "NotificationNotConfiguredError",
]
