from reviewplates.integrations.mailer import get_mailer
from reviewplates.services.notifications import (
    NotificationDispatcher,
    build_notification_dispatcher,
)


def get_notification_dispatcher() -> NotificationDispatcher:
    return build_notification_dispatcher(get_mailer())
