"""Best-effort admin email listing the plates created by a delivery.

Runs after the webhook response has been produced. A failure here is
logged and counted, and never reaches Shopify or the webhook ledger.
"""

import html
import logging
from collections.abc import Sequence
from datetime import datetime
from zoneinfo import ZoneInfo

from reviewplates.config import public_base_url, settings
from reviewplates.integrations.mailer import Mailer
from reviewplates.models.domain import now_utc
from reviewplates.observability import log_event, metrics_store
from reviewplates.services.plate_generator import CreatedPlate
from reviewplates.services.webhook_ingest_service import IngestOutcome, IngestStatus

DISPLAY_TIMEZONE = ZoneInfo("Europe/Paris")


def build_subject(order_number: str) -> str:
    return f"Nouvelles plaques NFC — Commande {order_number}"


def _absolute_url(base_url: str, path: str) -> str:
    return f"{base_url}{path}" if base_url else path


def build_email_html(
    *,
    order_number: str,
    customer_email: str,
    created_plates: Sequence[CreatedPlate],
    public_base_url: str,
    created_at: datetime | None = None,
) -> str:
    escape = html.escape
    timestamp = (created_at or now_utc()).astimezone(DISPLAY_TIMEZONE).strftime("%d/%m/%Y %H:%M:%S")

    rows = []
    for index, plate in enumerate(created_plates, start=1):
        link = _absolute_url(public_base_url, plate.public_path)
        rows.append(
            "<tr>"
            f'<td style="padding:12px 10px;border-bottom:1px solid #eee;">{index}</td>'
            f'<td style="padding:12px 10px;border-bottom:1px solid #eee;">ID: {escape(plate.slug)}</td>'
            f'<td style="padding:12px 10px;border-bottom:1px solid #eee;">'
            f'<a href="{escape(link)}" style="color:#0b57d0;text-decoration:none;">{escape(link)}</a>'
            "</td>"
            "</tr>"
        )

    count = len(created_plates)
    return (
        '<div style="background:#f6f7f9;padding:24px;font-family:Arial,sans-serif;">'
        '<div style="max-width:720px;margin:0 auto;background:#ffffff;border:1px solid #e9e9e9;">'
        '<div style="padding:18px 22px;background:#111827;color:#ffffff;">'
        '<div style="font-size:16px;font-weight:700;">Nouvelles plaques NFC à configurer</div>'
        f'<div style="font-size:13px;margin-top:4px;">Commande {escape(order_number)} • '
        f"{escape(timestamp)}</div>"
        "</div>"
        '<div style="padding:18px 22px;font-size:14px;color:#111;">'
        f"<p>De nouvelle(s) plaque(s) (<strong>{count}</strong>) ont été générée(s) "
        "suite à un paiement Shopify.</p>"
        f"<div><strong>Commande :</strong> {escape(order_number)}</div>"
        f"<div><strong>Client :</strong> {escape(customer_email)}</div>"
        f"<div><strong>Nombre de plaques :</strong> {count}</div>"
        '<table width="100%" cellpadding="0" cellspacing="0" style="border-collapse:collapse;margin-top:10px;">'
        "<thead><tr><th align=\"left\">#</th><th align=\"left\">Plaque</th>"
        "<th align=\"left\">Lien</th></tr></thead>"
        f"<tbody>{''.join(rows)}</tbody>"
        "</table>"
        '<p style="font-size:12px;color:#666;">Si vous recevez ce message plusieurs fois, '
        "cela peut être dû à un retry Shopify. Aucune plaque n'a été dupliquée.</p>"
        "</div>"
        "</div>"
        "</div>"
    )


class NotificationDispatcher:
    def __init__(self, mailer: Mailer, recipient: str, base_url: str) -> None:
        self.mailer = mailer
        self.recipient = recipient
        self.base_url = base_url

    def dispatch(self, outcome: IngestOutcome) -> bool:
        if outcome.status != IngestStatus.PROCESSED:
            return False
        return self.send_created_plates(
            order_number=outcome.order_number or "",
            customer_email=outcome.customer_email or "",
            created_plates=outcome.created_plates,
        )

    def send_created_plates(
        self,
        *,
        order_number: str,
        customer_email: str,
        created_plates: Sequence[CreatedPlate],
    ) -> bool:
        if not self.recipient or not created_plates:
            return False

        try:
            self.mailer.send_html(
                to=self.recipient,
                subject=build_subject(order_number),
                html=build_email_html(
                    order_number=order_number,
                    customer_email=customer_email,
                    created_plates=created_plates,
                    public_base_url=self.base_url,
                ),
            )
        except Exception as exc:  # notification must never affect webhook handling
            metrics_store.increment("notification_failed_total")
            log_event(
                "notification_failed",
                order_number=order_number,
                plate_count=len(created_plates),
                error=f"{type(exc).__name__}: {exc}",
                level=logging.ERROR,
            )
            return False

        metrics_store.increment("notification_sent_total")
        log_event("notification_sent", order_number=order_number, plate_count=len(created_plates))
        return True


def build_notification_dispatcher(mailer: Mailer) -> NotificationDispatcher:
    return NotificationDispatcher(
        mailer=mailer,
        recipient=settings.plates_notification_email.strip(),
        base_url=public_base_url(),
    )
