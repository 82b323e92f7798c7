import smtplib
from email.message import EmailMessage
from typing import Protocol

from reviewplates.config import settings
from reviewplates.integrations.errors import NotificationError, NotificationNotConfiguredError


class Mailer(Protocol):
    def send_html(self, *, to: str, subject: str, html: str) -> None: ...


class SmtpMailer:
    def __init__(
        self,
        host: str,
        port: int,
        user: str,
        password: str,
        sender: str,
        timeout_s: float,
    ) -> None:
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender or user
        self.timeout_s = timeout_s

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.sender)

    def _build_message(self, *, to: str, subject: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.sender
        message["To"] = to
        message.set_content("This message requires an HTML capable mail client.")
        message.add_alternative(html, subtype="html")
        return message

    def send_html(self, *, to: str, subject: str, html: str) -> None:
        if not self.is_configured:
            raise NotificationNotConfiguredError()

        message = self._build_message(to=to, subject=subject, html=html)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout_s) as server:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls()
                    server.ehlo()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError(f"{type(exc).__name__}: {exc}") from exc


class NoopMailer:
    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []

    def send_html(self, *, to: str, subject: str, html: str) -> None:
        self.sent.append({"to": to, "subject": subject, "html": html})


def get_mailer() -> Mailer:
    return SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        user=settings.smtp_user,
        password=settings.smtp_password,
        sender=settings.smtp_from,
        timeout_s=settings.smtp_timeout_s,
    )
