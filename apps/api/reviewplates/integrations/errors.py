from dataclasses import dataclass


@dataclass
class IntegrationError(Exception):
    service: str
    code: str
    message: str
    retryable: bool = False

    def __str__(self) -> str:
        return f"{self.service}:{self.code}:{self.message}"


class NotificationError(IntegrationError):
    def __init__(self, message: str, code: str = "SEND_FAILED", retryable: bool = True) -> None:
        super().__init__(service="smtp", code=code, message=message, retryable=retryable)


class NotificationNotConfiguredError(NotificationError):
    def __init__(self, message: str = "SMTP transport is not configured") -> None:
        super().__init__(message=message, code="NOT_CONFIGURED", retryable=False)
