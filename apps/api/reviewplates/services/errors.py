from dataclasses import dataclass


@dataclass
class IngestError(Exception):
    code: str
    message: str

    def __str__(self) -> str:
        return f"{self.code}:{self.message}"


class AuthenticationError(IngestError):
    """Request failed the topic/webhook-id/signature gate; nothing was persisted."""

    def __init__(self, message: str, code: str = "UNAUTHENTICATED") -> None:
        super().__init__(code=code, message=message)


class BusinessDataError(IngestError):
    """Payload can never be processed as sent; redelivery will not fix it."""

    def __init__(self, message: str, code: str = "INVALID_PAYLOAD") -> None:
        super().__init__(code=code, message=message)


class InfrastructureError(IngestError):
    """Transient failure; the delivery should be retried by the source."""

    def __init__(self, message: str, code: str = "INFRASTRUCTURE") -> None:
        super().__init__(code=code, message=message)


class ConfigurationError(InfrastructureError):
    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="CONFIGURATION")


class AccessDeniedError(IngestError):
    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(code="FORBIDDEN", message=message)
