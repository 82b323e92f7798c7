from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "reviewplates-jwt-secret"
ALLOWED_APP_MODES = {"demo", "pilot", "production"}
MIN_SECRET_LENGTH = 32
SHOPIFY_ORDERS_PAID_TOPIC = "orders/paid"


class Settings(BaseSettings):
    app_name: str = "Review Plates Service"
    app_mode: str = Field(default="demo", validation_alias="REVIEWPLATES_APP_MODE")

    database_url: str = Field(
        default="sqlite+pysqlite:///./test.db",
        validation_alias="REVIEWPLATES_DATABASE_URL",
    )
    database_pool_size: int = Field(default=10, validation_alias="REVIEWPLATES_DATABASE_POOL_SIZE")
    database_max_overflow: int = Field(
        default=10, validation_alias="REVIEWPLATES_DATABASE_MAX_OVERFLOW"
    )
    sqlite_busy_timeout_s: float = 30.0
    testing: bool = Field(default=False, validation_alias="REVIEWPLATES_TESTING")
    auto_create_schema: bool = Field(
        default=True, validation_alias="REVIEWPLATES_AUTO_CREATE_SCHEMA"
    )
    require_migrations: bool = Field(
        default=False, validation_alias="REVIEWPLATES_REQUIRE_MIGRATIONS"
    )

    jwt_secret: str = DEFAULT_JWT_SECRET
    allowed_roles: str = "OPS,ADMIN"

    shopify_webhook_secret: str = Field(default="", validation_alias="SHOPIFY_WEBHOOK_SECRET")
    # Disabling verification is only meant for local replays of captured payloads.
    shopify_webhook_verify_signature: bool = Field(
        default=True, validation_alias="SHOPIFY_WEBHOOK_VERIFY_SIGNATURE"
    )
    webhook_claim_timeout_s: int = 300

    plates_notification_email: str = Field(default="", validation_alias="PLATES_NOTIFICATION_EMAIL")
    public_app_url: str = Field(default="", validation_alias="PUBLIC_APP_URL")
    smtp_host: str = Field(default="", validation_alias="SMTP_HOST")
    smtp_port: int = Field(default=587, validation_alias="SMTP_PORT")
    smtp_user: str = Field(default="", validation_alias="SMTP_USER")
    smtp_password: str = Field(default="", validation_alias="SMTP_PASSWORD")
    smtp_from: str = Field(default="", validation_alias="SMTP_FROM")
    smtp_timeout_s: float = 10.0

    webhook_events_keep_days: int = 30
    webhook_events_purge_interval_s: int = 24 * 60 * 60

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @field_validator("app_mode")
    @classmethod
    def validate_app_mode(cls, value: str) -> str:
        mode = value.lower().strip()
        if mode not in ALLOWED_APP_MODES:
            allowed = ", ".join(sorted(ALLOWED_APP_MODES))
            raise ValueError(f"REVIEWPLATES_APP_MODE must be one of: {allowed}")
        return mode

    @field_validator("webhook_claim_timeout_s", "webhook_events_keep_days")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("value must be >= 1")
        return value


settings = Settings()


def is_production_mode() -> bool:
    return settings.app_mode == "production"


def allowed_roles_list() -> list[str]:
    return [value.strip() for value in settings.allowed_roles.split(",") if value.strip()]


def public_base_url() -> str:
    return settings.public_app_url.strip().rstrip("/")


def ensure_secure_runtime_settings() -> None:
    """Fail fast when production-like runtime uses insecure defaults."""
    if not settings.testing and settings.jwt_secret == DEFAULT_JWT_SECRET:
        raise RuntimeError(
            "JWT_SECRET must be set to a non-default value when REVIEWPLATES_TESTING is false"
        )
    if not settings.testing and len(settings.jwt_secret) < MIN_SECRET_LENGTH:
        raise RuntimeError(
            "JWT_SECRET must be at least "
            f"{MIN_SECRET_LENGTH} characters when REVIEWPLATES_TESTING is false"
        )
    if not settings.testing and not settings.shopify_webhook_verify_signature:
        raise RuntimeError(
            "SHOPIFY_WEBHOOK_VERIFY_SIGNATURE must stay enabled when REVIEWPLATES_TESTING is false"
        )
    if not settings.testing and is_sqlite_url(settings.database_url):
        raise RuntimeError(
            "REVIEWPLATES_DATABASE_URL must use postgres when REVIEWPLATES_TESTING is false"
        )


def is_sqlite_url(database_url: str) -> bool:
    return database_url.strip().lower().startswith("sqlite")
