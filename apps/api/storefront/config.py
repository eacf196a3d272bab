from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "uthraa-naturals-jwt-secret"
ALLOWED_APP_MODES = {"development", "demo", "production"}
ALLOWED_SUBSCRIPTION_POLICIES = {"open", "authenticated", "owner"}
MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    app_name: str = "Uthraa Naturals API"
    app_mode: str = Field(default="development", validation_alias="STOREFRONT_APP_MODE")

    database_url: str = Field(
        default="sqlite+pysqlite:///./storefront.db",
        validation_alias="STOREFRONT_DATABASE_URL",
    )
    auto_create_schema: bool = Field(default=True, validation_alias="STOREFRONT_AUTO_CREATE_SCHEMA")
    cors_allowed_origins: str = "http://localhost:5173,http://localhost:5174"

    jwt_secret: str = DEFAULT_JWT_SECRET
    allowed_roles: str = "CUSTOMER,ADMIN"
    enable_test_auth_bypass: bool = False
    testing: bool = Field(default=False, validation_alias="STOREFRONT_TESTING")
    log_level: str = Field(default="INFO", validation_alias="STOREFRONT_LOG_LEVEL")
    host: str = Field(default="127.0.0.1", validation_alias="STOREFRONT_HOST")
    port: int = Field(default=8000, validation_alias="STOREFRONT_PORT")

    public_tracking_rate_limit_requests: int = 10
    public_tracking_rate_limit_window_s: int = 60

    tracking_subscription_policy: str = Field(
        default="open",
        validation_alias="STOREFRONT_TRACKING_SUBSCRIPTION_POLICY",
    )

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @field_validator("app_mode")
    @classmethod
    def validate_app_mode(cls, value: str) -> str:
        mode = value.lower().strip()
        if mode not in ALLOWED_APP_MODES:
            allowed = ", ".join(sorted(ALLOWED_APP_MODES))
            raise ValueError(f"STOREFRONT_APP_MODE must be one of: {allowed}")
        return mode

    @field_validator("tracking_subscription_policy")
    @classmethod
    def validate_tracking_subscription_policy(cls, value: str) -> str:
        policy = value.lower().strip()
        if policy not in ALLOWED_SUBSCRIPTION_POLICIES:
            allowed = ", ".join(sorted(ALLOWED_SUBSCRIPTION_POLICIES))
            raise ValueError(f"STOREFRONT_TRACKING_SUBSCRIPTION_POLICY must be one of: {allowed}")
        return policy


settings = Settings()


def is_production_mode() -> bool:
    return settings.app_mode == "production"


def allowed_origins() -> list[str]:
    return [origin.strip() for origin in settings.cors_allowed_origins.split(",") if origin.strip()]


def allowed_roles_list() -> list[str]:
    return [value.strip() for value in settings.allowed_roles.split(",") if value.strip()]


def ensure_secure_runtime_settings() -> None:
    """Fail fast when production-like runtime uses insecure defaults."""
    if not settings.testing and settings.jwt_secret == DEFAULT_JWT_SECRET:
        raise RuntimeError(
            "JWT_SECRET must be set to a non-default value when STOREFRONT_TESTING is false"
        )
    if not settings.testing and len(settings.jwt_secret) < MIN_SECRET_LENGTH:
        raise RuntimeError(
            "JWT_SECRET must be at least "
            f"{MIN_SECRET_LENGTH} characters when STOREFRONT_TESTING is false"
        )
    if is_production_mode() and settings.enable_test_auth_bypass:
        raise RuntimeError("ENABLE_TEST_AUTH_BYPASS must be disabled in STOREFRONT_APP_MODE=production")
    if is_production_mode() and _is_sqlite_url(settings.database_url):
        raise RuntimeError("STOREFRONT_DATABASE_URL must use postgres in production")


def _is_sqlite_url(database_url: str) -> bool:
    value = database_url.strip().lower()
    return value.startswith("sqlite")
