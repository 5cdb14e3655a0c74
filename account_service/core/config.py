from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, ValidationError, ValidationInfo, field_validator, model_validator
from typing import List, Optional
import sys
from functools import lru_cache
import structlog

logger = structlog.get_logger()


class Settings(BaseSettings):
    """
    Account Service Configuration

    Signing secrets MUST be provided via environment variables.
    The service will fail fast if required security configurations are missing.
    An instance is built once at startup and handed to the components that
    need it; nothing reads configuration from module globals.
    """

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        extra="ignore",
        validate_assignment=True,
    )

    # Application settings
    APP_NAME: str = "Account Service"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"

    # API settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Account Service"

    # Token signing - REQUIRED, NO DEFAULTS
    ACCESS_TOKEN_SECRET: str = Field(..., min_length=32)
    REFRESH_TOKEN_SECRET: str = Field(..., min_length=32)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=15, ge=1, le=60)
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default=7, ge=1, le=30)
    SINGLE_USE_TOKEN_EXPIRE_MINUTES: int = Field(default=20, ge=1, le=24 * 60)

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./accounts.db"
    DATABASE_ECHO: bool = False

    # Where the frontend receives password reset links
    FORGOT_PASSWORD_REDIRECT_URL: str = "http://localhost:3000/reset-password"

    # Email settings - transport is disabled when SMTP_HOST is empty
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_TLS: bool = True
    SMTP_TIMEOUT_SECONDS: int = Field(default=10, ge=1, le=120)
    EMAILS_FROM_EMAIL: str = "mail.accounts@example.com"
    MAIL_PRODUCT_NAME: str = "Account Service"
    MAIL_PRODUCT_LINK: str = "https://example.com/"

    # CORS settings, comma separated
    BACKEND_CORS_ORIGINS: str = ""

    @field_validator("ACCESS_TOKEN_SECRET", "REFRESH_TOKEN_SECRET")
    @classmethod
    def validate_keys(cls, v: str, info: ValidationInfo) -> str:
        """Validate that signing keys are strong enough"""
        bad_values = ["your-secret-key", "change-me", "changeme", "secret-key", "password", "12345"]
        if any(bad in v.lower() for bad in bad_values):
            raise ValueError(f"{info.field_name} contains weak or default values")
        return v

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid_envs = ["development", "staging", "production", "test"]
        if v not in valid_envs:
            raise ValueError(f"ENVIRONMENT must be one of: {valid_envs}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("LOG_LEVEL must be a standard logging level name")
        return level

    @model_validator(mode="after")
    def secrets_must_differ(self) -> "Settings":
        if self.ACCESS_TOKEN_SECRET == self.REFRESH_TOKEN_SECRET:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")
        return self

    @property
    def cors_origins(self) -> List[str]:
        """Parse CORS origins from the comma-separated setting"""
        return [origin.strip() for origin in self.BACKEND_CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def secure_cookies(self) -> bool:
        return self.ENVIRONMENT not in {"development", "test"}


def validate_required_settings(settings: Settings) -> None:
    """
    Validate cross-field requirements that depend on the environment.
    Fail fast if critical settings are missing or invalid.
    """
    errors = []

    if settings.ENVIRONMENT == "production":
        if settings.DEBUG:
            errors.append("DEBUG must be False in production")

        if not settings.SMTP_HOST:
            errors.append("SMTP_HOST is required in production for verification emails")

        if settings.DATABASE_URL.startswith("sqlite"):
            errors.append("DATABASE_URL cannot use SQLite in production")

    if settings.SMTP_USER and not settings.SMTP_PASSWORD:
        errors.append("SMTP_PASSWORD required when SMTP_USER is set")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        logger.error(error_msg)
        raise ValueError(error_msg)

    logger.info(
        "Configuration validated successfully",
        environment=settings.ENVIRONMENT,
        debug=settings.DEBUG,
        cors_origins_count=len(settings.cors_origins),
        email_transport_enabled=bool(settings.SMTP_HOST),
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Exits the process if required environment variables are missing.
    """
    try:
        settings = Settings()
        validate_required_settings(settings)
        return settings
    except ValidationError as e:
        # Only field locations and messages; never the submitted values.
        logger.error(
            "Failed to load settings",
            errors=[{"field": err.get("loc"), "msg": err.get("msg")} for err in e.errors()],
        )
        sys.exit(1)
    except ValueError as e:
        logger.error("Invalid configuration", error=str(e))
        sys.exit(1)
