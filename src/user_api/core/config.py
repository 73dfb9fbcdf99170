"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> list[str]:
    """Split a comma-separated setting into a list of non-empty, stripped items."""
    if not value.strip():
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        description="SQLAlchemy async connection string (postgresql+asyncpg:// in production)",
    )

    # JWT
    jwt_access_secret: str = Field(
        min_length=32,
        description="Secret key for signing access tokens (minimum 32 characters)",
    )
    jwt_refresh_secret: str = Field(
        min_length=32,
        description="Secret key for signing refresh tokens (minimum 32 characters)",
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    jwt_access_token_expire_minutes: int = Field(
        default=15,
        description="Access token expiration in minutes",
        gt=0,
    )
    jwt_refresh_token_expire_days: int = Field(
        default=7,
        description="Refresh token expiration in days",
        gt=0,
    )

    @model_validator(mode="after")
    def validate_distinct_secrets(self) -> "Settings":
        if self.jwt_access_secret == self.jwt_refresh_secret:
            msg = "jwt_access_secret and jwt_refresh_secret must be different"
            raise ValueError(msg)
        return self

    # Password hashing
    bcrypt_rounds: int = Field(
        default=10,
        description="bcrypt cost factor (log2 rounds)",
        ge=4,
        le=31,
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    # CORS
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins (must be explicitly configured)",
    )
    cors_origin_regex: str = Field(
        default="",
        description="Regex pattern for allowed CORS origins",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return _split_csv(self.cors_origins)

    # Environment
    environment: str = Field(
        default="production",
        description="Deployment environment name (e.g. production, dev, staging)",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )
    rate_limit_per_minute: int = Field(
        default=200,
        description="Maximum API requests per minute per IP address",
        gt=0,
    )
    trusted_proxy_headers: str = Field(
        default="CF-Connecting-IP,X-Forwarded-For,X-Real-IP",
        description="Comma-separated list of HTTP headers to check for real client IP, in priority order",
    )

    @property
    def trusted_proxy_header_list(self) -> list[str]:
        """Parse trusted proxy headers string into a list."""
        return _split_csv(self.trusted_proxy_headers)

    # Audit trail
    audit_excluded_prefixes: str = Field(
        default="/api/v1/health,/api/v1/docs,/docs,/redoc,/openapi.json",
        description="Comma-separated path prefixes that are never written to the audit log",
    )
    audit_redacted_fields: str = Field(
        default="password,currentPassword,newPassword,refreshToken,current_password,new_password,refresh_token",
        description="Comma-separated request body keys replaced with a placeholder in audit records",
    )

    @property
    def audit_excluded_prefix_list(self) -> list[str]:
        """Parse audit exclusion prefixes into a list."""
        return _split_csv(self.audit_excluded_prefixes)

    @property
    def audit_redacted_field_set(self) -> frozenset[str]:
        """Parse redacted audit body keys into a set."""
        return frozenset(_split_csv(self.audit_redacted_fields))


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
