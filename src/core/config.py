"""Application configuration using pydantic-settings."""
from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./bookmarks.db",
        validation_alias="DATABASE_URL",
    )
    # Create missing tables at startup (no migrations are shipped)
    auto_create_tables: bool = Field(default=True, validation_alias="AUTO_CREATE_TABLES")

    # Auth - bearer JWTs signed by the identity provider with a shared secret
    auth_jwt_secret: str = Field(default="", validation_alias="AUTH_JWT_SECRET")
    auth_audience: str = Field(default="authenticated", validation_alias="AUTH_AUDIENCE")
    auth_issuer: str = Field(default="", validation_alias="AUTH_ISSUER")

    # Development mode - bypasses auth for local development
    dev_mode: bool = Field(default=False, validation_alias="DEV_MODE")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )

    # Outbound metadata fetching
    fetch_timeout: float = Field(default=5.0, validation_alias="FETCH_TIMEOUT")
    summary_service_url: str = Field(
        default="https://r.jina.ai/http://",
        validation_alias="SUMMARY_SERVICE_URL",
    )
    summary_timeout: float = Field(default=5.0, validation_alias="SUMMARY_TIMEOUT")
    summary_max_length: int = Field(default=200, validation_alias="SUMMARY_MAX_LENGTH")
    block_private_addresses: bool = Field(
        default=True, validation_alias="BLOCK_PRIVATE_ADDRESSES",
    )

    # Field length limits
    max_title_length: int = Field(default=500, validation_alias="MAX_TITLE_LENGTH")
    max_tag_length: int = Field(default=100, validation_alias="MAX_TAG_LENGTH")

    @model_validator(mode="after")
    def validate_dev_mode_security(self) -> "Settings":
        """
        Prevent DEV_MODE from being enabled with a production database.

        DEV_MODE completely bypasses authentication, so it may only be used with
        a local database (localhost or a SQLite file).
        """
        if not self.dev_mode:
            return self

        try:
            parsed = urlparse(self.database_url)
            scheme = parsed.scheme
            hostname = parsed.hostname or ""
        except ValueError:
            scheme = ""
            hostname = ""

        if scheme.startswith("sqlite"):
            return self

        local_hosts = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}
        if hostname.lower() not in local_hosts:
            raise ValueError(
                f"DEV_MODE cannot be enabled with a non-local database. "
                f"Database host '{hostname}' appears to be a production database. "
                f"DEV_MODE bypasses all authentication and must only be used locally.",
            )

        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
