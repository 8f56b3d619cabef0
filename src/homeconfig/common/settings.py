"""Configuration management using pydantic-settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from homeconfig.common.signing import SigningCredentials


class ConfigurationError(Exception):
    """Required configuration is missing or invalid."""


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="HOMECONFIG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Service-to-service auth
    service_api_key: str | None = Field(
        default=None,
        description="Static API key the main app presents to the configuration service",
    )
    signature_secret: str | None = Field(
        default=None,
        description="Shared secret for per-request HMAC signatures",
    )
    replay_window_seconds: int = Field(
        default=300,
        description="Accepted clock skew (seconds) between signer and verifier",
    )
    auth_exempt_paths: tuple[str, ...] = Field(
        default=("/",),
        description="Paths exempt from signature auth",
    )

    # Configuration service
    api_prefix: str = Field(
        default="/api/configurations",
        description="Mount prefix for the configurations API",
    )
    service_host: str = Field(
        default="0.0.0.0",
        description="Host for the configuration service HTTP server",
    )
    service_port: int = Field(
        default=3001,
        description="Port for the configuration service HTTP server",
    )
    database_path: str = Field(
        default="data/configurations.db",
        description="SQLite database file for stored configurations",
    )
    cors_allowed_origin: str = Field(
        default="http://localhost:3000",
        description="Origin of the main app allowed to call the service",
    )

    # Main app client
    config_service_url: str = Field(
        default="http://localhost:3001",
        description="Base URL of the configuration service",
    )
    http_timeout: float = Field(
        default=30.0,
        description="HTTP request timeout in seconds",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Log level for structlog and stdlib logging",
    )
    log_json: bool = Field(
        default=False,
        description="Render log events as JSON lines",
    )

    @property
    def replay_window_ms(self) -> int:
        """Replay window in epoch milliseconds."""
        return self.replay_window_seconds * 1000

    def signing_credentials(self) -> SigningCredentials:
        """Build the shared signing credentials or fail if unset."""
        missing = [
            name
            for name, value in (
                ("HOMECONFIG_SERVICE_API_KEY", self.service_api_key),
                ("HOMECONFIG_SIGNATURE_SECRET", self.signature_secret),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")
        assert self.service_api_key is not None
        assert self.signature_secret is not None
        return SigningCredentials(
            api_key=self.service_api_key,
            signing_secret=self.signature_secret,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
