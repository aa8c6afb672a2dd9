"""Application settings and configuration.

This module defines all configuration options for the Yakka chat service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

KEY_ENCRYPTION_KEY_HEX_LEN = 64


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Yakka Chat", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Master key used to wrap per-chat data keys (hex-encoded, 256 bit)
    key_encryption_key: str = Field(alias="KEY_ENCRYPTION_KEY", repr=False)

    # Database configuration
    database_url: str = Field(default="sqlite:///./yakka.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Object storage for chat media
    s3_bucket_name: str = Field(default="yakka-media", alias="S3_BUCKET_NAME")
    s3_region: str = Field(default="ap-southeast-2", alias="S3_REGION")
    s3_access_key: str | None = Field(default=None, alias="S3_ACCESS_KEY")
    s3_secret_key: str | None = Field(default=None, alias="S3_SECRET_KEY", repr=False)
    s3_endpoint_url: str | None = Field(default=None, alias="S3_ENDPOINT_URL")
    s3_presign_expires_seconds: int = Field(
        default=3600,
        alias="S3_PRESIGN_EXPIRES_SECONDS",
    )

    # Expo push notifications
    expo_push_url: str = Field(
        default="https://exp.host/--/api/v2/push/send",
        alias="EXPO_PUSH_URL",
    )
    expo_access_token: str | None = Field(default=None, alias="EXPO_ACCESS_TOKEN", repr=False)
    push_http_timeout_seconds: float = Field(default=10.0, alias="PUSH_HTTP_TIMEOUT_SECONDS")

    # Moderation sweep
    moderation_sweep_enabled: bool = Field(default=True, alias="MODERATION_SWEEP_ENABLED")
    moderation_sweep_interval_seconds: float = Field(
        default=60.0,
        alias="MODERATION_SWEEP_INTERVAL_SECONDS",
    )
    auto_ban_reason: str = Field(
        default="Auto banned for saying a banned word",
        alias="AUTO_BAN_REASON",
    )

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @field_validator("key_encryption_key")
    @classmethod
    def _validate_key_encryption_key(cls, value: str) -> str:
        cleaned = value.strip()
        if len(cleaned) != KEY_ENCRYPTION_KEY_HEX_LEN:
            raise ValueError("KEY_ENCRYPTION_KEY must be 64 hex characters (256 bits)")
        try:
            bytes.fromhex(cleaned)
        except ValueError as err:
            raise ValueError("KEY_ENCRYPTION_KEY must be hex encoded") from err
        return cleaned

    @property
    def master_key(self) -> bytes:
        """Return the raw master key bytes used for wrapping chat keys."""
        return bytes.fromhex(self.key_encryption_key)


settings = Settings()  # type: ignore[call-arg]
