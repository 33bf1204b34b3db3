from typing import Literal, Optional
from urllib.parse import quote_plus

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database configuration"""

    backend: Literal["sql", "memory"] = Field(
        default="sql",
        description="Phrase repository implementation selected at startup.",
    )
    driver: str = "postgresql+asyncpg"
    host: str = "localhost"
    port: int = 5432
    username: str = "postgres"
    password: SecretStr = Field(default=SecretStr("postgres"))
    database: str = "voice_collect"
    dsn: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy URL; takes precedence over the discrete fields.",
    )
    serverless: bool = Field(
        default=True,
        description="If true, disable connection pooling so serverless DBs can pause.",
    )
    connect_attempts: int = Field(default=10, ge=1)
    connect_base_delay: float = Field(default=0.5, ge=0.0)
    connect_max_delay: float = Field(default=10.0, ge=0.0)

    @property
    def url(self) -> str:
        """Get database URL"""
        if self.dsn:
            return self.dsn
        username = quote_plus(self.username)
        password = quote_plus(self.password.get_secret_value())
        return (
            f"{self.driver}://"
            f"{username}:{password}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class S3Config(BaseSettings):
    """S3 configuration"""

    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: str = "us-east-1"
    bucket_name: str = "voice-collect-audio"
    prefix: str = "voice_collectes"

    model_config = SettingsConfigDict(
        env_prefix="S3_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class StorageConfig(BaseSettings):
    """Blob store selection and local-disk layout."""

    backend: Literal["local", "s3"] = "local"
    local_dir: str = "uploads/audio"
    public_base_url: str = "/uploads/audio"
    retries: int = Field(
        default=2,
        ge=0,
        description="Extra attempts made when a blob upload fails.",
    )
    retry_delay: float = Field(default=0.2, ge=0.0)
    timeout_seconds: Optional[float] = Field(default=30.0, gt=0.0)

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class AudioConfig(BaseSettings):
    """Upload limits and canonical encoding for stored recordings."""

    max_upload_bytes: int = Field(default=10 * 1024 * 1024, ge=1)
    sample_rate: int = Field(default=16000, ge=8000, le=192000)
    channels: int = Field(default=1, ge=1, le=2)
    transcode: bool = True
    ffmpeg_binary: str = "ffmpeg"

    model_config = SettingsConfigDict(
        env_prefix="AUDIO_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class CollectionConfig(BaseSettings):
    """Phrase distribution settings."""

    quota: int = Field(
        default=10,
        ge=1,
        description="Samples per phrase after which it is no longer offered.",
    )

    model_config = SettingsConfigDict(
        env_prefix="COLLECTION_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "Voice Collect Backend"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000
    log_file: str = "logs/app.log"
    submission_log_file: str = "logs/submissions.log"

    # Database
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    # S3
    s3: S3Config = Field(default_factory=S3Config)

    # Blob storage
    storage: StorageConfig = Field(default_factory=StorageConfig)

    # Audio normalization
    audio: AudioConfig = Field(default_factory=AudioConfig)

    # Phrase quota
    collection: CollectionConfig = Field(default_factory=CollectionConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
