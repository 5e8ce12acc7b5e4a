# python
# app/core/config.py
"""Configuration settings for the Civic Projects API.

Uses Pydantic BaseSettings for environment variable management.
"""
import secrets
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentEnum(str, Enum):
    development = "development"
    testing = "testing"
    staging = "staging"
    production = "production"


class LogLevelEnum(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormatEnum(str, Enum):
    simple = "simple"
    json = "json"


class Settings(BaseSettings):
    # Pydantic v2 settings configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===== Application Settings =====
    app_name: str = Field(default="Civic Projects API", description="Application name")
    environment: EnvironmentEnum = Field(
        default=EnvironmentEnum.development, description="Environment type"
    )
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="1.0.0", description="Application version")

    # ===== Security Settings =====
    secret_key: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        description="Secret key for JWT verification",
    )
    algorithm: str = Field(default="HS256", description="JWT algorithm")

    # ===== Database Settings =====
    database_url: str | None = Field(default=None, description="Database connection URL")
    db_pool_size: int = Field(default=20, description="Database connection pool size")
    db_max_overflow: int = Field(default=0, description="Database max overflow connections")

    # Test database URL
    test_database_url: str | None = Field(default=None, description="Test database URL")

    # ===== Object Storage Settings (S3 / Cloudflare R2) =====
    aws_access_key_id: str | None = Field(default=None, description="AWS access key ID")
    aws_secret_access_key: str | None = Field(default=None, description="AWS secret access key")
    s3_bucket_name: str | None = Field(default=None, description="S3 bucket name")
    s3_region: str = Field(default="us-east-1", description="S3 region")
    s3_endpoint_url: str | None = Field(default=None, description="S3 endpoint URL")
    media_public_base_url: str | None = Field(
        default=None, description="Public base URL media objects are served from"
    )
    media_key_prefix: str = Field(default="civic", description="Key prefix for uploaded media")

    cloudflare_account_id: str | None = Field(default=None, description="CloudFlare account ID")
    cloudflare_access_key_id: str | None = Field(
        default=None, description="CloudFlare R2 access key"
    )
    cloudflare_secret_access_key: str | None = Field(
        default=None, description="CloudFlare R2 secret key"
    )
    cloudflare_bucket_name: str | None = Field(
        default=None, description="CloudFlare R2 bucket name"
    )

    object_store_timeout: int = Field(
        default=15, description="Connect/read timeout for object store calls in seconds"
    )
    object_store_max_attempts: int = Field(
        default=3, description="Attempts per object store call before giving up"
    )
    object_store_concurrency: int = Field(
        default=8, description="Maximum concurrent object store calls per request"
    )

    # ===== Redis Configuration =====
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    cache_enabled: bool = Field(default=True, description="Use Redis for list caching")

    # ===== Application Limits =====
    max_file_size: int = Field(default=10485760, description="Maximum file size in bytes (10MB)")
    max_files_per_request: int = Field(default=10, description="Maximum files per upload")
    default_page_size: int = Field(default=20, description="Default page size for listings")

    # ===== CORS Settings =====
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000",
        description="Allowed CORS origins (comma-separated)",
    )

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        if isinstance(self.allowed_origins, str):
            return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]
        return self.allowed_origins if isinstance(self.allowed_origins, list) else []

    # ===== Background Tasks (Celery) =====
    celery_broker_url: str = Field(
        default="redis://localhost:6379/1", description="Celery broker URL"
    )
    celery_result_backend: str = Field(
        default="redis://localhost:6379/2", description="Celery result backend"
    )
    media_sweep_hour: int = Field(default=3, description="UTC hour of the nightly orphan sweep")
    media_sweep_grace_minutes: int = Field(
        default=60, description="Blobs and rows younger than this are skipped by the sweep"
    )

    # ===== Monitoring & Logging =====
    log_level: LogLevelEnum = Field(default=LogLevelEnum.INFO, description="Logging level")
    log_format: LogFormatEnum = Field(default=LogFormatEnum.json, description="Log format")

    # ===== Server Settings =====
    host: str = Field(default="127.0.0.1", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")

    # ===== Computed Properties =====
    @property
    def is_development(self) -> bool:
        return self.environment == EnvironmentEnum.development

    @property
    def is_production(self) -> bool:
        return self.environment == EnvironmentEnum.production

    @property
    def has_file_storage(self) -> bool:
        return bool(
            (self.aws_access_key_id and self.aws_secret_access_key and self.s3_bucket_name)
            or (
                self.cloudflare_access_key_id
                and self.cloudflare_secret_access_key
                and self.cloudflare_bucket_name
            )
        )

    @property
    def storage_type(self) -> str:
        if self.cloudflare_access_key_id:
            return "cloudflare_r2"
        if self.aws_access_key_id:
            return "aws_s3"
        return "none"

    @property
    def bucket_name(self) -> str | None:
        if self.storage_type == "cloudflare_r2":
            return self.cloudflare_bucket_name
        return self.s3_bucket_name

    @property
    def storage_endpoint_url(self) -> str | None:
        if self.storage_type == "cloudflare_r2" and self.cloudflare_account_id:
            return f"https://{self.cloudflare_account_id}.r2.cloudflarestorage.com"
        return self.s3_endpoint_url

    # ===== Validation Methods =====
    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        if v and isinstance(v, str):
            lv = v.lower()
            if lv in ["dev", "develop"]:
                return "development"
            if lv in ["prod"]:
                return "production"
            if lv in ["test"]:
                return "testing"
        return v

    @field_validator("max_file_size")
    @classmethod
    def validate_file_size(cls, v):
        if v > 100 * 1024 * 1024:
            raise ValueError("Maximum file size cannot exceed 100MB")
        return v

    @field_validator("object_store_concurrency", "object_store_max_attempts")
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    @field_validator("media_sweep_hour")
    @classmethod
    def validate_sweep_hour(cls, v):
        if not 0 <= v <= 23:
            raise ValueError("Sweep hour must be between 0 and 23")
        return v

    @model_validator(mode="after")
    def set_computed_fields(self):
        if self.media_public_base_url:
            self.media_public_base_url = self.media_public_base_url.rstrip("/")
        return self


settings = Settings()


class ConfigValidator:
    @staticmethod
    def validate_required_settings():
        errors = []
        if not settings.database_url:
            errors.append("DATABASE_URL is required")
        if settings.is_production and not settings.has_file_storage:
            errors.append("Object storage credentials are required in production")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

    @staticmethod
    def get_feature_status() -> dict:
        return {
            "file_storage": settings.has_file_storage,
            "storage_type": settings.storage_type,
            "cache_enabled": settings.cache_enabled,
            "environment": settings.environment,
        }


def get_config_summary() -> dict:
    return {
        "app_name": settings.app_name,
        "version": settings.version,
        "environment": settings.environment,
        "debug": settings.debug,
        "features": ConfigValidator.get_feature_status(),
        "database_configured": bool(settings.database_url),
        "storage_type": settings.storage_type,
    }


__all__ = [
    "settings",
    "Settings",
    "ConfigValidator",
    "get_config_summary",
    "EnvironmentEnum",
    "LogLevelEnum",
    "LogFormatEnum",
]
