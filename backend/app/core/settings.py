# backend/app/core/settings.py
"""
RemitDesk - Configuration Management with pydantic-settings

- Loads from environment and root .env
- Validates and normalizes values
- Cached singleton via get_settings()
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional, List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Calculate path to .env in project root (4 levels up from this file)
# backend/app/core/settings.py -> <repo>/.env
_ENV_FILE = Path(__file__).resolve().parent.parent.parent.parent / ".env"


class Settings(BaseSettings):
    """
    Application settings with validation.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===================
    # Application Settings
    # ===================
    PROJECT_NAME: str = "RemitDesk"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    ENVIRONMENT: str = Field(default="development", description="Deployment environment")

    # ===================
    # Database Settings
    # ===================
    DB_HOST: str = Field(default="localhost", description="PostgreSQL host")
    DB_PORT: int = Field(default=5432, description="PostgreSQL port")
    DB_NAME: str = Field(default="remitdesk", description="Database name")
    DB_USER: str = Field(default="postgres", description="Database user")
    DB_PASSWORD: str = Field(default="postgres", description="Database password")
    DATABASE_URL: Optional[str] = Field(
        default=None, description="Full database URL (overrides DB_* settings)"
    )

    @property
    def database_url(self) -> str:
        """Build PostgreSQL database URL from components or use explicit URL."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    # ===================
    # Security Settings
    # ===================
    SECRET_KEY: str = Field(
        default="change-this-to-a-random-secret-key-in-production",
        description="JWT signing key - MUST change in production",
    )
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(
        default=60, description="JWT token expiration in minutes"
    )
    LOGIN_RATE_LIMIT: str = Field(default="10/minute", description="slowapi limit for login")

    @field_validator("SECRET_KEY")
    @classmethod
    def warn_default_secret(cls, v: str) -> str:
        """Fail in prod if default secret; warn in dev."""
        if "change-this" in v.lower():
            import warnings
            import os

            if os.getenv("ENVIRONMENT", "development").lower() == "production":
                raise ValueError(
                    "Default SECRET_KEY detected in production. Set a secure SECRET_KEY."
                )
            warnings.warn(
                "WARNING: Using default SECRET_KEY. Do not use this in production.",
                UserWarning,
                stacklevel=2,
            )
        return v

    # ===================
    # CORS Settings
    # ===================
    ALLOWED_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        description="Allowed CORS origins",
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    FRONTEND_URL: str = Field(
        default="http://localhost:5173", description="Admin frontend URL"
    )

    @model_validator(mode="after")
    def add_frontend_url_to_cors(self):
        """Ensure FRONTEND_URL is allowed for CORS."""
        if self.FRONTEND_URL and self.FRONTEND_URL not in self.ALLOWED_ORIGINS:
            self.ALLOWED_ORIGINS = list(self.ALLOWED_ORIGINS) + [self.FRONTEND_URL]
        return self

    # ===================
    # Proof Uploads
    # ===================
    PROOF_UPLOAD_DIR: str = Field(default="./uploads/proofs", description="Proof image dir")
    PROOF_PUBLIC_BASE_URL: str = Field(
        default="/uploads/proofs", description="URL prefix returned for stored proofs"
    )
    PROOF_MAX_BYTES: int = Field(default=5 * 1024 * 1024, description="Max proof size (bytes)")
    PROOF_ALLOWED_MIME_TYPES: List[str] = Field(
        default=["image/jpeg", "image/png", "image/webp", "image/gif"],
        description="Accepted proof MIME types",
    )

    @field_validator("PROOF_ALLOWED_MIME_TYPES", "PROOF_EXEMPT_DELIVERY_METHODS", mode="before")
    @classmethod
    def parse_csv_list(cls, v):
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    # ===================
    # Workflow Policy
    # ===================
    DELIVERY_PROOF_REQUIRED: bool = Field(
        default=True, description="Block delivery confirmation until a proof exists"
    )
    PROOF_EXEMPT_DELIVERY_METHODS: List[str] = Field(
        default=[], description="Remittance delivery methods that skip the proof requirement"
    )
    AUTO_COMPLETE_ON_DELIVERY: bool = Field(
        default=False, description="Move straight to completed when delivery is confirmed"
    )

    # ===================
    # Realtime / Notifications
    # ===================
    CHANGE_FEED_SIZE: int = Field(default=500, description="Entries kept in the change feed")
    NOTIFICATION_QUEUE_SIZE: int = Field(default=50, description="Notifications kept per admin")
    REMITTANCE_ALERT_HOURS: int = Field(
        default=24, description="Flag remittances due within this many hours"
    )
    DEFAULT_MAX_DELIVERY_DAYS: int = Field(
        default=3, description="Delivery window for remittances without a type"
    )

    # ===================
    # Logging
    # ===================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or text
    LOG_FILE: Optional[str] = None

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
