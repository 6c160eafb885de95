"""
Environment configuration loader with validation for the holiday CRM core.
"""

import logging
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_TRUE_VALUES = ("true", "1", "yes", "on")


class CRMConfig(BaseModel):
    """Configuration model for the booking core with validation."""

    # Application
    app_name: str = Field(default="Yorke Holidays CRM", description="Display name")
    app_version: str = Field(default="1.0.0", description="Release version")
    environment: str = Field(default="development", description="Execution mode")

    # Remote storage (Supabase)
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_anon_key: str = Field(default="", description="Supabase anon key")
    supabase_service_role_key: str = Field(default="", description="Supabase service role key")
    use_remote_storage: bool = Field(default=False, description="Use Supabase instead of the mock store")
    mock_storage_path: Optional[str] = Field(
        default=None, description="JSON file backing the mock store"
    )

    # Data access
    api_timeout_ms: int = Field(default=10000, ge=1, description="Per-attempt timeout in milliseconds")
    max_retries: int = Field(default=3, ge=1, le=10, description="Attempts per storage call")
    retry_initial_delay_ms: int = Field(default=1000, ge=0, description="First backoff delay in milliseconds")
    retry_backoff_multiplier: float = Field(default=2.0, ge=1.0, description="Backoff growth factor")

    # Observability
    log_level: str = Field(default="INFO", description="Logging level")
    sentry_dsn: Optional[str] = Field(default=None, description="Sentry DSN for error tracking")

    # Business defaults
    documents_base_url: str = Field(
        default="https://documents.yorkeholidays.com", description="Root URL for generated documents"
    )
    default_commission_rate: float = Field(
        default=5.0, ge=0.0, le=25.0, description="Commission percent applied when a booking omits one"
    )
    items_per_page: int = Field(default=10, ge=1, le=100, description="Default listing page size")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid_environments = ["development", "production", "test"]
        if v.lower() not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v.lower()

    @field_validator("documents_base_url", "supabase_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def has_remote_credentials(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    def masked(self) -> Dict[str, Any]:
        """Settings with secrets replaced, for display."""
        data = self.model_dump()
        for key in ("supabase_anon_key", "supabase_service_role_key", "sentry_dsn"):
            if data.get(key):
                data[key] = _mask(data[key])
        return data


def load_config(env_file: Optional[str] = None) -> CRMConfig:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Optional path to .env file. If None, looks for .env in current directory.

    Returns:
        CRMConfig: Validated configuration object

    Raises:
        ValueError: If configuration is invalid
    """
    if env_file is None:
        env_file = ".env"

    if os.path.exists(env_file):
        load_dotenv(env_file)

    try:
        supabase_url = os.getenv("SUPABASE_URL", "")
        supabase_anon_key = os.getenv("SUPABASE_ANON_KEY", "")
        use_remote = os.getenv("USE_REMOTE_STORAGE")

        config_data: Dict[str, Any] = {
            "app_name": os.getenv("APP_NAME", "Yorke Holidays CRM"),
            "app_version": os.getenv("APP_VERSION", "1.0.0"),
            "environment": os.getenv("APP_ENV", "development"),
            "supabase_url": supabase_url,
            "supabase_anon_key": supabase_anon_key,
            "supabase_service_role_key": os.getenv("SUPABASE_SERVICE_ROLE_KEY", ""),
            "use_remote_storage": (
                use_remote.lower() in _TRUE_VALUES
                if use_remote
                else bool(supabase_url and supabase_anon_key)
            ),
            "mock_storage_path": os.getenv("MOCK_STORAGE_PATH") or None,
            "api_timeout_ms": int(os.getenv("API_TIMEOUT_MS", "10000")),
            "max_retries": int(os.getenv("MAX_RETRIES", "3")),
            "retry_initial_delay_ms": int(os.getenv("RETRY_INITIAL_DELAY_MS", "1000")),
            "retry_backoff_multiplier": float(os.getenv("RETRY_BACKOFF_MULTIPLIER", "2.0")),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
            "sentry_dsn": os.getenv("SENTRY_DSN") or None,
            "documents_base_url": os.getenv(
                "DOCUMENTS_BASE_URL", "https://documents.yorkeholidays.com"
            ),
            "default_commission_rate": float(os.getenv("DEFAULT_COMMISSION_RATE", "5.0")),
            "items_per_page": int(os.getenv("ITEMS_PER_PAGE", "10")),
        }
        return CRMConfig(**config_data)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")


def configure_logging(level: Optional[str] = None) -> None:
    """Install the console log handler at ``level`` (default: configured level)."""
    logging.basicConfig(
        level=(level or get_config().log_level).upper(),
        format=LOG_FORMAT,
    )


# Global configuration instance
_config: Optional[CRMConfig] = None


def get_config() -> CRMConfig:
    """
    Get the global configuration instance, loading it if necessary.

    Returns:
        CRMConfig: The global configuration object
    """
    global _config
    if _config is None:
        _config = load_config()
        if _config.use_remote_storage and not _config.has_remote_credentials:
            logger.warning("USE_REMOTE_STORAGE is set but Supabase credentials are missing")
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next ``get_config`` reloads it."""
    global _config
    _config = None


def _mask(secret: str) -> str:
    if len(secret) <= 8:
        return "****"
    return f"{secret[:4]}...{secret[-4:]}"
