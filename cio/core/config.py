"""
Application configuration using pydantic-settings.
"""
import logging
import secrets
from pathlib import Path
from typing import List, Optional

from pydantic import field_validator, model_validator, ValidationInfo
from pydantic_settings import BaseSettings, SettingsConfigDict

from cio import __version__

logger = logging.getLogger(__name__)

DEFAULT_SQLITE_URL = "sqlite:///./cio.db"

# Define the project root directory
PROJECT_ROOT = Path(__file__).parent.parent.parent.resolve()

# Products that authenticate with the OAuth authorization-code flow.
OAUTH_PRODUCTS = ("gusto", "mailchimp", "quickbooks", "slack", "zoho", "zoom")


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = "CIO Webhooky"
    app_version: str = __version__
    debug: bool = False
    environment: str = "development"
    domain_name: str = ""
    domain_scheme: str = "http"  # "https" in production; used for OAuth redirect URIs

    # API
    api_v1_prefix: str = "/api/v1"
    enable_cors: bool = False
    cors_origins: Optional[List[str]] = None
    app_port: int = 8000

    # Database Configuration
    database_url: str = DEFAULT_SQLITE_URL
    postgres_url: Optional[str] = None
    postgres_user: Optional[str] = None
    postgres_password: Optional[str] = None
    postgres_db: Optional[str] = None
    postgres_host: Optional[str] = None
    postgres_port: Optional[int] = None

    # Security
    secret_key: str = ""  # Must be set via environment variable
    webhooky_bearer_token: str = ""

    # Redis / Celery
    redis_url: Optional[str] = None
    celery_broker_url: Optional[str] = None
    celery_result_backend: Optional[str] = None
    celery_task_serializer: str = "json"
    celery_result_serializer: str = "json"
    celery_accept_content: List[str] = ["json"]
    celery_timezone: str = "UTC"
    celery_enable_utc: bool = True

    # Airtable
    airtable_api_key: str = ""
    airtable_base_id_cio: str = ""
    airtable_enterprise_account_id: str = ""
    airtable_enterprise_api_key: str = ""

    # Third-party credentials
    checkr_api_key: str = ""
    gusto_client_id: str = ""
    gusto_client_secret: str = ""
    mailchimp_client_id: str = ""
    mailchimp_client_secret: str = ""
    quickbooks_client_id: str = ""
    quickbooks_client_secret: str = ""
    ramp_client_id: str = ""
    ramp_client_secret: str = ""
    tripactions_client_id: str = ""
    tripactions_client_secret: str = ""
    slack_client_id: str = ""
    slack_client_secret: str = ""
    zoho_client_id: str = ""
    zoho_client_secret: str = ""
    zoom_client_id: str = ""
    zoom_client_secret: str = ""
    zoom_account_id: str = ""

    # Jobs
    # Company that owns the shared CIO base; global jobs are recorded against it
    cio_company_name: str = "Oxide"
    delete_zoom_recordings_after_import: bool = False
    function_stale_after_hours: int = 24
    token_refresh_window_hours: int = 24

    # Logging
    log_level: str = "INFO"
    log_dir: str = "./logs"
    log_sql_requests: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def database_type(self) -> str:
        """Detect database type from configuration."""
        if self.postgres_url or (self.postgres_host and self.postgres_user):
            return "postgresql"

        if self.database_url.startswith(("postgresql", "postgres")):
            return "postgresql"

        return "sqlite"

    @property
    def effective_database_url(self) -> str:
        """Get the effective database URL based on configuration hierarchy."""
        # Priority 1: Explicit PostgreSQL URL
        if self.postgres_url:
            return self.postgres_url

        # Priority 2: PostgreSQL components (Docker environment)
        if self.postgres_host and self.postgres_user and self.postgres_db:
            password = self.postgres_password or ""
            port = self.postgres_port or 5432
            return f"postgresql://{self.postgres_user}:{password}@{self.postgres_host}:{port}/{self.postgres_db}"

        # Priority 3: Primary database URL (defaults to SQLite)
        return self.database_url

    @property
    def public_base_url(self) -> str:
        """Externally reachable base URL of the webhook server."""
        host = self.domain_name or f"localhost:{self.app_port}"
        return f"{self.domain_scheme}://{host}"

    def oauth_redirect_uri(self, product: str) -> str:
        """Callback URL registered with a product's OAuth application."""
        return f"{self.public_base_url}{self.api_v1_prefix}/auth/{product}/callback"

    def oauth_credentials(self, product: str) -> tuple[str, str]:
        """Return the (client_id, client_secret) pair configured for a product."""
        return (
            getattr(self, f"{product}_client_id", ""),
            getattr(self, f"{product}_client_secret", ""),
        )

    @field_validator('secret_key')
    @classmethod
    def validate_secret_key(cls, v: str, info: ValidationInfo) -> str:
        """Validate SECRET_KEY is set and secure."""
        if not v:
            env = info.data.get('environment', 'development')
            if env == 'production':
                raise ValueError(
                    "SECRET_KEY must be set in production! "
                    "Generate one with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
                )
            logger.warning(
                "SECRET_KEY not set! Using auto-generated key for development. "
                "Stored API tokens will not decrypt after a restart."
            )
            return secrets.token_urlsafe(32)

        if len(v) < 32:
            logger.warning(
                f"SECRET_KEY is only {len(v)} characters long. "
                "Recommend at least 32 characters for security."
            )

        return v

    @field_validator('cors_origins', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string or list."""
        if v is None:
            return []

        if isinstance(v, str):
            if not v.strip():
                return []
            return [origin.strip() for origin in v.split(',') if origin.strip()]

        if isinstance(v, list):
            return v

        return []

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate primary database URL."""
        if not v or not v.strip():
            logger.info(
                "DATABASE_URL not provided; defaulting to SQLite at %s", DEFAULT_SQLITE_URL
            )
            return DEFAULT_SQLITE_URL

        url = v.strip()
        if not url.startswith(("sqlite", "postgresql", "postgres")):
            logger.warning(
                "DATABASE_URL uses unsupported or untested dialect '%s'. Proceed with caution.",
                url.split("://", 1)[0]
            )
        return url

    @field_validator('postgres_url')
    @classmethod
    def validate_postgres_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate PostgreSQL override URL."""
        if not v or not v.strip():
            return None

        url = v.strip()
        if not url.startswith(("postgresql", "postgres")):
            raise ValueError(
                "POSTGRES_URL must be a PostgreSQL URL (postgresql:// or postgres://)"
            )
        return url

    @field_validator('domain_scheme')
    @classmethod
    def validate_domain_scheme(cls, v: str) -> str:
        """Validate DOMAIN_SCHEME is either http or https."""
        v = v.lower().strip()
        if v not in ("http", "https"):
            raise ValueError(
                "DOMAIN_SCHEME must be either 'http' or 'https'. "
                f"Got: {v}"
            )
        return v

    @field_validator('domain_name')
    @classmethod
    def validate_domain_name(cls, v: str) -> str:
        """Validate DOMAIN_NAME does not contain scheme or trailing slash."""
        if not v:
            return v

        v = v.strip()
        if v.startswith("http://") or v.startswith("https://"):
            raise ValueError(
                "DOMAIN_NAME must not contain a scheme (http:// or https://). "
                "Set the scheme separately using DOMAIN_SCHEME. "
                f"Got: {v}"
            )
        return v.rstrip("/")

    @field_validator('function_stale_after_hours', 'token_refresh_window_hours')
    @classmethod
    def validate_positive_hours(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Hour windows must be positive")
        return v

    @field_validator('celery_broker_url', 'celery_result_backend')
    @classmethod
    def validate_celery_urls(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        """Auto-configure Celery from redis_url if not explicitly set."""
        if v:
            return v

        redis_url = info.data.get('redis_url')
        if redis_url:
            logger.info(
                f"{info.field_name.upper()} not set. Defaulting to REDIS_URL"
            )
            return redis_url

        return v

    @model_validator(mode='after')
    def validate_production_settings(self) -> 'Settings':
        """Production validation."""
        if self.environment != "production":
            return self

        errors = []
        if self.debug:
            errors.append("DEBUG must be False in production.")
        if not self.webhooky_bearer_token:
            errors.append("WEBHOOKY_BEARER_TOKEN must be set in production.")
        if self.domain_scheme != "https":
            errors.append("DOMAIN_SCHEME must be https in production (OAuth callbacks).")

        if not self.celery_broker_url:
            logger.warning(
                "Production configuration warning: CELERY_BROKER_URL not configured. "
                "Scheduled sync jobs will not run."
            )

        if errors:
            error_message = "Production configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            raise ValueError(error_message)

        return self


# Create settings instance
settings = Settings()
