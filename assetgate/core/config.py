import logging
import os
import tomllib
from datetime import timedelta
from enum import StrEnum
from pathlib import Path

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict
from yarl import URL

PROJECT_DIR = Path(__file__).parent.parent.parent
PROJECT_TOML_PATH = PROJECT_DIR / "pyproject.toml"

with open(PROJECT_TOML_PATH, "rb") as f:
    PYPROJECT_CONTENT = tomllib.load(f)["project"]

DEFAULT_SECRET_KEY = "dev-secret-key-change-me"
DEFAULT_SIGNATURE_SECRET = "dev-signature-secret-change-me"


class Environment(StrEnum):
    LOCAL = "local"
    DEV = "dev"
    STG = "stg"
    PRD = "prd"


def convert_app_name(s: str) -> str:
    return " ".join(word.capitalize() for word in s.split("-"))


class Settings(BaseSettings):
    """
    Application settings.

    These parameters can be configured
    with environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=False,
        extra="ignore",
        arbitrary_types_allowed=True,
    )

    # App variables
    app_name: str = PYPROJECT_CONTENT["name"]
    app_title: str = os.getenv("APP_TITLE", convert_app_name(app_name))
    app_version: str = PYPROJECT_CONTENT["version"]
    app_description: str = PYPROJECT_CONTENT["description"]

    backend_host: str = "0.0.0.0"
    backend_port: int = 8000

    cors_origins: str = "http://localhost:3000"
    allowed_hosts: str = "*"

    # Public frontend base URL used in emailed links
    app_url: str = "http://localhost:3000"

    # Number of workers for uvicorn
    workers_count: int = 1

    # Enable uvicorn reloading
    reload_uvicorn: bool = False

    # Current working environment
    current_environment: Environment = Environment.LOCAL
    log_level: int = logging.INFO
    debug: bool = False

    # Variables for the database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_db: str = "assetgate"
    postgres_db_schema: str = "assetgate"

    # Variables for Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_user: str | None = None
    redis_pass: str | None = None
    redis_base: int | None = None
    redis_max_pool_connections: int = 20  # Maximum number of connections in the Redis pool
    redis_socket_connect_timeout: int = 5  # Socket connect timeout in seconds
    redis_socket_timeout: int = 5  # Socket timeout in seconds
    redis_enabled_in_local: bool = False  # Connect to Redis even when running locally

    # Cache settings
    cache_enabled: bool = True
    cache_ttl_default: int = 300  # Default cache TTL in seconds
    cache_ttl_short: int = 60  # Short cache TTL in seconds
    cache_ttl_long: int = 3600  # Long cache TTL in seconds

    # Rate limiting settings (requests per window)
    rate_limit_enabled: bool = True
    rate_limit_default: int = 100  # Default limit for general API endpoints
    rate_limit_window: int = 60  # Default window in seconds (1 minute)
    rate_limit_strict: int = 10  # Strict limit for authentication endpoints
    rate_limit_lenient: int = 1000  # Lenient limit for public endpoints
    rate_limit_user: int = 300  # Limit for authenticated user endpoints

    # Token security settings
    secret_key: str = DEFAULT_SECRET_KEY
    access_token_expire_seconds: int = int(timedelta(hours=1).total_seconds())
    refresh_token_expire_seconds: int = int(timedelta(days=30).total_seconds())
    jwt_algorithm: str = "HS256"
    session_cookie_name: str = "session_token"

    # Signed verification links
    signature_secret: str = DEFAULT_SIGNATURE_SECRET
    signature_ttl_seconds: int = 600
    activation_signature_ttl_seconds: int = 300
    invite_ttl_seconds: int = int(timedelta(hours=24).total_seconds())

    # One-time codes
    otp_ttl_seconds: int = 600
    otp_cooldown_base_seconds: int = 30
    otp_cooldown_cap_exponent: int = 9
    otp_daily_limit: int = 10
    otp_quota_timezone: str = "UTC"

    # Lemon Squeezy license vendor
    lemonsqueezy_api_url: str = "https://api.lemonsqueezy.com/v1"
    lemonsqueezy_api_key: str = ""
    lemonsqueezy_store_id: int = 213520
    lemonsqueezy_product_id: int = 632985
    lemonsqueezy_timeout_seconds: float = 10.0

    # Resend email delivery
    resend_api_url: str = "https://api.resend.com"
    resend_api_key: str = ""
    email_from: str = "MoonUI <no-reply@moonui.design>"

    # Asset catalog
    catalog_default_author: str = "MoonUI Team"
    catalog_page_size: int = 12
    catalog_overview_size: int = 6
    catalog_new_window_days: int = 30
    free_download_limit: int = 5
    free_download_window_seconds: int = int(timedelta(days=30).total_seconds())

    # Scheduled license maintenance
    cron_secret: str = ""
    license_expiry_notice_days: int = 7
    enable_license_expiry_schedule: bool = True

    # OpenObserve
    log_to_openobserve: bool = False
    openobserve_url: str = ""
    openobserve_org_id: str = "default"
    openobserve_stream_name: str = "default"
    openobserve_access_key: str = ""
    openobserve_batch_size: int = 10
    openobserve_flush_interval: float = 5.0

    # Celery settings
    celery_broker_url: str | None = None
    celery_result_backend: str | None = None
    celery_broker_db: int = 1  # Database index for the Celery broker
    celery_result_db: int = 2  # Database index for the Celery result backend
    celery_timezone: str = "UTC"
    celery_task_time_limit: int = 300  # Maximum time limit (default is 5 minutes)

    @computed_field
    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS origins from a comma-separated string.
        """
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @computed_field
    @property
    def allowed_hosts_list(self) -> list[str]:
        """
        Parse allowed hosts from a comma-separated string.
        """
        return [host.strip() for host in self.allowed_hosts.split(",") if host.strip()]

    @computed_field
    @property
    def server_host(self) -> str:
        """
        Get the server host URL based on environment.
        """
        if self.current_environment in {Environment.LOCAL, Environment.DEV}:
            return f"http://{self.backend_host}:{self.backend_port}"

        return f"https://{self.backend_host}"

    @computed_field
    @property
    def db_url(self) -> URL:
        """
        Assemble database URL from settings.
        """
        return URL.build(
            scheme="postgresql+asyncpg",
            host=self.postgres_host,
            port=self.postgres_port,
            user=self.postgres_user,
            password=self.postgres_password,
            path=f"/{self.postgres_db}",
        )

    @computed_field
    @property
    def db_url_sync(self) -> URL:
        """
        Assemble database URL from settings (sync - for Celery).
        """
        return URL.build(
            scheme="postgresql+psycopg",
            host=self.postgres_host,
            port=self.postgres_port,
            user=self.postgres_user,
            password=self.postgres_password,
            path=f"/{self.postgres_db}",
        )

    @computed_field
    @property
    def redis_url(self) -> URL:
        """
        Assemble REDIS URL from settings.
        """
        path = ""

        if self.redis_base is not None:
            path = f"/{self.redis_base}"

        return URL.build(
            scheme="redis",
            host=self.redis_host,
            port=self.redis_port,
            user=self.redis_user,
            password=self.redis_pass,
            path=path,
        )

    @computed_field
    @property
    def celery_broker(self) -> URL:
        """Celery broker URL (Redis DB 1)"""
        if self.celery_broker_url is not None:
            return URL(self.celery_broker_url)

        return URL.build(
            scheme="redis",
            host=self.redis_host,
            port=self.redis_port,
            password=self.redis_pass if self.redis_pass else None,
            path=f"/{self.celery_broker_db}",
        )

    @computed_field
    @property
    def celery_backend(self) -> URL:
        """Celery result backend URL (Redis DB 2)"""
        if self.celery_result_backend is not None:
            return URL(self.celery_result_backend)

        return URL.build(
            scheme="redis",
            host=self.redis_host,
            port=self.redis_port,
            password=self.redis_pass if self.redis_pass else None,
            path=f"/{self.celery_result_db}",
        )

    @property
    def redis_enabled(self) -> bool:
        """Whether Redis-backed services connect; local runs skip Redis unless asked to."""
        return self.current_environment != Environment.LOCAL or self.redis_enabled_in_local

    @property
    def uses_default_secrets(self) -> bool:
        """Whether token or signature secrets still hold their development values."""
        return (
            self.secret_key == DEFAULT_SECRET_KEY
            or self.signature_secret == DEFAULT_SIGNATURE_SECRET
        )


settings = Settings()  # type: ignore
