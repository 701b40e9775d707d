"""
Application configuration.

Loads settings from environment variables and .env file.
All configuration is centralized here. The running environment mode is
read once and passed explicitly to the components that depend on it.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from website import __version__

PACKAGE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Attributes:
        project_name: Display name for the site.
        version: Current release string, also sent to crash reporting.
        environment: Deployment mode. Diagnostic detail is suppressed in production.
        debug: Enable debug mode (API docs). Must be False in production.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        sentry_dsn: Crash-reporting DSN. Crash reporting is off when unset.
        gzip_minimum_size: Smallest response body (bytes) that gets compressed.
        hsts_max_age: Strict-Transport-Security max-age in seconds.
        hsts_include_subdomains: Add includeSubDomains to the HSTS header.
        max_request_size_bytes: Maximum accepted request body size.
        views_dir: Directory holding the Jinja2 view templates.
        public_dir: Directory served as static files at the site root.
        rate_limit_enabled: Toggle slowapi rate limiting.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    project_name: str = "Modules"
    version: str = __version__
    environment: Literal["development", "test", "production"] = Field(
        default="development",
        validation_alias=AliasChoices("environment", "ENVIRONMENT", "NODE_ENV"),
    )
    debug: bool = False
    log_level: str = "INFO"

    sentry_dsn: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("sentry_dsn", "SENTRY_DSN", "SENTRY_API_KEY"),
    )

    gzip_minimum_size: int = 500
    hsts_max_age: int = 15_638_400  # ~181 days
    hsts_include_subdomains: bool = True
    max_request_size_bytes: int = 102_400  # 100 kb

    views_dir: Path = PACKAGE_DIR / "views"
    public_dir: Path = PACKAGE_DIR / "public"

    rate_limit_enabled: bool = True

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"


settings = Settings()
