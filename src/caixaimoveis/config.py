"""Configuration system for caixaimoveis.

Uses pydantic-settings to load configuration from environment variables
and .env files with defaults that keep the request rate polite towards the
auction site.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/142.0.0.0 Safari/537.36"
)
DEFAULT_ACCEPT_LANGUAGE = "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Environment variables are prefixed with CAIXA_ (e.g., CAIXA_MIN_DELAY).
    """

    model_config = SettingsConfigDict(
        env_prefix="CAIXA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Site
    base_url: str = Field(
        default="https://venda-imoveis.caixa.gov.br",
        description="Root URL of the auction site",
    )
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent sent with every request",
    )
    accept_language: str = Field(
        default=DEFAULT_ACCEPT_LANGUAGE,
        description="Accept-Language sent with every request",
    )

    # Request behaviour
    timeout: float = Field(
        default=20.0,
        ge=1,
        le=120,
        description="Per-request timeout in seconds",
    )
    retries: int = Field(
        default=4,
        ge=0,
        le=8,
        description="Extra attempts for 429/5xx responses and network errors",
    )
    min_delay: float = Field(
        default=0.5,
        ge=0,
        le=10,
        description="Minimum seconds between request starts",
    )

    # Worker pools
    concurrency: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Listing pages fetched in parallel",
    )
    details_concurrency: int = Field(
        default=2,
        ge=1,
        le=10,
        description="Detail pages fetched in parallel",
    )

    # Data paths
    output_dir: Path = Field(
        default=Path("output"),
        description="Directory for CSV output",
    )


# Singleton instance for easy import
config = Settings()
