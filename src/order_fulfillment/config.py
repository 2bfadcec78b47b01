"""Configuration management using Pydantic Settings."""

from typing import Literal
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Stripe Configuration
    stripe_webhook_secret: str = ""
    stripe_signature_tolerance: int = 300  # seconds

    # Storage
    storage_backend: Literal["postgres", "memory"] = "postgres"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "shop"
    postgres_password: str = "shop"
    postgres_db: str = "shop"
    postgres_pool_min_size: int = 1
    postgres_pool_max_size: int = 10
    postgres_connection_retries: int = 10
    postgres_retry_delay: float = 2.0  # Initial delay in seconds
    postgres_retry_max_delay: float = 30.0  # Max delay between retries
    store_timeout_seconds: float = 10.0

    # SMTP Configuration
    smtp_host: str = "smtp.sendgrid.net"
    smtp_port: int = 587
    smtp_user: str = "apikey"
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_timeout_seconds: float = 15.0
    email_sender: str = ""

    # Notifications
    shop_name: str = "Mignonneries de Nathalie"
    operator_email: str = ""
    frontend_url: str = ""
    notification_timeout_seconds: float = 20.0

    # Application
    debug: bool = False
    log_level: str = "INFO"

    @property
    def postgres_dsn(self) -> str:
        """Build Postgres connection string with URL-encoded credentials."""
        encoded_user = quote_plus(self.postgres_user)
        encoded_password = quote_plus(self.postgres_password)
        return f"postgresql://{encoded_user}:{encoded_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    @property
    def operator_recipient(self) -> str:
        """Operator alert address, falling back to the sender mailbox."""
        return self.operator_email or self.email_sender

    @property
    def frontend_base_url(self) -> str:
        return self.frontend_url.rstrip("/")


settings = Settings()
