from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application configuration loaded from environment variables / .env file."""

    app_name: str = "SCM Workflow API"
    app_env: str = "development"
    app_port: int = 8000
    frontend_url: str = "http://localhost:3000"

    # Database (PostgreSQL in production or SQLite for local dev)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./scm_dev.db",
        alias="DATABASE_URL",
    )

    # Workflow rules
    rating_acceptance_window_days: int = Field(
        default=5, alias="RATING_ACCEPTANCE_WINDOW_DAYS",
    )  # Calendar days after ratingDate during which the supplier may accept
    claim_number_max_retries: int = Field(
        default=5, alias="CLAIM_NUMBER_MAX_RETRIES",
    )

    # Outbound notifications
    notification_queue_size: int = Field(default=1000, alias="NOTIFICATION_QUEUE_SIZE")
    mail_from: str = Field(default="noreply@scm.example.com", alias="MAIL_FROM")
    smtp_host: str | None = Field(default=None, alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_username: str | None = Field(default=None, alias="SMTP_USERNAME")
    smtp_password: str | None = Field(default=None, alias="SMTP_PASSWORD")
    smtp_use_tls: bool = Field(default=True, alias="SMTP_USE_TLS")
    smtp_timeout: int = Field(default=30, alias="SMTP_TIMEOUT")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "populate_by_name": True,
    }

    @property
    def mail_enabled(self) -> bool:
        """Real mail delivery happens only when an SMTP host is configured."""
        return bool(self.smtp_host)

settings = Settings()
