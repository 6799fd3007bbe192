"""Configuration management for chorecoin."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage Configuration
    sqlite_db_path: str = Field(default="data/chorecoin.db", description="SQLite database file path")

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Admin session signing
    secret_key: str = Field(default="dev-secret-change-me", description="Secret used to sign admin sessions")
    environment: str = Field(default="development", description="Deployment environment name")

    # Feature tuning
    history_default_limit: int = Field(default=20, description="Default number of history entries returned")
    join_code_max_attempts: int = Field(
        default=5, description="How many join codes to try before giving up on a collision-free one"
    )
    operation_timeout_seconds: float = Field(
        default=10.0, description="Upper bound for a single core operation (in seconds)"
    )
    admin_session_max_age_seconds: int = Field(
        default=3600, description="Lifetime of a signed admin session after PIN verification"
    )

    @property
    def is_production(self) -> bool:
        """Whether the app runs in production (secure cookies etc.)."""
        return self.environment.lower() == "production"


# Application Constants
class Constants:
    """Application-wide constants."""

    # Join codes (no 0/O/1/I)
    JOIN_CODE_ALPHABET: str = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
    JOIN_CODE_BLOCK_LENGTH: int = 4
    JOIN_CODE_SEPARATOR: str = "-"

    # Recurrence
    MAX_RECURRENCE_INTERVAL: int = 365

    # Ledger
    CREDIT_REVERSAL_ATTEMPTS: int = 5

    # Admin PIN
    ADMIN_PIN_LENGTH: int = 4

    # Validation
    MAX_NAME_LENGTH: int = 50
    MAX_TASK_NAME_LENGTH: int = 100
    MAX_DESCRIPTION_LENGTH: int = 500
    MAX_NOTE_LENGTH: int = 200
    MAX_HISTORY_LIMIT: int = 200

    # Display names used in history entries
    ADMIN_DISPLAY_NAME: str = "Admin"

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 500


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
