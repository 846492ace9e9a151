"""
Configuration module for the hospital appointment scheduling engine.
Loads environment variables and provides typed configuration.
"""

from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env file
env_path = Path(__file__).parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase (backend appointment store)
    supabase_url: str = ""
    supabase_key: str = ""

    # Scheduling
    timezone: str = "Africa/Kigali"
    day_start: str = "08:00"  # First bookable time for manual bookings
    day_end: str = "18:00"  # Final leaving time, never bookable itself

    # Notifications
    notifications_enabled: bool = True

    # Store behaviour
    store_read_retries: int = 3
    reference_cache_minutes: int = 5

    # Logging
    log_level: str = "INFO"
    log_dir: str = "logs"

    environment: str = "development"  # development, staging, production

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def validate_all_required(self) -> None:
        """
        Validate that all required settings are present.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        required_fields = [
            "supabase_url",
            "supabase_key",
        ]

        missing = []
        for field in required_fields:
            value = getattr(self, field, None)

            if not value:
                missing.append(field)
                continue

            # Check for placeholder values
            if str(value).lower().startswith("your_"):
                missing.append(field)

        if missing:
            raise ValueError(
                f"Missing or invalid required configuration: "
                f"{', '.join(missing)}. "
                f"Please check your .env file and ensure all required "
                f"values are set."
            )


# Global settings instance
settings = Settings()
