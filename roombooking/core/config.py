from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    STORE_PROVIDER: str = "memory"
    DATA_DIR: str = "./data/bookings"
    # JSON file with {"rooms": [...], "users": [...]}; empty directories when unset.
    DIRECTORY_FILE: str | None = None

    # Identity used for calendar writes when the host cannot be impersonated.
    SERVICE_ACCOUNT_EMAIL: str = "rooms@example.com"

    DEFAULT_MAX_BOOKING_DURATION_MINUTES: int | None = None
    AUTO_CHECK_IN_WINDOW_SECONDS: int = 60
    MAX_EXTENSION_MINUTES: int = 120
    RECURRENCE_MAX_OCCURRENCES: int = 200

    NO_SHOW_GRACE_MINUTES: int = 10
    NO_SHOW_SCAN_LIMIT: int = 500

    OVERDUE_REMINDER_GRACE_MINUTES: int = 30
    ACTION_EXTEND_MINUTES: int = 30

    SYNC_MIN_INTERVAL_SECONDS: int = 60
    SYNC_WINDOW_PAST_MINUTES: int = 24 * 60
    SYNC_WINDOW_FUTURE_DAYS: int = 30


settings = Settings()
