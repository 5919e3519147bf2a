
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    PROJECT_NAME: str = "Court Booking API"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = "changeme"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 8

    # Database
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "12345"
    POSTGRES_DB: str = "court_booking"
    POSTGRES_PORT: int = 5432
    DATABASE_URL: str = ""

    # Facility: slot dates/hours and pricing rules are evaluated in this zone
    FACILITY_TIMEZONE: str = "UTC"
    OPENING_HOUR: int = 6
    CLOSING_HOUR: int = 22

    # Soft holds and waitlist
    RESERVATION_TTL_MINUTES: int = 5
    WAITLIST_EXPIRY_HOURS: int = 24

    # Background housekeeping (completed bookings, stale waitlist entries)
    HOUSEKEEPING_INTERVAL_SECONDS: int = 60

    # Outgoing email. Empty SMTP_HOST disables delivery.
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    EMAIL_FROM: str = "no-reply@courtbooking.local"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"
    )

    def assemble_db_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

settings = Settings()
settings.DATABASE_URL = settings.assemble_db_url()
