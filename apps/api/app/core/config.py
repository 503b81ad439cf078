"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Database
    DATABASE_URL: str

    # Run pending Alembic migrations on startup
    AUTO_MIGRATE: bool = False

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Internal scheduled endpoints (cron jobs, manual "run now")
    INTERNAL_SECRET: str = ""  # Secret for /internal/scheduled/* endpoints

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Reminder worker
    ENABLE_REMINDERS: bool = False  # Start the periodic tick loop in app.worker
    REMINDER_INTERVAL_SECONDS: int = 3600  # Hourly by default
    REMINDER_KYC_WINDOW_DAYS: int = 7

    # SMTP relay (email channel)
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT_SECONDS: float = 10.0
    EMAIL_FROM: str = ""  # Falls back to SMTP_USERNAME if empty

    # Twilio (SMS + WhatsApp channels)
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_PHONE_NUMBER: str = ""  # E.164 sender for SMS
    TWILIO_WHATSAPP_FROM: str = ""  # e.g. whatsapp:+14155238886
    TWILIO_API_BASE_URL: str = "https://api.twilio.com/2010-04-01"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def email_from_address(self) -> str:
        return self.EMAIL_FROM or self.SMTP_USERNAME

    @property
    def smtp_configured(self) -> bool:
        """SMTP relay needs a host and a sender address."""
        return bool(self.SMTP_HOST and self.email_from_address)

    @property
    def twilio_configured(self) -> bool:
        return bool(self.TWILIO_ACCOUNT_SID and self.TWILIO_AUTH_TOKEN)


settings = Settings()
