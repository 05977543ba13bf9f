"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite+aiosqlite:///./activities.db"
    CORS_ORIGINS: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Outbound mail
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    EMAIL_FROM: str = ""
    EMAIL_FROM_NAME: str = "Activity Board"

    DISPLAY_TIMEZONE: str = "UTC"  # IANA tz used when rendering dates in emails
    ACTIVITY_EXPIRY_DAYS: int = 1
    MIN_PASSWORD_LENGTH: int = 6

    class Config:
        env_file = ".env"

    @property
    def email_sender(self) -> str:
        return self.EMAIL_FROM or self.SMTP_USERNAME


settings = Settings()
