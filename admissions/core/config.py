"""Admissions API settings, read from the environment (and `.env` when present)."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # dev | staging | prod
    ENV: str = "dev"
    VERSION: str = "0.1.0"

    # Any SQLAlchemy URL; local SQLite file by default
    DATABASE_URL: str = "sqlite:///./admissions.db"

    # Cookie session JWT. JWT_SECRET_PREVIOUS is only set while rotating keys.
    JWT_SECRET: str = "change-this-in-production"
    JWT_SECRET_PREVIOUS: str = ""
    JWT_EXPIRES_HOURS: int = 8

    # Comma-separated list of frontend origins
    CORS_ORIGINS: str = "http://localhost:3000"

    # Shared secret for the cron-driven presence sweep; empty disables it
    INTERNAL_SECRET: str = ""

    SENTRY_DSN: str = ""

    # Public enquiry form, per client IP per minute (0 disables)
    RATE_LIMIT_PUBLIC: int = 20
    RATE_LIMIT_STORAGE_URI: str = "memory://"

    # IANA zone whose midnight starts a new attendance day
    ATTENDANCE_TIMEZONE: str = "UTC"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def jwt_secrets(self) -> list[str]:
        """Secrets accepted when verifying a session token, current one first."""
        return [secret for secret in (self.JWT_SECRET, self.JWT_SECRET_PREVIOUS) if secret]


settings = Settings()
