from functools import lru_cache
from typing import Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # === App Metadata ===
    PROJECT_NAME: str = "MockInterview Scheduling"
    ENVIRONMENT: str = Field("dev")  # dev, staging, prod
    DEBUG_MODE: bool = Field(True)

    # === Security ===
    API_KEY: str = Field("super-secret-key")
    ENABLE_API_KEY_SECURITY: bool = Field(True)

    # === Database (PostgreSQL or SQLite fallback) ===
    DB_HOST: str = Field("localhost")
    DB_PORT: int = Field(5432)
    DB_USER: str = Field("postgres")
    DB_PASSWORD: str = Field("postgres")
    DB_NAME: str = Field("scheduling_db")
    AUTO_CREATE_TABLES: bool = Field(True)

    @property
    def DATABASE_URL(self) -> str:
        if self.DB_HOST == "sqlite":
            return f"sqlite:///./{self.DB_NAME}.db"
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # === Meeting Provider (Zoom Server-to-Server OAuth) ===
    ZOOM_ACCOUNT_ID: str = Field("")
    ZOOM_CLIENT_ID: str = Field("")
    ZOOM_CLIENT_SECRET: str = Field("")
    ZOOM_HOST_EMAILS: str = Field("")  # comma separated, allocation order
    MEETING_TIMEZONE: str = Field("Europe/London")
    MEETING_PROVIDER_TIMEOUT_SECONDS: float = Field(10.0)

    @property
    def MEETING_HOSTS(self) -> Tuple[str, ...]:
        return tuple(h.strip() for h in self.ZOOM_HOST_EMAILS.split(",") if h.strip())

    # === Scheduling ===
    CONFLICT_WINDOW_MINUTES: int = Field(45, ge=1)
    DEFAULT_SESSION_MINUTES: int = Field(60, ge=15, le=240)
    COMPENSATION_ATTEMPTS: int = Field(2, ge=1)

    # === Email SMTP ===
    SMTP_SERVER: str = Field("smtp.mailtrap.io")
    SMTP_PORT: int = Field(587)
    SMTP_USER: str = Field("")
    SMTP_PASSWORD: str = Field("")
    DEFAULT_SENDER: str = Field("noreply@mockinterviews.example")

    @property
    def SMTP_ENABLED(self) -> bool:
        return all([self.SMTP_SERVER, self.SMTP_USER, self.SMTP_PASSWORD])

    # === Environment Shortcuts ===
    @property
    def IS_PROD(self) -> bool:
        return self.ENVIRONMENT.lower() == "prod"


@lru_cache()
def get_settings() -> AppConfig:
    return AppConfig()


# Global config instance
settings = get_settings()
