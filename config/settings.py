# config/settings.py
from __future__ import annotations

import logging
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Portal configuration, loaded from environment variables and `.env`.

    BACKEND=local    -> SQLite documents + local accounts (no network)
    BACKEND=firebase -> Firestore + Firebase Authentication REST API
    """

    BACKEND: Literal["local", "firebase"] = Field("local", description="Which backend pair to use")

    # Local backend
    DATABASE_URL: str = Field("sqlite:///clinic_portal.db", description="SQLAlchemy URL for the local document store")
    DB_ECHO: bool = Field(False, description="Log SQL statements")

    # Firebase backend
    FIREBASE_API_KEY: Optional[str] = Field(None, description="Web API key of the Firebase project")
    FIREBASE_CREDENTIAL_PATH: Optional[str] = Field(None, description="Service account JSON for Firestore")
    FIREBASE_PROJECT_ID: Optional[str] = Field(None, description="Firebase project id")
    AUTH_BASE_URL: str = Field(
        "https://identitytoolkit.googleapis.com/v1",
        description="Base URL of the Firebase Authentication REST API",
    )
    HTTP_TIMEOUT_SECONDS: float = Field(10.0, description="Timeout for auth REST calls")

    LOG_LEVEL: str = Field("INFO", description="Root logging level")
    CLINIC_NAME: str = Field("Dr. Bennett's Clinic", description="Shown on the home screen")

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value

    def require_firebase(self) -> None:
        missing = [
            name
            for name in ("FIREBASE_API_KEY", "FIREBASE_CREDENTIAL_PATH")
            if not getattr(self, name)
        ]
        if missing:
            raise RuntimeError(
                "Missing Firebase configuration: " + ", ".join(missing) + "\n"
                "Set them in the environment or in .env, for example:\n"
                "FIREBASE_API_KEY=YOUR_WEB_API_KEY\n"
                "FIREBASE_CREDENTIAL_PATH=/path/to/service-account.json"
            )


_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """Cached settings instance; the environment is read once per process."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=level or get_settings().LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
