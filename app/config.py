"""Configuration settings for Parley."""

import os
import secrets
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _optional_float(value: str | None) -> float | None:
    if value is None or value.strip() in ("", "0"):
        return None
    return float(value)


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./parley.db")

    # JWT
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", secrets.token_urlsafe(32))
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRE_MINUTES: int = int(os.getenv("JWT_EXPIRE_MINUTES", "480"))

    # Sarvam AI (speech-to-text, translation, text-to-speech)
    SARVAM_API_KEY: str = os.getenv("SARVAM_API_KEY", "")
    SARVAM_BASE_URL: str = os.getenv("SARVAM_BASE_URL", "https://api.sarvam.ai")
    # Unset means no timeout: a hung provider call hangs the send
    UPSTREAM_TIMEOUT_SECONDS: float | None = _optional_float(os.getenv("UPSTREAM_TIMEOUT_SECONDS"))

    # Pipeline defaults
    DEFAULT_TARGET_LANGUAGE: str = os.getenv("DEFAULT_TARGET_LANGUAGE", "en")
    DEFAULT_TTS_LANGUAGE: str = os.getenv("DEFAULT_TTS_LANGUAGE", "hi-IN")
    DEFAULT_TTS_VOICE: str = os.getenv("DEFAULT_TTS_VOICE", "meera")

    # Upload
    MAX_UPLOAD_SIZE_MB: int = int(os.getenv("MAX_UPLOAD_SIZE_MB", "25"))

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if self.JWT_SECRET_KEY == "":
            errors.append("JWT_SECRET_KEY is not set - using auto-generated key (not persistent across restarts)")
        if not self.SARVAM_API_KEY:
            errors.append("SARVAM_API_KEY is not set - speech, translation and synthesis requests will fail")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
