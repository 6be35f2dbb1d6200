from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    PROJECT_NAME: str = "Wellspring"
    VERSION: str = "0.1.0"
    API_PREFIX: str = "/v1"

    # Security
    SECRET_KEY: str = "dev_secret_key_change_in_production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:3001",
    ]
    CORS_ORIGIN_REGEX: str = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

    # Database
    DATABASE_URL: str = "sqlite:///./wellspring.db"

    # Completion provider (Gemini generateContent)
    GEMINI_API_KEY: str = ""
    COMPLETION_MODEL: str = "gemini-1.5-flash"
    COMPLETION_API_BASE: str = "https://generativelanguage.googleapis.com/v1beta"
    COMPLETION_TIMEOUT_S: float = 30.0
    TEMPERATURE: float = 0.7
    MAX_OUTPUT_TOKENS: int = 500
    TOP_P: float = 0.8
    TOP_K: int = 40
    # Number of most recent session messages replayed to the model (1-100)
    CONTEXT_WINDOW: int = Field(8, ge=1, le=100)

    # Mood classifier
    MOOD_MODEL_API_URL: str = "http://localhost:8001/predict"
    MOOD_MODEL_TIMEOUT_S: float = 30.0

    # Activity audit
    AUDIT_QUEUE_SIZE: int = 1000

    # Logging
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


@lru_cache()
def get_settings() -> Settings:
    settings = Settings()

    # Only enforce the provider key in production
    if settings.ENVIRONMENT == "production" and not settings.GEMINI_API_KEY:
        raise ValueError("GEMINI_API_KEY is required in production environment")

    return settings
