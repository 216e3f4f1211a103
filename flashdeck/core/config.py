from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Base
    APP_ENV: str = "dev"  # dev | staging | prod | test
    APP_NAME: str = "flashdeck API"
    APP_VERSION: str = "0.1.0"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Database
    DATABASE_URL: str = "sqlite:///./flashdeck.db"

    # Identity provider (bearer tokens)
    AUTH_JWT_SECRET: str = "change_me"
    AUTH_JWT_ALGORITHM: str = "HS256"
    AUTH_JWT_AUDIENCE: Optional[str] = None
    AUTH_JWT_ISSUER: Optional[str] = None

    # Identity provider (webhooks, svix format "whsec_...")
    CLERK_WEBHOOK_SECRET: str = ""

    # Admin endpoints
    ADMIN_API_KEY: str = "change_me"

    # Entitlements
    FREE_DECK_LIMIT: int = 3

    # AI generation
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    AI_CARDS_COUNT: int = 20

    # Dashboard
    RECENT_SESSIONS_LIMIT: int = 10

    # Logging
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
