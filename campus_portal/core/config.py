"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "campus_portal"

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7

    # Password hashing cost (bcrypt accepts 4..31)
    bcrypt_rounds: int = 12

    # Chatbot (OpenAI-compatible)
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-3.5-turbo"
    openai_timeout: float = 30.0

    # Registration
    allow_privileged_registration: bool = False

    # App
    environment: str = "development"
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def chatbot_configured(self) -> bool:
        return bool(self.openai_api_key.strip())

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
