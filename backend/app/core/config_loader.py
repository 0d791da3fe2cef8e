# backend/app/core/config_loader.py

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Completion provider (plain OpenAI or an Azure OpenAI deployment)
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: Optional[str] = None
    AZURE_OPENAI_ENDPOINT: Optional[str] = None
    AZURE_OPENAI_API_VERSION: str = "2024-08-01-preview"
    OPENAI_MODEL: str = "gpt-4o"

    JWT_SECRET_KEY: str = "supersecret"
    access_token_expire_minutes: int = 1440

    DB_PATH: str = "data.sqlite3"

    # Relay tuning
    PRELUDE_STEP_DELAY_SECONDS: float = 0.5
    PROVIDER_IDLE_TIMEOUT_SECONDS: float = 60.0

    environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
