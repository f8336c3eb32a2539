from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Profit Navigator"
    APP_PORT: int = 9210
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./profitnav.db"

    # Mercado Livre OAuth app
    ML_CLIENT_ID: str = ""
    ML_CLIENT_SECRET: str = ""
    ML_REDIRECT_URI: str = "http://localhost:9210/api/integrations/mercadolivre/callback"
    ML_API_BASE_URL: str = "https://api.mercadolibre.com"
    ML_AUTH_URL: str = "https://auth.mercadolivre.com.br/authorization"
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Background sync
    SCHEDULER_ENABLED: bool = False
    SYNC_INTERVAL_MINUTES: int = 60

    # Optional path for a rotating log file
    LOGS_PATH: Optional[str] = None

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
