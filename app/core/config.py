# backend/app/core/config.py

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True
    )

    # --- App Info ---
    APP_NAME: str = "TradeSync Broker Gateway"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # --- Server ---
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8000

    # --- CORS ---
    CORS_ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # --- Rate Limiting ---
    RATE_LIMIT_STORAGE_URL: str = "memory://"
    RATE_LIMIT_ENABLED: bool = True
    SYNC_RATE_LIMIT: str = "30/minute"

    # --- Broker Transport ---
    BROKER_HTTP_TIMEOUT: float = 30.0     # seconds
    BROKER_RETRY_ATTEMPTS: int = 3
    BROKER_RETRY_DELAY: float = 1.0       # seconds, multiplied by attempt number

    # --- Token Lifecycle ---
    TOKEN_EXPIRY_SKEW_MS: int = 30_000
    DEFAULT_TOKEN_TTL_MINUTES: int = 20

    # --- Broker Integrations (MetaTrader) ---
    METATRADER_BASE_URL: str = "https://api.metatrader.com"
    METATRADER_CLIENT_ID: Optional[str] = None
    METATRADER_CLIENT_SECRET: Optional[str] = None

    # --- Broker Integrations (Zerodha) ---
    ZERODHA_BASE_URL: str = "https://api.kite.trade"
    ZERODHA_API_KEY: Optional[str] = None
    ZERODHA_API_SECRET: Optional[str] = None

settings = Settings()
