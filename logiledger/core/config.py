from pydantic_settings import BaseSettings
from functools import lru_cache
from decimal import Decimal

class Settings(BaseSettings):
    # Application
    APP_NAME: str = "LogiLedger"
    APP_PORT: int = 9210
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    
    # Database (local single-user store by default)
    DATABASE_URL: str = "sqlite:///./logiledger.db"
    
    # Ledger
    DEFAULT_CONTAINER_TONNAGE: Decimal = Decimal("26")
    ORDER_NUMBER_PREFIX: str = "ORD"
    
    class Config:
        env_file = ".env"
        extra = "ignore"

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
