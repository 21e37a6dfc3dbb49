from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./dev.db"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 8000
    LOG_LEVEL: str = "INFO"
    FRONTEND_ORIGINS: List[str] = ["http://localhost:5173"]
    CART_STORAGE_DIR: str = "./.carts"
    CART_LOCK_TIMEOUT_SECONDS: float = 5.0
    NOTIFICATIONS_ENABLED: bool = True
    STORE_NAME: str = "TurismoPortal"
    SALES_EMAIL: str = "ventas@turismoportal.com"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
