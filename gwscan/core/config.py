from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # Application
    APP_NAME: str = "Gateway Scanner"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Network Scanning
    SCAN_CONCURRENCY: int = 512  # addresses probed at the same time
    CONNECT_TIMEOUT: float = 3.0  # seconds for the TCP reachability check
    PROBE_TIMEOUT: float = 3.0  # seconds for the G1/MG3 race
    PROBE_PORT: int = 80
    DEFAULT_RANGE: Optional[str] = None  # Derived from the local address if None

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
