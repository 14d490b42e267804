"""
Configuration module for the Vivica backend.
Loads environment variables and provides centralized config access.
"""

from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings
from functools import lru_cache

# ============================================================
# Centralized Data Paths
# ============================================================
# All user data lives under <project>/data/ for easy backup/deletion.
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# Key-value store holding conversations, profiles and settings
KV_DB_PATH = DATA_DIR / "vivica.db"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Uses pydantic-settings for validation and type coercion.
    """

    # ============================================================
    # Primary provider (Gemini REST API)
    # ============================================================
    gemini_api_key: Optional[str] = None
    # Older deployments exported the key as plain API_KEY
    api_key: Optional[str] = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    # ============================================================
    # Secondary provider (OpenRouter-compatible)
    # ============================================================
    # The OpenRouter key itself is user data (settings record), not env.
    openrouter_base_url: str = "https://openrouter.ai/api/v1"

    # ============================================================
    # HTTP timeouts (seconds)
    # ============================================================
    request_timeout: float = 120.0
    models_timeout: float = 30.0

    # ============================================================
    # Persistence
    # ============================================================
    # If unset, the store lives at <project>/data/vivica.db
    kv_db_path: Optional[str] = None

    # ============================================================
    # Server Configuration
    # ============================================================
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Comma-separated origins allowed to call the API
    cors_origins: str = "http://localhost:3000,http://localhost:5173"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def primary_api_key(self) -> Optional[str]:
        """Gemini key, falling back to the legacy API_KEY variable."""
        return self.gemini_api_key or self.api_key

    @property
    def database_path(self) -> Path:
        """Resolved location of the key-value database file."""
        return Path(self.kv_db_path) if self.kv_db_path else KV_DB_PATH

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse the comma-separated CORS origins."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reloading env vars on every call.
    """
    return Settings()
