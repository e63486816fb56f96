"""
Configuration management using pydantic-settings.
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


# Credential slots in pool order: the primary key, then numbered fallbacks.
GEMINI_KEY_SLOTS = ("gemini_api_key",) + tuple(f"gemini_api_key{i}" for i in range(1, 16))


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    app_env: str = "development"
    api_port: int = 3000
    api_host: str = "0.0.0.0"

    # Supabase (story database)
    supabase_url: str = ""
    supabase_key: str = ""

    # Google Gemini
    gemini_api_url: str = "https://generativelanguage.googleapis.com/v1beta/models"
    gemini_timeout_seconds: float = 8.0

    # Primary key plus up to 15 fallbacks. Blank slots are skipped.
    gemini_api_key: str = ""
    gemini_api_key1: str = ""
    gemini_api_key2: str = ""
    gemini_api_key3: str = ""
    gemini_api_key4: str = ""
    gemini_api_key5: str = ""
    gemini_api_key6: str = ""
    gemini_api_key7: str = ""
    gemini_api_key8: str = ""
    gemini_api_key9: str = ""
    gemini_api_key10: str = ""
    gemini_api_key11: str = ""
    gemini_api_key12: str = ""
    gemini_api_key13: str = ""
    gemini_api_key14: str = ""
    gemini_api_key15: str = ""

    @property
    def gemini_key_list(self) -> list[str]:
        """Collect GEMINI_API_KEY, GEMINI_API_KEY1..15 in slot order, dropping blanks."""
        keys = []
        for slot in GEMINI_KEY_SLOTS:
            value = (getattr(self, slot) or "").strip()
            if value:
                keys.append(value)
        return keys

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields in .env


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience access
settings = get_settings()
