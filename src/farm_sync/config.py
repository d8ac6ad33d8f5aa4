import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Backend REST API
    backend_url: str = os.getenv("BACKEND_URL", "http://localhost:3000")
    backend_token: str | None = os.getenv("BACKEND_TOKEN")
    backend_timeout: float = float(os.getenv("BACKEND_TIMEOUT", "10.0"))

    # Cache
    cache_default_ttl_ms: int = int(os.getenv("CACHE_DEFAULT_TTL_MS", "300000"))  # 5 minutes
    cache_key_prefix: str = os.getenv("CACHE_KEY_PREFIX", "api/")

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = os.getenv("API_RELOAD", "false").lower() == "true"

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_json: bool = os.getenv("LOG_JSON", "false").lower() == "true"

    def resource_key(self, resource: str) -> str:
        """Build the cache key for a backend resource, e.g. ``api/inventory``."""
        return f"{self.cache_key_prefix}{resource.strip('/')}"

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if self.cache_default_ttl_ms <= 0:
            raise ValueError("CACHE_DEFAULT_TTL_MS must be a positive number of milliseconds")

        if self.backend_timeout <= 0:
            raise ValueError("BACKEND_TIMEOUT must be positive")

        if not self.cache_key_prefix:
            raise ValueError("CACHE_KEY_PREFIX must not be empty")

        if self.log_level.upper() not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError(f"LOG_LEVEL must be a standard level name, got {self.log_level}")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
