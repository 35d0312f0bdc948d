"""Environment-driven configuration with Pydantic v2."""

from typing import List, Literal, Optional
from pathlib import Path
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings driven entirely by environment variables."""

    # Server Configuration
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3010, ge=1024, le=65535)
    debug: bool = Field(default=False)
    workers: int = Field(default=1, ge=1, le=8)
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    # Cache Configuration (TTLs in milliseconds)
    cache_dir: str = Field(default="data/cache")
    cache_ttl_products: int = Field(default=30 * 60 * 1000, ge=1)
    cache_ttl_food: int = Field(default=15 * 60 * 1000, ge=1)
    cache_ttl_promocodes: int = Field(default=60 * 60 * 1000, ge=1)
    cache_ttl_maps: int = Field(default=24 * 60 * 60 * 1000, ge=1)
    cache_ttl_default: int = Field(default=60 * 60 * 1000, ge=1)

    # Expired entry sweeper
    cleanup_enabled: bool = Field(default=True)
    cleanup_interval: int = Field(default=600, ge=1)  # seconds

    # Google Maps Platform
    google_maps_api_key: Optional[str] = Field(default=None)
    google_maps_base_url: str = Field(default="https://maps.googleapis.com/maps/api")
    maps_timeout: float = Field(default=10.0, gt=0, le=60)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["json", "console"] = Field(default="json")
    log_file: Optional[str] = Field(default=None)

    @field_validator("cache_dir")
    @classmethod
    def validate_cache_dir(cls, v):
        """Normalize the cache root to an absolute path."""
        return str(Path(v).expanduser().resolve())

    @property
    def cache_ttls(self) -> dict:
        """TTL table keyed by data category."""
        return {
            "products": self.cache_ttl_products,
            "food": self.cache_ttl_food,
            "promocodes": self.cache_ttl_promocodes,
            "maps": self.cache_ttl_maps,
            "default": self.cache_ttl_default,
        }

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "env_parse_none_str": "none",
    }
