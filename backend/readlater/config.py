"""
ReadLater Backend — Application Configuration
==============================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a module-level `settings` object.
Who:   Imported by the HTTP wiring (main.py). Services never read it directly;
       they receive storage_root / iterations as constructor arguments.
"""

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import List


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for development.
    Attributes are grouped by concern for readability.
    """

    # ── Environment ───────────────────────────────────────────────────────
    environment: str = Field(default="development")

    # ── Content Storage ───────────────────────────────────────────────────
    # What: Root directory; each user gets <storage_root>/users/<user_id>/
    storage_root: str = Field(default="./data/storage")

    # What: Largest content/summary payload accepted by a save, in bytes
    # Default: 50MB
    max_content_size: int = Field(default=52_428_800, ge=1_048_576)

    # ── Encryption ────────────────────────────────────────────────────────
    # What: PBKDF2-HMAC-SHA256 work factor used for every derived key
    # Trade-off: Higher = slower brute force, but every save/read pays for it
    # Blobs do not record the iteration count: changing it makes every
    # existing blob undecryptable.
    key_derivation_iterations: int = Field(default=100_000, ge=1_000, le=10_000_000)

    # ── CORS ──────────────────────────────────────────────────────────────
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list, dropping blanks."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8080, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


settings = Settings()
