from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List, Mapping, Optional
import os

from dotenv import load_dotenv

# Load environment variables from the repo root .env (if present).
REPO_ROOT = Path(__file__).resolve().parents[1]
load_dotenv(REPO_ROOT / ".env")

DEFAULT_DATABASE_URL = "sqlite:///./taskapi.db"


class ConfigurationError(RuntimeError):
    """Raised when the process environment cannot produce usable settings."""


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, built once at startup and passed around."""

    jwt_secret: str
    database_url: str = DEFAULT_DATABASE_URL
    access_token_expire_minutes: int = 60 * 24
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        secret = env.get("JWT_SECRET", "").strip()
        if not secret:
            raise ConfigurationError("Environment variable JWT_SECRET is required")

        try:
            expire_minutes = int(env.get("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))
            port = int(env.get("PORT", "8000"))
        except ValueError as exc:
            raise ConfigurationError(f"Invalid numeric setting: {exc}") from exc

        return cls(
            jwt_secret=secret,
            database_url=env.get("DATABASE_URL", DEFAULT_DATABASE_URL),
            access_token_expire_minutes=expire_minutes,
            cors_origins=_split_origins(env.get("CORS_ORIGINS", "http://localhost:3000")),
            log_level=env.get("LOG_LEVEL", "INFO"),
            host=env.get("HOST", "0.0.0.0"),
            port=port,
        )


@lru_cache
def load_settings() -> Settings:
    """Settings for this process, read from the environment on first use."""
    return Settings.from_env()
