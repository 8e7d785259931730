"""Configuration management from environment variables."""
import os
from pathlib import Path
from dotenv import load_dotenv

from sentinel.errors import ConfigurationError

# Load .env file
load_dotenv()

# Project root
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"

VERSION = "0.1.0"


def _env(*names: str, default: str | None = None) -> str | None:
    """Return the first non-empty environment variable among names."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


class Config:
    """Application configuration."""

    # Supabase (SB_* names are the ones used by the hosted edge function)
    SUPABASE_URL: str | None = _env("SUPABASE_URL", "SB_URL")
    SUPABASE_SERVICE_ROLE: str | None = _env("SUPABASE_SERVICE_ROLE", "SB_SERVICE_ROLE_KEY")
    WEBSITES_TABLE: str = os.getenv("WEBSITES_TABLE", "websites")
    AUTO_CHECKS_TABLE: str = os.getenv("AUTO_CHECKS_TABLE", "auto_checks")
    STORE_RETRIES: int = int(os.getenv("STORE_RETRIES", "3"))

    # Probing
    PROBE_TIMEOUT_MS: int = int(os.getenv("PROBE_TIMEOUT_MS", "12000"))
    CONCURRENCY: int = int(os.getenv("CONCURRENCY", "10"))
    USER_AGENT: str = os.getenv("USER_AGENT", f"SiteSentinel/{VERSION}")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    METRICS_FILE: str = os.getenv("METRICS_FILE", str(DATA_DIR / "metrics.jsonl"))

    # API Security
    API_KEY: str | None = os.getenv("API_KEY")
    ALLOWED_ORIGINS: str = os.getenv("ALLOWED_ORIGINS", "*")

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration."""
        errors = []
        if not cls.SUPABASE_URL:
            errors.append("SUPABASE_URL is required")
        if not cls.SUPABASE_SERVICE_ROLE:
            errors.append("SUPABASE_SERVICE_ROLE is required")
        if errors:
            raise ConfigurationError(f"Missing Supabase env vars: {', '.join(errors)}")

    @classmethod
    def allowed_origins(cls) -> list[str]:
        return [o.strip() for o in cls.ALLOWED_ORIGINS.split(",") if o.strip()]


config = Config()
