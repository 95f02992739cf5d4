from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# .env at the project root: paybox/core/config.py -> paybox/core -> paybox -> root
_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _ROOT / ".env"


class Settings(BaseSettings):
    secret_key: str = "change-me-in-production"
    database_url: str = "sqlite:///./paybox.db"
    # Comma separated origins; production: https://your-domain.com
    cors_origins: str = "*"
    # Requests per minute per user (per IP when anonymous)
    rate_limit_per_minute: int = 60
    # Box creation has its own limit (raised in tests)
    rate_limit_create_per_minute: int = 10
    # X-Admin-Secret for arbitration calls made without an admin token
    admin_secret: str = ""
    access_token_expire_minutes: int = 60 * 24 * 7  # 7 days
    # Upper bound for the "custom" payment duration
    max_custom_duration_days: int = 365
    # Events kept in memory for /boxes/changes polling
    change_feed_limit: int = 500
    log_level: str = "INFO"
    environment: str = "development"

    model_config = {
        "env_file": _ENV_FILE if _ENV_FILE.is_file() else ".env",
        "extra": "ignore",
    }

    @field_validator("admin_secret", "secret_key", mode="before")
    @classmethod
    def strip_secret(cls, v: str | None) -> str:
        """Trailing whitespace from copy/paste would break comparisons."""
        return (v or "").strip()

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v: str | None) -> str:
        return (v or "INFO").strip().upper()


settings = Settings()


def cors_origins_list() -> list[str]:
    if not settings.cors_origins or settings.cors_origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
