from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


class ConfigError(RuntimeError):
    pass


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str = "INFO"
    main_warehouse: str = "FTF Manufacturing"

    admin_max_failures: int = 5
    admin_lockout_minutes: int = 15

    email_user: str | None = None
    email_pass: str | None = None
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_use_tls: bool = True

    discord_webhook_url: str | None = None
    discord_transfer_webhook_url: str | None = None


def load_settings() -> Settings:
    """
    Read settings from the environment (and a local .env when present).

    DATABASE_URL is mandatory: it carries the database host and the
    credentials used to reach it.
    """
    load_dotenv()

    database_url = _optional("DATABASE_URL")
    if not database_url:
        raise ConfigError("DATABASE_URL is not set (environment or .env)")

    return Settings(
        database_url=database_url,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        main_warehouse=os.getenv("MAIN_WAREHOUSE", "FTF Manufacturing"),
        admin_max_failures=int(os.getenv("ADMIN_MAX_FAILURES", "5")),
        admin_lockout_minutes=int(os.getenv("ADMIN_LOCKOUT_MINUTES", "15")),
        email_user=_optional("EMAIL_USER"),
        email_pass=_optional("EMAIL_PASS"),
        smtp_host=os.getenv("SMTP_HOST", "smtp.gmail.com"),
        smtp_port=int(os.getenv("SMTP_PORT", "587")),
        smtp_use_tls=_as_bool(os.getenv("SMTP_USE_TLS"), default=True),
        discord_webhook_url=_optional("DISCORD_WEBHOOK_URL"),
        discord_transfer_webhook_url=_optional("DISCORD_TRANSFER_WEBHOOK_URL"),
    )


@lru_cache
def get_settings() -> Settings:
    return load_settings()
