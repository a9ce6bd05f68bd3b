import os
import logging
from dataclasses import dataclass, field
from datetime import time
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# Values in .env never override variables already set in the process
load_dotenv()

TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in TRUTHY


def _clock(name: str, default: str) -> time:
    raw = os.environ.get(name, default)
    try:
        return time.fromisoformat(raw)
    except ValueError:
        raise ValueError(f"{name} must be HH:MM, got {raw!r}")


def _zone(name: str, default: str) -> ZoneInfo:
    raw = os.environ.get(name, default)
    try:
        return ZoneInfo(raw)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"{name} is not a known time zone: {raw!r}")


@dataclass(frozen=True)
class Settings:
    timezone: ZoneInfo
    office_opening: time
    office_closing: time
    allow_overlapping_pending: bool = False
    sql_echo: bool = False
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"


def load_settings() -> Settings:
    opening = _clock("OFFICE_OPENING", "09:00")
    closing = _clock("OFFICE_CLOSING", "18:00")
    if opening >= closing:
        raise ValueError("OFFICE_OPENING must be earlier than OFFICE_CLOSING")

    origins = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]

    return Settings(
        timezone=_zone("BOOKING_TIMEZONE", "UTC"),
        office_opening=opening,
        office_closing=closing,
        allow_overlapping_pending=_flag("ALLOW_OVERLAPPING_PENDING"),
        sql_echo=_flag("SQL_ECHO"),
        cors_origins=origins or ["*"],
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


settings = load_settings()
