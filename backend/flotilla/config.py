from __future__ import annotations

import re
from datetime import timedelta, timezone, tzinfo
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings, SettingsConfigDict

_UTC_OFFSET_RE = re.compile(r"^(?:UTC|GMT)?\s*([+-])(\d{1,2})(?::?(\d{2}))?$", re.IGNORECASE)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    LOG_LEVEL: str = "INFO"
    # Persisted state
    DATA_DIR: str = "data"
    SNAPSHOT_FILE: str = "vessels.json"
    HISTORY_FILE: str = "vessels_history.json"
    HISTORY_CAP: int = 720  # 30 days of hourly runs
    # Destination (Gaza coast)
    TARGET_LAT: float = 31.5
    TARGET_LON: float = 34.45
    # "UTC+8" / "+05:30" offsets, or an IANA zone name like "Asia/Manila"
    DISPLAY_TIMEZONE: str = "UTC+8"
    # Below this speed a vessel is treated as drifting / station-keeping
    MIN_MOVING_SPEED_KN: float = 0.5
    # Comma-separated status labels that suppress ETA computation
    TERMINAL_STATUSES: str = "INTERCEPTED,DOCKED,ANCHORED"
    # Scraper output endpoint (optional; `flotilla run --url` overrides)
    SOURCE_URL: str | None = None
    SOURCE_TIMEOUT: float = 30.0
    RETRY_ATTEMPTS: int = 3
    RETRY_BASE_DELAY: float = 2.0

    @property
    def snapshot_path(self) -> Path:
        return Path(self.DATA_DIR) / self.SNAPSHOT_FILE

    @property
    def history_path(self) -> Path:
        return Path(self.DATA_DIR) / self.HISTORY_FILE

    @property
    def target(self) -> tuple[float, float]:
        return self.TARGET_LAT, self.TARGET_LON

    @property
    def terminal_status_labels(self) -> list[str]:
        return [s.strip().upper() for s in self.TERMINAL_STATUSES.split(",") if s.strip()]

    @property
    def display_tz(self) -> tzinfo:
        return resolve_timezone(self.DISPLAY_TIMEZONE)


def resolve_timezone(name: str) -> tzinfo:
    """Turn a DISPLAY_TIMEZONE value into a tzinfo.

    Accepts "UTC", fixed offsets ("UTC+8", "UTC-03:30", "+0530") and IANA
    names. Raises ValueError for anything else.
    """
    value = name.strip()
    if value.upper() in ("UTC", "Z", "GMT"):
        return timezone.utc

    m = _UTC_OFFSET_RE.match(value)
    if m:
        sign = -1 if m.group(1) == "-" else 1
        hours = int(m.group(2))
        minutes = int(m.group(3) or 0)
        if hours > 14 or minutes >= 60:
            raise ValueError(f"UTC offset out of range: {name!r}")
        return timezone(sign * timedelta(hours=hours, minutes=minutes))

    try:
        return ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone: {name!r}") from exc


@lru_cache
def get_settings() -> Settings:
    return Settings()
