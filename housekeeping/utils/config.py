"""Environment-driven runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv


PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _env_tuple(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(item.strip() for item in raw.split(","))


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_name: str = "Housekeeping Shift Scheduler"
    app_version: str = "1.0.0"
    database_path: Path = PROJECT_ROOT / "data" / "housekeeping.db"
    log_level: str = "INFO"
    log_file: Path | None = None
    admin_token: str | None = None
    manager_token: str | None = None
    shift_types: tuple[str, ...] = ("Morning", "Afternoon", "Evening")
    # Empty string stands for a room with no status set.
    assignable_room_statuses: tuple[str, ...] = ("maintenance", "available", "cleaning", "")
    fetch_timeout_seconds: float = 10.0
    seed_demo_data: bool = True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build settings once per process from the environment and `.env`."""
    load_dotenv()
    defaults = Settings()
    return Settings(
        app_name=os.getenv("HK_APP_NAME", defaults.app_name),
        app_version=os.getenv("HK_APP_VERSION", defaults.app_version),
        database_path=Path(os.getenv("HK_DATABASE_PATH", str(defaults.database_path))),
        log_level=os.getenv("HK_LOG_LEVEL", defaults.log_level),
        log_file=Path(os.environ["HK_LOG_FILE"]) if os.getenv("HK_LOG_FILE") else None,
        admin_token=os.getenv("ADMIN_TOKEN") or None,
        manager_token=os.getenv("MANAGER_TOKEN") or None,
        shift_types=_env_tuple("HK_SHIFT_TYPES", defaults.shift_types),
        assignable_room_statuses=tuple(
            status.lower()
            for status in _env_tuple(
                "HK_ASSIGNABLE_ROOM_STATUSES",
                defaults.assignable_room_statuses,
            )
        ),
        fetch_timeout_seconds=float(
            os.getenv("HK_FETCH_TIMEOUT_SECONDS", str(defaults.fetch_timeout_seconds))
        ),
        seed_demo_data=_env_bool("HK_SEED_DEMO_DATA", defaults.seed_demo_data),
    )
