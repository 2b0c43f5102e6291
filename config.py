import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        default_owner: str,
        csrf_secret: str,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.default_owner = default_owner
        self.csrf_secret = csrf_secret
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("BUDGET_PULSE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "budget_pulse.db"
    database_url = os.getenv("BUDGET_PULSE_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("BUDGET_PULSE_TIMEZONE", "America/Santiago")
    default_owner = os.getenv("BUDGET_PULSE_DEFAULT_OWNER", "owner@localhost")
    csrf_secret = os.getenv(
        "BUDGET_PULSE_CSRF_SECRET",
        "3f0c1d9b7a6e4c2f8b5d1e0a9c7b6f4e2d1c0b9a8f7e6d5c4b3a291807f6e5d4",
    )
    log_level = os.getenv("BUDGET_PULSE_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        timezone=timezone,
        default_owner=default_owner,
        csrf_secret=csrf_secret,
        log_level=log_level,
    )
