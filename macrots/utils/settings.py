"""
Runtime settings read from the environment.

A ``.env`` file in the working directory is loaded first; variables already
set in the environment win. See ``.env.example`` for the full list.
"""
import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

from macrots.utils.config import FRED_GRAPH_URL
from macrots.utils.exceptions import InvalidConfigurationError

load_dotenv(Path.cwd() / ".env")

_TRUE = ("true", "1", "yes", "on")
LOG_FORMATS = ("text", "json")


def get_env(key: str, default: str = None, cast: type = str):
    """Read `key` from the environment and convert it with `cast`."""
    value = os.getenv(key, default)
    if value is None:
        return None
    if cast is bool:
        return value.strip().lower() in _TRUE
    if cast is list:
        return [item.strip() for item in value.split(",") if item.strip()]
    try:
        return cast(value)
    except ValueError as e:
        raise InvalidConfigurationError(key, value, f"Expected {cast.__name__}") from e


@dataclass
class AppSettings:
    """Paths, remote endpoint and logging options."""

    app_name: str = "macrots"
    app_env: str = "development"

    # Relative paths are resolved against project_root
    project_root: Path = None
    data_raw_path: Path = None
    outputs_path: Path = None
    models_path: Path = None
    logs_path: Path = None

    fred_base_url: str = FRED_GRAPH_URL
    fred_timeout_seconds: float = 30.0
    cache_downloads: bool = True

    log_level: str = "INFO"
    log_format: str = "text"
    log_file: str = None

    def __post_init__(self):
        self.project_root = Path(self.project_root or Path.cwd())
        defaults = {
            "data_raw_path": Path("data") / "raw",
            "outputs_path": Path("outputs"),
            "models_path": Path("models"),
            "logs_path": Path("logs"),
        }
        for name, default in defaults.items():
            path = Path(getattr(self, name) or default)
            setattr(self, name, path if path.is_absolute() else self.project_root / path)

        if self.fred_timeout_seconds <= 0:
            raise InvalidConfigurationError("FRED_TIMEOUT_SECONDS", self.fred_timeout_seconds, "Must be positive")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise InvalidConfigurationError("LOG_LEVEL", self.log_level, "Not a logging level name")
        if self.log_format not in LOG_FORMATS:
            raise InvalidConfigurationError("LOG_FORMAT", self.log_format, f"Use one of {LOG_FORMATS}")

    @classmethod
    def from_env(cls) -> "AppSettings":
        return cls(
            app_name=get_env("APP_NAME", "macrots"),
            app_env=get_env("MACROTS_ENV", "development"),
            project_root=get_env("MACROTS_HOME"),
            data_raw_path=get_env("DATA_RAW_PATH"),
            outputs_path=get_env("OUTPUTS_PATH"),
            models_path=get_env("MODELS_PATH"),
            logs_path=get_env("LOGS_PATH"),
            fred_base_url=get_env("FRED_BASE_URL", FRED_GRAPH_URL),
            fred_timeout_seconds=get_env("FRED_TIMEOUT_SECONDS", "30", float),
            cache_downloads=get_env("CACHE_DOWNLOADS", "true", bool),
            log_level=get_env("LOG_LEVEL", "INFO"),
            log_format=get_env("LOG_FORMAT", "text").lower(),
            log_file=get_env("LOG_FILE"),
        )

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"


@lru_cache()
def get_settings() -> AppSettings:
    """Settings for this process; call ``get_settings.cache_clear()`` after changing the environment."""
    return AppSettings.from_env()
