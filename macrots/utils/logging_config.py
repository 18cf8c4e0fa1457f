"""
Structured logging configuration.

Every record may carry the series being studied and the pipeline step that
emitted it; both show up in the console line and in JSON output.
"""
import json
import logging
import logging.handlers
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from typing import Optional

CONTEXT_FIELDS = ("series", "step", "elapsed", "details")

TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | [%(series)s:%(step)s] %(message)s"


class StudyContextFilter(logging.Filter):
    """Give records without study context placeholder values."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "series"):
            record.series = "-"
        if not hasattr(record, "step"):
            record.step = "-"
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value not in (None, "-"):
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """Console formatter that colors the level name."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Other handlers must still see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{self.COLORS.get(record.levelname, self.RESET)}{record.levelname}{self.RESET}"
        return super().format(record)


def _console_handler(level: int, log_format: str) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if log_format.lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(ColoredFormatter(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _file_handler(level: int, log_file: str) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=5 * 1024 * 1024, backupCount=3)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: Optional[str] = None,
    app_name: str = "macrots"
) -> logging.Logger:
    """
    Configure the package logger.

    Module loggers (``macrots.data.loader`` and so on) propagate to it, so
    this is the only place handlers are attached.

    Args:
        level: Log level name.
        log_format: "text" for colored console lines, "json" for one object per line.
        log_file: Optional path; file output is always JSON.
        app_name: Logger to configure.

    Returns:
        The configured logger.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(app_name)
    logger.setLevel(numeric_level)
    logger.handlers.clear()
    logger.filters.clear()

    handlers = [_console_handler(numeric_level, log_format)]
    if log_file:
        handlers.append(_file_handler(numeric_level, log_file))

    for handler in handlers:
        handler.addFilter(StudyContextFilter())
        logger.addHandler(handler)

    return logger


@lru_cache()
def get_logger(name: str = "macrots") -> logging.Logger:
    """Package logger configured from settings (LOG_LEVEL, LOG_FORMAT, LOG_FILE)."""
    from macrots.utils.settings import get_settings

    settings = get_settings()
    log_file = settings.log_file
    if log_file and not Path(log_file).is_absolute():
        log_file = str(settings.logs_path / log_file)

    return setup_logging(
        level=settings.log_level,
        log_format=settings.log_format,
        log_file=log_file,
        app_name=name
    )


class StudyLogger(logging.LoggerAdapter):
    """
    Logger adapter bound to one series.

    >>> log = StudyLogger(logging.getLogger(__name__), "UNRATENSA")
    >>> with log.step("spectral"):
    ...     log.info("Estimating periodogram")
    """

    def __init__(self, logger: logging.Logger, series: str):
        super().__init__(logger, {"series": series, "step": "-"})

    def process(self, msg, kwargs):
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs

    @contextmanager
    def step(self, name: str):
        """Tag records with `name` and log the step's duration."""
        previous = self.extra["step"]
        self.extra["step"] = name
        started = time.perf_counter()
        try:
            yield self
            elapsed = round(time.perf_counter() - started, 3)
            self.info(f"{name} finished in {elapsed:.2f}s", extra={"elapsed": elapsed})
        finally:
            self.extra["step"] = previous
