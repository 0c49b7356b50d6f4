# =============================================================================
# adapta_core/logging/config.py
# Logging Configuration for the Curricular Adaptations Tracker
# =============================================================================

import logging
import re
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Optional, Union


LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_DIR = Path("logs")

# Chatty third-party loggers capped at WARNING
NOISY_LOGGERS = ("urllib3", "httpx", "httpcore", "supabase", "gotrue", "postgrest")

_BEARER = re.compile(r"(Bearer\s+)[^\s'\"]+")


class RedactTokensFilter(logging.Filter):
    """Masks bearer tokens that end up in request logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        if "Bearer" in message:
            record.msg = _BEARER.sub(r"\1***", message)
            record.args = ()
        return True


def resolve_level(level: Union[int, str]) -> int:
    """Accept ``logging.DEBUG`` as well as ``"debug"``; unknown names fall back to INFO."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    return value if isinstance(value, int) else logging.INFO


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_to_file: bool = True,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Configure logging for the app and the core package.

    Console output always; with ``log_to_file`` one file per day under
    ``log_dir`` (``logs/adapta_YYYY-MM-DD.log`` by default).
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_to_file:
        directory = Path(log_dir) if log_dir else LOG_DIR
        directory.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.FileHandler(directory / f"adapta_{datetime.now():%Y-%m-%d}.log", encoding="utf-8")
        )

    redact = RedactTokensFilter()
    for handler in handlers:
        handler.addFilter(redact)

    logging.basicConfig(
        level=resolve_level(level),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("adapta_core").info(f"Logging initialized at {logging.getLevelName(resolve_level(level))}")


def get_logger(name: str) -> logging.Logger:
    """
    Usage:
        from adapta_core.logging import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)


class LogContext:
    """
    Times one data operation and logs how it ended.

    Usage:
        with LogContext(logger, "Creating students"):
            store.create(Entity.STUDENTS, payload)
        # DEBUG  Creating students...
        # INFO   Creating students done in 12 ms
    """

    def __init__(self, logger: logging.Logger, operation: str):
        self.logger = logger
        self.operation = operation
        self.started = 0.0

    @property
    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started) * 1000)

    def __enter__(self):
        self.started = time.perf_counter()
        self.logger.debug(f"{self.operation}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.logger.info(f"{self.operation} done in {self.elapsed_ms} ms")
        else:
            self.logger.error(
                f"{self.operation} failed after {self.elapsed_ms} ms: {exc_val}",
                exc_info=(exc_type, exc_val, exc_tb),
            )
        return False
