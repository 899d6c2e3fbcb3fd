"""
Logging setup for the resume search service.

Everything logs under the ``resume_agent`` namespace (see ``get_logger``).
``configure_for_environment`` is called once by ``app.main`` before the app
is built; ENVIRONMENT selects the profile, LOG_LEVEL / LOG_FORMAT / LOG_DIR
refine it.
"""
import logging
import logging.config
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

LOGGER_NAMESPACE = "resume_agent"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

FORMATS = {
    "simple": "%(levelname)s - %(name)s - %(message)s",
    "detailed": "%(asctime)s | %(levelname)-8s | %(name)-45s | %(funcName)-22s:%(lineno)-4d | %(message)s",
}

# Noisy third-party loggers and the level they are held at
LIBRARY_LEVELS = {
    "pymongo": "WARNING",
    "motor": "WARNING",
    "urllib3": "WARNING",
    "uvicorn": "INFO",
}


def _rotating_file(path: Path, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "detailed",
        "filename": str(path),
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": LOG_BACKUPS,
        "encoding": "utf8",
    }


def _build_handlers(level: str, format_style: str, enable_console: bool, log_dir: Path = None) -> Dict[str, Any]:
    handlers = {}
    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": format_style,
            "stream": "ext://sys.stdout",
        }
    if log_dir is not None:
        stamp = datetime.now().strftime("%Y%m%d")
        handlers["file"] = _rotating_file(log_dir / f"resume_agent_{stamp}.log", level)
        handlers["error_file"] = _rotating_file(log_dir / f"resume_agent_errors_{stamp}.log", "ERROR")
    return handlers


def setup_logging(
    level: str = "INFO",
    enable_console: bool = True,
    enable_file: bool = True,
    format_style: str = "detailed",
) -> None:
    """
    Configure the root logger and the service's third-party loggers.

    Args:
        level: Level for the root logger and its handlers
        enable_console: Log to stdout
        enable_file: Log to rotating files in LOG_DIR (default ``logs/``);
            errors are also copied to a separate error file
        format_style: 'simple' or 'detailed' (console only; files are always detailed)
    """
    if format_style not in FORMATS:
        format_style = "detailed"

    log_dir = None
    if enable_file:
        log_dir = Path(os.getenv("LOG_DIR", "logs"))
        log_dir.mkdir(parents=True, exist_ok=True)

    handlers = _build_handlers(level, format_style, enable_console, log_dir)
    handler_names: List[str] = list(handlers)

    config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            name: {"format": fmt, "datefmt": "%Y-%m-%d %H:%M:%S"} for name, fmt in FORMATS.items()
        },
        "handlers": handlers,
        "root": {"level": level, "handlers": handler_names},
        "loggers": {
            name: {"level": lib_level, "handlers": [], "propagate": True}
            for name, lib_level in LIBRARY_LEVELS.items()
        },
    }
    logging.config.dictConfig(config)

    logger = get_logger("logging")
    logger.info(f"Logging configured - Level: {level}, Console: {enable_console}, File: {enable_file}")
    if log_dir is not None:
        logger.info(f"Log directory: {log_dir.resolve()}")


def get_logger(name: str) -> logging.Logger:
    """Logger under the service namespace, e.g. ``resume_agent.app.services.pipeline``"""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def configure_for_environment():
    """Configure logging from ENVIRONMENT (production, development, testing)"""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    format_style = os.getenv("LOG_FORMAT", "detailed").lower()

    if environment == "production":
        setup_logging(level=log_level, enable_file=True, format_style=format_style)
    elif environment == "development":
        setup_logging(level="DEBUG", enable_file=True, format_style=format_style)
    elif environment == "testing":
        setup_logging(level="WARNING", enable_file=False, format_style="simple")
    else:
        setup_logging(level=log_level, format_style=format_style)


class PerformanceMonitor:
    """Times a block and logs the result; slow blocks log a warning.

    ``elapsed_ms`` is available after the block exits.
    """

    def __init__(self, operation_name: str, logger: logging.Logger = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.start_time = None
        self.elapsed_ms = 0.0

    def __enter__(self):
        self.start_time = time.time()
        self.logger.debug(f"Starting {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.time() - self.start_time) * 1000

        if exc_type is not None:
            self.logger.error(f"{self.operation_name} failed after {self.elapsed_ms:.2f}ms: {exc_val}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(
                f"{self.operation_name} completed in {self.elapsed_ms:.2f}ms "
                f"(exceeded threshold {self.threshold_ms}ms)"
            )
        else:
            self.logger.info(f"{self.operation_name} completed in {self.elapsed_ms:.2f}ms")
