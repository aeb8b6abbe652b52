"""
Centralized Logging Configuration for the Resume Matcher API
"""
import functools
import inspect
import logging
import logging.config
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Optional

LOGGER_PREFIX = "resume_matcher"

FORMATS = {
    "simple": "%(levelname)s - %(name)s - %(message)s",
    "detailed": "%(asctime)s | %(levelname)-8s | %(name)-34s | %(funcName)-20s:%(lineno)-4d | %(message)s",
}

# (level, console, file, format) per ENVIRONMENT value
PROFILES = {
    "production": (None, True, True, "detailed"),
    "development": ("DEBUG", True, True, "detailed"),
    "testing": ("WARNING", True, False, "simple"),
}

MAX_LOG_BYTES = 10 * 1024 * 1024


def _rotating_handler(path: Path, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "detailed",
        "filename": str(path),
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": 5,
        "encoding": "utf8",
    }


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True,
    enable_file: bool = True,
    format_style: str = "detailed"
) -> None:
    """
    Configure the root, uvicorn and third-party loggers.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (defaults to $LOG_DIR/resume_matcher_<date>.log)
        enable_console: Log to stdout
        enable_file: Log to rotating files; errors also go to a separate file
        format_style: 'simple' or 'detailed'
    """
    stamp = datetime.now().strftime('%Y%m%d')
    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    log_file = Path(log_file) if log_file else log_dir / f"{LOGGER_PREFIX}_{stamp}.log"

    handlers: Dict[str, Any] = {}
    if enable_console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": format_style if format_style in FORMATS else "detailed",
            "stream": "ext://sys.stdout",
        }
    if enable_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = _rotating_handler(log_file, level)
        handlers["error_file"] = _rotating_handler(log_file.parent / f"{LOGGER_PREFIX}_errors_{stamp}.log", "ERROR")

    uvicorn_handlers = [h for h in ("console", "file") if h in handlers]

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            name: {"format": fmt, "datefmt": "%Y-%m-%d %H:%M:%S"} for name, fmt in FORMATS.items()
        },
        "handlers": handlers,
        "root": {"level": level, "handlers": list(handlers)},
        "loggers": {
            "uvicorn": {"level": "INFO", "handlers": uvicorn_handlers, "propagate": False},
            "uvicorn.access": {"level": "INFO", "handlers": uvicorn_handlers[:1], "propagate": False},
            # pdfminer logs every glyph at DEBUG
            "pdfminer": {"level": "ERROR"},
        },
    })

    logger = get_logger("logging")
    logger.info(f"Logging configured - Level: {level}, Console: {enable_console}, File: {enable_file}")
    if enable_file:
        logger.info(f"Log file: {log_file}")


def get_logger(name: str) -> logging.Logger:
    """Namespaced logger: ``resume_matcher.<name>``"""
    return logging.getLogger(f"{LOGGER_PREFIX}.{name}")


def log_function_call(func):
    """
    Decorator that logs entry, exit and failures of a function at DEBUG/ERROR
    """
    logger = get_logger(func.__module__)

    def _failed(start_time, e):
        logger.error(f"Error in {func.__name__} after {time.time() - start_time:.3f}s: {e}")

    if inspect.iscoroutinefunction(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.time()
            logger.debug(f"Entering {func.__name__} with args={len(args)}, kwargs={list(kwargs)}")
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _failed(start_time, e)
                raise
            logger.debug(f"Completed {func.__name__} in {time.time() - start_time:.3f}s")
            return result
        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        start_time = time.time()
        logger.debug(f"Entering {func.__name__} with args={len(args)}, kwargs={list(kwargs)}")
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            _failed(start_time, e)
            raise
        logger.debug(f"Completed {func.__name__} in {time.time() - start_time:.3f}s")
        return result
    return sync_wrapper


def log_api_call(operation: str):
    """
    Decorator to log API endpoint calls with their duration
    """
    def decorator(func):
        logger = get_logger(f"api.{func.__module__}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            logger.info(f"API {operation} started - {func.__name__}")
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                execution_time = time.time() - start_time
                logger.error(f"API {operation} failed after {execution_time:.3f}s: {e}",
                             extra={"execution_time": execution_time, "error": str(e)})
                raise
            execution_time = time.time() - start_time
            logger.info(f"API {operation} completed in {execution_time:.3f}s", extra={"execution_time": execution_time})
            return result

        return wrapper
    return decorator


def configure_for_environment():
    """Configure logging from ENVIRONMENT and LOG_LEVEL"""
    environment = os.getenv("ENVIRONMENT", "development").lower()
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    level, console, to_file, style = PROFILES.get(environment, (None, True, True, "detailed"))
    setup_logging(level=level or log_level, enable_console=console, enable_file=to_file, format_style=style)


class PerformanceMonitor:
    """Context manager that times an operation and warns above a threshold"""

    def __init__(self, operation_name: str, logger: logging.Logger = None, threshold_ms: float = 1000):
        self.operation_name = operation_name
        self.logger = logger or get_logger("performance")
        self.threshold_ms = threshold_ms
        self.start_time = None
        self.elapsed_ms = None

    def __enter__(self):
        self.start_time = time.time()
        self.logger.debug(f"Starting {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed_ms = (time.time() - self.start_time) * 1000

        if exc_type is not None:
            self.logger.error(f"{self.operation_name} failed after {self.elapsed_ms:.2f}ms: {exc_val}")
        elif self.elapsed_ms > self.threshold_ms:
            self.logger.warning(f"{self.operation_name} completed in {self.elapsed_ms:.2f}ms (exceeded threshold {self.threshold_ms}ms)")
        else:
            self.logger.info(f"{self.operation_name} completed in {self.elapsed_ms:.2f}ms")
