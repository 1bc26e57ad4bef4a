# ============================================================================
# src/allergy_scribe/utils/logging.py
# ============================================================================
"""
Logging configuration and utilities for the allergy scribe core.
"""

import inspect
import functools
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    format_json: bool = False
) -> None:
    """
    Setup logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for logging
        format_json: Whether to use JSON format
    """
    log_level = getattr(logging, level.upper())

    if format_json:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    logging.basicConfig(
        level=log_level,
        handlers=handlers,
        force=True
    )


class JsonFormatter(logging.Formatter):
    """JSON log formatter."""

    # Attributes every LogRecord carries; anything else came from `extra=`
    _RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        extra = {
            key: value for key, value in vars(record).items()
            if key not in self._RESERVED
        }
        if extra:
            log_data['extra'] = extra

        return json.dumps(log_data, default=str)


def log_performance(logger: logging.Logger, operation: str):
    """
    Decorator to log operation performance.

    Works for both plain and coroutine functions.

    Args:
        logger: Logger instance
        operation: Operation name
    """
    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                start_time = datetime.now()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    duration = (datetime.now() - start_time).total_seconds()
                    logger.error(f"{operation} failed after {duration:.3f}s: {str(e)}")
                    raise
                duration = (datetime.now() - start_time).total_seconds()
                logger.info(f"{operation} completed in {duration:.3f}s")
                return result

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start_time = datetime.now()

            try:
                result = func(*args, **kwargs)
                duration = (datetime.now() - start_time).total_seconds()
                logger.info(f"{operation} completed in {duration:.3f}s")
                return result

            except Exception as e:
                duration = (datetime.now() - start_time).total_seconds()
                logger.error(f"{operation} failed after {duration:.3f}s: {str(e)}")
                raise

        return wrapper
    return decorator


def create_audit_logger(name: str, log_file: Optional[Path] = None) -> logging.Logger:
    """
    Create dedicated audit logger.

    Audit records never propagate to the root logger. Without a log file
    they are discarded.

    Args:
        name: Logger name
        log_file: Path to audit log file

    Returns:
        Audit logger instance
    """
    logger = logging.getLogger(f"audit.{name}")
    logger.setLevel(logging.INFO)
    logger.propagate = False

    if log_file is None:
        if not logger.handlers:
            logger.addHandler(logging.NullHandler())
        return logger

    log_file = Path(log_file)
    target = str(log_file.resolve())
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == target:
            return logger

    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file)
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)

    return logger
