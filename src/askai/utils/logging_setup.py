"""Logging setup and configuration utilities."""

import logging
import logging.handlers
import re
import sys
from pathlib import Path
from typing import Iterable, Optional

import structlog
from structlog.typing import FilteringBoundLogger

from ..config import settings


class RedactFilter(logging.Filter):
    """Mask API keys, bearer tokens and known secret values in rendered records."""

    SECRET_REGEX = re.compile(
        r"(?i)\b(api[_-]?key|authorization)(['\"]?\s*[:=]\s*['\"]?)(?:bearer\s+)?[^\s,'\"]+"
    )
    BEARER_REGEX = re.compile(r"(?i)\b(bearer)\s+(?!\*\*\*)[^\s,'\"]+")

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self.secrets = [s for s in secrets if s]

    def redact(self, text: str) -> str:
        redacted = self.SECRET_REGEX.sub(r"\1\2***", text)
        redacted = self.BEARER_REGEX.sub(r"\1 ***", redacted)
        for secret in self.secrets:
            redacted = redacted.replace(secret, "***")
        return redacted

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self.redact(str(record.getMessage()))
        record.args = ()
        return True


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None
) -> FilteringBoundLogger:
    """
    Set up structured logging with appropriate configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Format type ("json" or "text")
        log_file: Path to log file (optional)

    Returns:
        Configured structlog logger
    """
    level = log_level or settings.logging.level
    format_type = log_format or settings.logging.format
    file_path = log_file or settings.logging.file

    logging_level = getattr(logging, level.upper())
    redactor = RedactFilter(settings.providers.secret_values())

    handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging_level)
    handlers.append(console_handler)

    if file_path:
        file_path_obj = Path(file_path)
        file_path_obj.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            file_path,
            maxBytes=_parse_size(settings.logging.max_size),
            backupCount=settings.logging.backup_count
        )
        file_handler.setLevel(logging_level)
        handlers.append(file_handler)

    for handler in handlers:
        handler.addFilter(redactor)

    logging.basicConfig(
        level=logging_level,
        handlers=handlers,
        format="%(message)s",  # structlog renders the line
        force=True
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]

    if format_type == "json":
        processors.extend([
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ])
    else:
        processors.extend([
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=False)
        ])

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger()
    logger.info("Logging configured", level=level, format=format_type, file=file_path)

    return logger


def _parse_size(size_str: str) -> int:
    """Parse size string (e.g., '100MB') into bytes."""
    size_str = size_str.upper().strip()

    multipliers = [
        ('GB', 1024 ** 3),
        ('MB', 1024 ** 2),
        ('KB', 1024),
        ('G', 1024 ** 3),
        ('M', 1024 ** 2),
        ('K', 1024),
        ('B', 1),
    ]

    for suffix, multiplier in multipliers:
        if size_str.endswith(suffix):
            try:
                return int(float(size_str[:-len(suffix)]) * multiplier)
            except ValueError:
                break

    # 100MB when unparseable
    return 100 * 1024 * 1024
