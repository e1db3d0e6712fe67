"""Logging configuration for the NEST API.

structlog is wired through the stdlib logging module so that uvicorn and
pymongo records share the same output.

Usage:
    >>> from logging_config import setup_logging, get_logger
    >>> setup_logging()
    >>> logger = get_logger(__name__)
    >>> logger.info("post_created", post_id="...", ai_status="success")
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import structlog

import settings


def setup_logging(
    level: Optional[str] = None,
    json_output: Optional[bool] = None,
    log_dir: Optional[str] = None,
    log_filename: str = "nest-api.log",
) -> None:
    """Configure structlog and the root stdlib logger.

    Args:
        level: Minimum level for the console handler (default: settings.LOG_LEVEL)
        json_output: Render JSON instead of the console renderer (default: settings.LOG_JSON)
        log_dir: If set, also write JSON lines to <log_dir>/<log_filename> (default: settings.LOG_DIR)
        log_filename: Name of the log file inside log_dir
    """
    level = level or settings.LOG_LEVEL
    json_output = settings.LOG_JSON if json_output is None else json_output
    log_dir = log_dir if log_dir is not None else settings.LOG_DIR

    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer(colors=False)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level.upper())
    console_handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    ))

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_path / log_filename), encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared_processors,
        ))
        root_logger.addHandler(file_handler)

    # pymongo heartbeat/command logs are noise at DEBUG
    logging.getLogger("pymongo").setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger bound to the given module name."""
    return structlog.get_logger(name)
