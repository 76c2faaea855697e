"""
Structured logging setup for the Mint Tracker
Uses structlog on top of stdlib logging
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, List

import structlog
from structlog.contextvars import bound_contextvars
from structlog.typing import EventDict, Processor


def add_timestamp(logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add ISO timestamp to log events"""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def add_log_level(logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add log level to event dict"""
    event_dict["level"] = method_name
    return event_dict


def setup_logging(
    level: str = "INFO",
    format: str = "console",
    output_file: Optional[str] = None
) -> None:
    """
    Configure structured logging for the application

    Logs go to stderr so the report lines printed on stdout stay clean.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        format: Output format ("json" or "console")
        output_file: Optional file path for log output
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=numeric_level,
        force=True,
    )

    if output_file:
        log_path = Path(output_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(output_file, encoding='utf-8')
        file_handler.setLevel(numeric_level)
        logging.root.addHandler(file_handler)

    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        add_log_level,
        add_timestamp,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # aiohttp access noise
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance

    Args:
        name: Logger name (usually __name__)
    """
    return structlog.get_logger(name)


def run_context(candy_machine: str, start_time: int, end_time: int):
    """
    Bind the tracked candy machine and window to every log event in scope

    Usage:
        with run_context(address, start, end):
            ...
    """
    return bound_contextvars(
        candy_machine=candy_machine,
        window=f"{start_time}..{end_time}"
    )
