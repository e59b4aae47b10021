"""
Logging for the launch monitor

Every record is a structlog event name plus key/value context
(mint, signature prefix, SOL totals), rendered as JSON lines for log
shipping or as aligned console output when run by hand. The monitor core
only depends on the small Logger protocol below, so tests can pass a mock.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol
import structlog
from structlog.typing import EventDict, Processor


SERVICE_NAME = "launch_monitor"

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("aiohttp", "asyncio")


class Logger(Protocol):
    """Logging interface consumed by the monitor core"""

    def debug(self, event: str, *args: Any, **kwargs: Any) -> Any: ...

    def info(self, event: str, *args: Any, **kwargs: Any) -> Any: ...

    def warning(self, event: str, *args: Any, **kwargs: Any) -> Any: ...

    def error(self, event: str, *args: Any, **kwargs: Any) -> Any: ...


def add_timestamp(logger, method_name: str, event_dict: EventDict) -> EventDict:
    """UTC ISO timestamp, comparable with RPC block times"""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def add_service(logger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _renderer(format: str) -> Processor:
    if format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    output_file: Optional[str] = None
) -> None:
    """
    Route structlog events through stdlib logging to stdout and, optionally, a file

    Safe to call again (e.g. after a --log-level override): existing root
    handlers are replaced.

    Args:
        level: DEBUG, INFO, WARNING or ERROR; unknown names fall back to INFO
        format: "json" or "console"
        output_file: Log file path, parent directories are created
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=numeric_level,
        force=True,
    )

    if output_file:
        Path(output_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(output_file, encoding="utf-8")
        file_handler.setLevel(numeric_level)
        logging.root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            add_service,
            add_timestamp,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(format),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """structlog logger for a module, usually get_logger(__name__)"""
    return structlog.get_logger(name)
