import logging
import os
from collections import OrderedDict
from logging import Logger
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

import structlog

DEFAULT_LOG_DIR = os.path.join("~", ".cache", "renteasy", "logs")


def parse_log_level(level: str | int) -> int:
    """Convert a level name such as ``"debug"`` (or a numeric level) to a logging level number."""
    if isinstance(level, int):
        return level
    levels = logging.getLevelNamesMapping()
    name = str(level).strip().upper()
    if name not in levels:
        raise ValueError(f"Unknown log level '{level}'. Expected one of: {', '.join(sorted(levels))}")
    return levels[name]


def default_formatter(fmt: Optional[str] = None) -> logging.Formatter:
    """Returns a logging formatter with a default format if none is specified."""
    default_fmt = "[%(asctime)s] %(levelname)s: %(name)s: %(message)s"
    return logging.Formatter(fmt or default_fmt)


def setup_logger(
    name: str = "renteasy",
    *,
    log_dir: Optional[Path | str] = None,
    logger_level: int = logging.DEBUG,
    stream_level: int = logging.INFO,
    add_stream_handler: bool = True,
    file_level: int = logging.DEBUG,
    file_mode: str = "a",
    add_file_handler: bool = True,
    propagate: bool = False,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
    use_structlog: bool = True,
    structlog_json: bool = True,
    structlog_bind: Optional[dict] = None,
) -> Logger | structlog.stdlib.BoundLogger:
    """Configure and initialize logging for RentEasy components.

    Sets up a console handler and a rotating file handler on the given logger. The log file defaults to
    ``~/.cache/renteasy/logs/{name}.log``.

    Args:
        name: Logger name, defaults to "renteasy".
        log_dir: Custom directory for the log file.
        logger_level: Overall logger level.
        stream_level: StreamHandler level.
        add_stream_handler: Whether to add a stream handler.
        file_level: FileHandler level.
        file_mode: Mode for file handler, default is 'a' (append).
        add_file_handler: Whether to add a file handler.
        propagate: Whether the logger should propagate messages to ancestor loggers.
        max_bytes: Maximum size in bytes before rotating log file.
        backup_count: Number of backup files to retain.
        use_structlog: If True, configure and return a structlog BoundLogger.
        structlog_json: If True, render JSON; otherwise use the console renderer.
        structlog_bind: Fields bound to every event of the returned logger.

    Returns:
        Logger | structlog.stdlib.BoundLogger: Configured logger instance.
    """
    logger = logging.getLogger(name)
    logger.handlers.clear()
    logger.setLevel(logger_level)
    logger.propagate = propagate

    log_dir = os.path.expanduser(str(log_dir or DEFAULT_LOG_DIR))
    log_file_path = os.path.join(log_dir, f"{name}.log")

    formatter = logging.Formatter("%(message)s") if use_structlog else default_formatter()

    if add_stream_handler:
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(stream_level)
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

    if add_file_handler:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            filename=log_file_path, maxBytes=max_bytes, backupCount=backup_count, mode=file_mode
        )
        file_handler.setLevel(file_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if not use_structlog:
        return logger

    renderer = structlog.processors.JSONRenderer() if structlog_json else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.stdlib.filter_by_level,
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _enforce_key_order_processor(
                [
                    "timestamp",
                    "event",
                    "service",
                    "method",
                    "path",
                    "status_code",
                    "duration_ms",
                    "level",
                    "logger",
                ]
            ),
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    bound_logger = structlog.get_logger(name)
    if structlog_bind:
        bound_logger = bound_logger.bind(**structlog_bind)
    return bound_logger


def _enforce_key_order_processor(key_order: list[str]):
    def _processor(_logger, _method_name, event_dict):
        ordered = OrderedDict()
        for key in key_order:
            if key in event_dict:
                ordered[key] = event_dict.pop(key)
        for k in sorted(event_dict.keys()):
            ordered[k] = event_dict[k]
        return ordered

    return _processor


def get_logger(
    name: str | None = "renteasy", use_structlog: bool = True, **kwargs
) -> Logger | structlog.stdlib.BoundLogger:
    """Create or retrieve a named logger under the ``renteasy`` hierarchy.

    Child loggers propagate to the ``renteasy`` root logger by default, so they only get a file handler of their
    own and share the root's console output.

    Example:
        .. code-block:: python

            from renteasy.core.logger import get_logger

            logger = get_logger("orders", structlog_bind={"service": "RentEasyService"})
            logger.info("Order saved", order_id="65f0c0ffee")
    """
    if not name:
        name = "renteasy"

    full_name = name if name == "renteasy" or name.startswith("renteasy.") else f"renteasy.{name}"
    if full_name != "renteasy":
        kwargs.setdefault("propagate", True)
        kwargs.setdefault("add_stream_handler", False)
    return setup_logger(full_name, use_structlog=use_structlog, **kwargs)
