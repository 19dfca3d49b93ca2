"""structlog setup for the widget cache service.

Everything goes through stdlib ``logging`` so uvicorn, SQLAlchemy and our
own structlog loggers share one set of handlers and one level.
"""

import logging
import sys
from pathlib import Path
from typing import List, Optional

import structlog

from dashcache.core.config import Settings

# Chatty at INFO; only their warnings are interesting here.
NOISY_LOGGERS = (
    "aiosqlite",
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "uvicorn.access",
)


def _handlers(settings: Settings, level: int) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))
    for handler in handlers:
        handler.setLevel(level)
    return handlers


def quiet_third_party_loggers(settings: Settings) -> None:
    """Raise library loggers to WARNING.

    SQL statement logging stays at INFO when ``cache_database_echo`` is on.
    """
    for name in NOISY_LOGGERS:
        if settings.cache_database_echo and name == "sqlalchemy.engine":
            logging.getLogger(name).setLevel(logging.INFO)
            continue
        logging.getLogger(name).setLevel(logging.WARNING)


def _timestamper(settings: Settings) -> structlog.processors.TimeStamper:
    if settings.log_format == "json":
        return structlog.processors.TimeStamper(fmt="iso")
    return structlog.processors.TimeStamper(fmt="%H:%M:%S")


def _renderer(settings: Settings):
    if settings.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=False,
        pad_event=35,
        exception_formatter=structlog.dev.plain_traceback
    )


def configure_logging(settings: Settings) -> None:
    """Route structlog through stdlib logging at ``settings.log_level``.

    ``log_format`` picks JSON lines (``json``) or a plain console layout.
    ``log_file`` adds a file handler next to stdout.
    """
    level = getattr(logging, settings.log_level.upper())
    logging.basicConfig(
        level=level,
        handlers=_handlers(settings, level),
        format="%(message)s"
    )
    quiet_third_party_loggers(settings)

    structlog.configure(
        processors=[
            structlog.stdlib.add_logger_name,
            _timestamper(settings),
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _renderer(settings),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)


def log_execution_time(logger: structlog.BoundLogger, operation: str,
                       start_time: float, end_time: float, **kwargs) -> None:
    """Log how long a batch or maintenance step took, in seconds."""
    logger.info(
        "Cache operation timed",
        operation=operation,
        execution_time_seconds=round(end_time - start_time, 4),
        **kwargs
    )


def log_cache_operation(logger: structlog.BoundLogger, operation: str,
                        key: Optional[str], hit: Optional[bool] = None, **kwargs) -> None:
    """Debug line for one cache read/write; ``hit`` only for reads."""
    if hit is not None:
        kwargs["cache_hit"] = hit
    logger.debug("Cache operation", operation=operation, cache_key=key, **kwargs)
