"""
Structured Logging Configuration

structlog on top of the standard library, shared by the API and the CLI:
- Development mode: colored console output on stdout
- Production mode (ENV=production): JSON lines to a rotating file

Usage:
    from kivaw_feed.utils.logging_config import configure_logging, get_logger

    # Once, at API / CLI start-up
    configure_logging()

    # In any module
    logger = get_logger(__name__)
    logger.info("Feed composed", sections={"fresh": 12, "trending": 8})
"""

import logging
import logging.handlers
import os
import sys
from typing import Optional

import structlog
from structlog.types import Processor

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "aiosqlite", "sqlalchemy.engine")


def _is_production() -> bool:
    """Check if running in a production environment."""
    env = os.getenv("ENV", os.getenv("ENVIRONMENT", "development")).lower()
    return env in ("production", "prod")


def _get_log_level() -> int:
    """Get the log level from LOG_LEVEL, falling back to INFO for unknown names."""
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _shared_processors() -> list[Processor]:
    """Processors applied to both structlog and foreign (stdlib) records."""
    return [
        structlog.contextvars.merge_contextvars,  # request_id, user_id, ...
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.processors.format_exc_info,
    ]


def _build_handler(json_format: bool, log_file: Optional[str]) -> tuple[logging.Handler, Processor]:
    """
    Pick the output handler and its final renderer.

    Args:
        json_format: JSON lines to a rotating file when True, console otherwise.
        log_file: File for JSON output. Defaults to LOG_FILE or logs/kivaw_feed.log.

    Returns:
        The handler and the renderer its formatter should use.
    """
    if json_format:
        # Production: JSON output to file
        log_file = log_file or os.getenv("LOG_FILE", "logs/kivaw_feed.log")
        os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
        handler: logging.Handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
        )
        # Titles from upstream are not ASCII-only
        return handler, structlog.processors.JSONRenderer(ensure_ascii=False)

    # Development: colored console output
    handler = logging.StreamHandler(sys.stdout)
    renderer = structlog.dev.ConsoleRenderer(
        colors=True,
        exception_formatter=structlog.dev.plain_traceback,
    )
    return handler, renderer


def configure_logging(
    json_format: Optional[bool] = None,
    log_level: Optional[int] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure structlog and route standard-library logging through it.

    Args:
        json_format: If True, output JSON logs. If None, auto-detect from ENV.
        log_level: Logging level. If None, read from LOG_LEVEL (default: INFO).
        log_file: Target file for JSON output (LOG_FILE or logs/kivaw_feed.log).
    """
    # Determine output format and level
    if json_format is None:
        json_format = _is_production()
    if log_level is None:
        log_level = _get_log_level()

    shared = _shared_processors()
    handler, renderer = _build_handler(json_format, log_file)

    # Configure structlog
    structlog.configure(
        processors=[
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Standard-library records (uvicorn, sqlalchemy, ...) get the same rendering
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=renderer,
            foreign_pre_chain=shared,
        )
    )
    logging.basicConfig(format="%(message)s", handlers=[handler], level=log_level)

    # Suppress noisy third-party loggers
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger instance.

    Args:
        name: Logger name (typically __name__). If None, returns the root logger.

    Returns:
        A bound structlog logger.

    Example:
        logger = get_logger(__name__)
        logger.info("Explore page loaded", items=20, has_more=True)
        logger.warning("Serving previous feed after upstream failure", error="timeout")
    """
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """
    Bind context variables that will be included in all subsequent logs.

    Used by the request middleware for ``request_id``.

    Args:
        **kwargs: Key-value pairs to bind to the context.

    Example:
        bind_context(request_id="abc123", user_id="user_2x")
        logger.info("Save toggled")  # includes request_id and user_id
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """
    Clear all bound context variables.

    Call this at the end of request processing so context does not leak
    into the next request handled by the same task.
    """
    structlog.contextvars.clear_contextvars()
