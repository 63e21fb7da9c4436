"""Structured logging setup.

All modules log through ``structlog.get_logger()`` with dotted event
names (``vault.created``, ``cache.get_failed``). Console rendering in
development, one JSON object per line everywhere else. The request id
bound by RequestIdMiddleware is merged in from contextvars.
"""

import logging
import sys

import structlog


def setup_logging(level: str = "INFO", fmt: str = "console") -> None:
    """Configure structlog and the stdlib root logger once at startup."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    renderer = (
        structlog.processors.JSONRenderer()
        if fmt == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    # Third-party libraries (uvicorn, sqlalchemy, socketio) use stdlib logging
    logging.basicConfig(level=log_level, stream=sys.stderr, format="%(message)s")
