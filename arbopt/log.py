"""structlog setup shared by the HTTP server and embedding applications."""

import logging

import structlog


def configure_logging(level: str | int = "INFO") -> None:
    """Configure structlog with console rendering and level filtering.

    Args:
        level: Minimum level to emit, as a name ("DEBUG") or logging constant
    """
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        level = resolved

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
    )
