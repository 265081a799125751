import logging
from typing import Any

import structlog

# Libraries that log once per request or per watch call at INFO. With one
# scrape per pod per interval they would drown the exporter's own events.
NOISY_LOGGERS = ("httpx", "httpcore", "kubernetes", "urllib3", "uvicorn.access")


def configure_logging(level: int | str = logging.INFO) -> None:
    """Route structlog through standard logging as one JSON object per line."""

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(message)s")
    quiet = max(level, logging.WARNING) if isinstance(level, int) else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)


def component_logger(component: str, **fields: Any) -> structlog.stdlib.BoundLogger:
    """Logger for one exporter loop, tagged with its component and any fixed fields."""
    return structlog.get_logger(f"vs_exporter.{component}").bind(component=component, **fields)
