from __future__ import annotations

import logging
import sys
from typing import Any, Callable, MutableMapping, Optional, cast

import structlog

from hotel_booking.config import ENVIRONMENT, LOG_LEVEL

# Type alias for structlog processor
Processor = Callable[[Any, str, MutableMapping[str, Any]], Any]

SERVICE_NAME = "hotel-booking"

# Libraries whose INFO output drowns out booking events
QUIET_LOGGERS = ("urllib3", "requests", "sqlalchemy.engine", "alembic", "uvicorn.access")


def add_service_context(
    _logger: Any, _method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Stamp every event with the service name and deployment environment."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("environment", ENVIRONMENT)
    return event_dict


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure structlog and the standard library logging it sits on.

    JSON lines are emitted at INFO and above for log aggregation; DEBUG
    switches to the colored console renderer for local work. Request-scoped
    values bound by RequestIDMiddleware (request_id, method, path) are merged
    into every event.

    Args:
        level: Log level name; defaults to LOG_LEVEL from the environment
    """
    level_name = (level or LOG_LEVEL).upper()

    logging.basicConfig(
        format="[%(asctime)s] %(levelname)s in %(name)s:%(lineno)d: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        level=level_name,
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    console = level_name == "DEBUG"
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_service_context,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if console:
        processors.append(cast(Processor, structlog.dev.ConsoleRenderer(colors=True)))
    else:
        processors.append(structlog.processors.format_exc_info)
        processors.append(cast(Processor, structlog.processors.JSONRenderer()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level_name)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
