import logging
from typing import Optional

import structlog

from .config import Settings, get_settings


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Route structlog events through level filtering.

    Development environments get the console renderer, everything else emits
    one JSON object per event.
    """
    settings = settings or get_settings()
    renderer = structlog.dev.ConsoleRenderer() if settings.env == "dev" else structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(settings.log_level)),
    )

    logging.basicConfig(level=settings.log_level)


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)
