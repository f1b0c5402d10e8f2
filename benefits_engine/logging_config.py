"""Logging setup for applications embedding the engine.

The engine itself only calls ``logging.getLogger(__name__)``; the host
application calls ``configure_logging()`` once at startup. Production
deployments get JSON lines, everything else a readable console format.
"""

from __future__ import annotations

import logging
import sys

import structlog

from benefits_engine.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s — %(message)s"


def configure_logging(level: str | None = None, *, json_output: bool | None = None) -> None:
    """Configure stdlib logging and structlog.

    Args:
        level: Log level name; defaults to ``settings.log_level``.
        json_output: Render structlog events as JSON; defaults to
            ``settings.is_production``.
    """
    resolved = (level or settings.log_level).upper()
    if json_output is None:
        json_output = settings.is_production
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    logging.basicConfig(
        level=getattr(logging, resolved),
        format=LOG_FORMAT,
        stream=sys.stdout,
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
    )
    logging.getLogger(__name__).debug("Logging configured (env=%s, level=%s)", settings.environment, resolved)
