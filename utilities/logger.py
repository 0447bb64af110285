"""
Logging setup for the Bookshelf API.

Events go through structlog on top of the standard library logger, so
uvicorn's own loggers and ours share handlers. Request-scoped values
(request id, method, path) are bound with ``bind_request_context`` and
merged into every event logged while the request is being handled.
"""

import logging
import sys
import uuid
from pathlib import Path
from typing import Optional

import structlog

REQUEST_ID_HEADER = "X-Request-ID"


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[str] = None,
    debug: bool = False
) -> None:
    """
    Configure structlog and the root logger.

    Args:
        log_level: Logging level name
        log_format: ``json`` for one object per line, ``console`` for humans
        log_file: Also append events to this file
        debug: Add call-site information to every event
    """
    level = getattr(logging, log_level.upper())

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(format="%(message)s", level=level, handlers=handlers, force=True)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    if debug:
        processors.append(structlog.processors.CallsiteParameterAdder())
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.get_logger(__name__).debug(
        "Logging configured", level=log_level, format=log_format, file=log_file
    )


def bind_request_context(method: str, path: str, request_id: Optional[str] = None) -> str:
    """Start a fresh logging context for one request and return its id."""
    request_id = request_id or uuid.uuid4().hex
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id, method=method, path=path)
    return request_id
