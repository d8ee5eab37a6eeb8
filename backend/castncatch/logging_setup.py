from __future__ import annotations
import logging, sys
import structlog
import structlog.stdlib
from castncatch.config import settings

def _add_service(_, __, event_dict):
    event_dict.setdefault("service", settings.app_name)
    event_dict.setdefault("env", settings.environment)
    return event_dict

def configure_logging(level: int | str | None = None):
    """JSON logs on stdout for both structlog and stdlib loggers (uvicorn, rq, alembic)."""
    if level is None:
        level = settings.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            _add_service,
            structlog.processors.format_exc_info,
            structlog.processors.EventRenamer("message"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=[structlog.processors.TimeStamper(fmt="iso"), structlog.processors.add_log_level, _add_service],
    ))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
