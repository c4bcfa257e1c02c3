"""structlog setup for docshare.

Every event goes through stdlib logging so uvicorn and library records
share one handler and one format. Events are snake_case names with
key/value context::

    logger = get_logger(__name__)
    logger.info("document_created", doc_id="doc_1a2b", owner="alice")

Output is JSON lines unless ``LOG_FORMAT`` is set to something other
than ``json``. Values under any key in ``SECRET_KEYS`` are replaced with
``<redacted>`` before rendering.
"""

from __future__ import annotations

import logging
import os
import sys
from contextvars import ContextVar
from typing import Any

import structlog

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

SECRET_KEYS: frozenset[str] = frozenset({
    "password",
    "password_hash",
    "access_password",
    "access_password_hash",
    "token",
    "smtp_password",
})

# Libraries whose INFO output duplicates our own access log.
_QUIET_LOGGERS = ("uvicorn.access", "multipart")

_configured = False

EventDict = dict[str, Any]


def _add_request_id(_logger: Any, _method: str, event: EventDict) -> EventDict:
    rid = request_id_ctx.get()
    if rid is not None:
        event.setdefault("request_id", rid)
    return event


def _redact_secrets(_logger: Any, _method: str, event: EventDict) -> EventDict:
    for key in SECRET_KEYS.intersection(event):
        event[key] = "<redacted>"
    return event


def _renderer(json_output: bool):
    if json_output:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def configure_logging(
    *,
    level: str | None = None,
    json_output: bool | None = None,
) -> None:
    """Install the structlog pipeline on the root logger. Idempotent.

    Args:
        level: Level name; defaults to ``LOG_LEVEL`` or INFO.
        json_output: Defaults to ``LOG_FORMAT == "json"`` (the default).
    """
    global _configured
    if _configured:
        return
    _configured = True

    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    if json_output is None:
        json_output = os.environ.get("LOG_FORMAT", "json") == "json"

    pre_chain = [
        structlog.contextvars.merge_contextvars,
        _add_request_id,
        _redact_secrets,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=pre_chain,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(json_output),
        ],
    ))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    level_no = logging.getLevelName(level_name)
    root.setLevel(level_no if isinstance(level_no, int) else logging.INFO)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
