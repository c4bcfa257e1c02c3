"""Logging, metrics and request correlation for the docshare service.

``configure_logging()`` is called once by the app factory; modules obtain
loggers with ``get_logger(__name__)`` and emit snake_case events.
"""

from .logging import configure_logging, get_logger, request_id_ctx
from .metrics import metrics_text

__all__ = [
    "configure_logging",
    "get_logger",
    "metrics_text",
    "request_id_ctx",
]
