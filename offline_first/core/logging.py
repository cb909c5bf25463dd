"""Logging for the offline-first client.

Every component logs through a ``ContextualLogger``. Context fields bound with
``with_context`` are rendered after the message, which keeps one grep-able line
per event:

    logger.with_context(component="replayer", sequence=3).info("Replayed operation")
"""

import logging
import sys
from typing import Any, Dict, MutableMapping, Optional, Tuple

from rich.console import Console
from rich.logging import RichHandler

from offline_first.core.config import settings

LOGGER_NAME = "offline_first"


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter carrying key/value context into every record."""

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None):
        """Initialize the adapter.

        Args:
            logger: Underlying standard library logger
            context: Fields attached to every record emitted through this adapter
        """
        super().__init__(logger, dict(context or {}))

    @property
    def context(self) -> Dict[str, Any]:
        """Fields bound to this adapter."""
        return dict(self.extra)

    def with_context(self, **fields: Any) -> "ContextualLogger":
        """Return a child logger with additional context fields."""
        merged = {**self.extra, **fields}
        return ContextualLogger(self.logger, merged)

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, Any]:
        """Attach the bound context to the record."""
        extra = dict(kwargs.get("extra") or {})
        extra["context"] = {**self.extra, **extra.get("context", {})}
        kwargs["extra"] = extra
        return msg, kwargs


class ContextFormatter(logging.Formatter):
    """Formatter that appends ``key=value`` context after the message."""

    def format(self, record: logging.LogRecord) -> str:
        """Format the record and append its context fields."""
        message = super().format(record)
        context = getattr(record, "context", None)
        if not context:
            return message
        rendered = " ".join(f"{key}={value}" for key, value in context.items())
        return f"{message} [{rendered}]"


def _build_handler() -> logging.Handler:
    if settings.LOCAL_DEVELOPMENT:
        handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(ContextFormatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            ContextFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    return handler


def _configure_base_logger() -> logging.Logger:
    base = logging.getLogger(LOGGER_NAME)

    # Avoid adding handlers multiple times on re-import
    if not base.handlers:
        base.addHandler(_build_handler())

    base.setLevel(settings.LOG_LEVEL)
    return base


logger = ContextualLogger(_configure_base_logger())
