"""Logging for indexsync.

Every component receives a ``ContextualLogger``: a ``LoggerAdapter`` that carries
a set of dimensions (index name, model, policy, ...) which are merged into each
record. In local development records are rendered as text, everywhere else as
JSON so the dimensions stay queryable.

Usage:
    from indexsync.core.logging import LoggerConfigurator, logger

    listener_logger = LoggerConfigurator.configure_logger(
        "indexsync.platform.sync",
        dimensions={"index_name": "articles", "type_name": "article"},
    )
    listener_logger.with_context(component="persister").info("ready")
"""

import logging
import sys
from typing import Any, MutableMapping, Optional

from pythonjsonlogger.json import JsonFormatter

from indexsync.core.config import settings

_ROOT_LOGGER_NAME = "indexsync"


class _DimensionsFormatter(logging.Formatter):
    """Text formatter that appends the record's dimensions, if any."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        dimensions = getattr(record, "dimensions", None)
        if dimensions:
            rendered = " ".join(f"{k}={v}" for k, v in sorted(dimensions.items()))
            message = f"{message} [{rendered}]"
        return message


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter carrying contextual dimensions."""

    def __init__(self, logger: logging.Logger, dimensions: Optional[dict[str, Any]] = None):
        """Wrap ``logger`` with a copy of ``dimensions``."""
        super().__init__(logger, {})
        self.dimensions: dict[str, Any] = dict(dimensions or {})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping]:
        extra = dict(kwargs.get("extra") or {})
        extra["dimensions"] = {**self.dimensions, **extra.get("dimensions", {})}
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **dimensions: Any) -> "ContextualLogger":
        """Return a new logger with ``dimensions`` added to the current ones."""
        return ContextualLogger(self.logger, {**self.dimensions, **dimensions})


class LoggerConfigurator:
    """Configures the package root logger and hands out contextual loggers."""

    _configured = False

    @classmethod
    def configure_root(cls, force: bool = False) -> logging.Logger:
        """Attach a single stream handler to the ``indexsync`` logger.

        Args:
            force: Replace handlers even if the root logger was already configured

        Returns:
            The package root logger
        """
        root = logging.getLogger(_ROOT_LOGGER_NAME)
        if cls._configured and not force:
            return root

        for handler in list(root.handlers):
            root.removeHandler(handler)

        handler = logging.StreamHandler(sys.stdout)
        if settings.LOCAL_DEVELOPMENT:
            handler.setFormatter(
                _DimensionsFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
        else:
            handler.setFormatter(
                JsonFormatter(
                    "%(asctime)s %(name)s %(levelname)s %(message)s",
                    rename_fields={"levelname": "level"},
                )
            )

        root.addHandler(handler)
        root.setLevel(settings.LOG_LEVEL)
        root.propagate = False
        cls._configured = True
        return root

    @classmethod
    def configure_logger(
        cls, name: str, dimensions: Optional[dict[str, Any]] = None
    ) -> ContextualLogger:
        """Create a contextual logger for ``name``.

        Args:
            name: Logger name, normally below ``indexsync``
            dimensions: Key/value pairs attached to every record

        Returns:
            ContextualLogger bound to the named logger
        """
        cls.configure_root()
        return ContextualLogger(logging.getLogger(name), dimensions)


logger = LoggerConfigurator.configure_logger(_ROOT_LOGGER_NAME)
