"""
Structured JSON logging for the stock kernel.

Every record under the ``stock_kernel`` logger becomes one JSON object
carrying the event name as ``message``, the ``extra`` fields, and the
workflow context bound by the orchestrator (``workflow``,
``document_ref``, ``actor_id``).  Stock kernel exceptions contribute their
``code`` and structured attributes as ``exc_*`` fields, so a rejected
workflow is searchable by field and reason without parsing text.
"""

__all__ = [
    "CONTEXT_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from stock_kernel.exceptions import StockKernelError

LOGGER_NAMESPACE = "stock_kernel"

CONTEXT_FIELDS = ("correlation_id", "actor_id", "workflow", "document_ref")


# ---------------------------------------------------------------------------
# Workflow context
# ---------------------------------------------------------------------------

_context: ContextVar[dict[str, str]] = ContextVar("stock_log_context", default={})


def _merge(fields: dict[str, str | None]) -> dict[str, str]:
    unknown = set(fields) - set(CONTEXT_FIELDS)
    if unknown:
        raise ValueError(f"unknown log context field(s): {', '.join(sorted(unknown))}")
    merged = dict(_context.get())
    merged.update({k: v for k, v in fields.items() if v is not None})
    return merged


class LogContext:
    """Per-thread / per-task log fields for the workflow being run."""

    @staticmethod
    def set(**fields: str | None) -> None:
        """Set context fields. None values leave the current value alone."""
        _context.set(_merge(fields))

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_context.get())

    @staticmethod
    def clear() -> None:
        _context.set({})

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[None]:
        """Set fields for the duration of the block, then restore the previous ones."""
        token = _context.set(_merge(fields))
        try:
            yield
        finally:
            _context.reset(token)


# ---------------------------------------------------------------------------
# JSON formatter
# ---------------------------------------------------------------------------

_RECORD_ATTRS: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _json_default(obj: Any) -> Any:
    # Quantities stay exact: Decimal("12.500") logs as "12.500"
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, (Decimal, UUID)):
        return str(obj)
    return repr(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    if isinstance(exc, StockKernelError):
        fields["exc_code"] = exc.code
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and key not in payload
        )
        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger ``stock_kernel.<name>``."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


def _structured_handlers(logger: logging.Logger) -> list[logging.Handler]:
    return [h for h in logger.handlers if isinstance(h.formatter, StructuredFormatter)]


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach one JSON handler to the ``stock_kernel`` logger.

    A no-op when a JSON handler is already attached.  ``level`` accepts a
    logging constant or a name such as the ``logging.level`` config value.
    """
    kernel_logger = logging.getLogger(LOGGER_NAMESPACE)
    if _structured_handlers(kernel_logger):
        return

    if isinstance(level, str):
        level = level.upper()
    kernel_logger.setLevel(level)
    kernel_logger.propagate = False

    h = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
    h.setFormatter(StructuredFormatter())
    kernel_logger.addHandler(h)


def reset_logging() -> None:
    """Detach the JSON handlers and drop back to WARNING. For tests."""
    kernel_logger = logging.getLogger(LOGGER_NAMESPACE)
    for h in _structured_handlers(kernel_logger):
        kernel_logger.removeHandler(h)
    kernel_logger.setLevel(logging.WARNING)
