"""
Structured logging for the inventory kernel.

Every record under the ``inventory_kernel`` logger tree is written as one
JSON object per line.  Services log snake_case event names as the message
and put their data in ``extra``::

    logger.info("batch_created", extra={"batch_number": "BATCH240101001"})

Fields are merged in this order, later sources winning:

    1. ``extra`` fields of the call
    2. the bound inventory context (``LogContext.bind``): correlation_id,
       actor_id, operation, product_id, batch_id
    3. for records carrying an InventoryError: ``exc_code``,
       ``exc_retryable`` and the error's attributes as ``exc_<name>``

The standard keys ``ts``, ``level``, ``logger`` and ``message`` are never
overwritten.
"""

__all__ = [
    "CONTEXT_FIELDS",
    "LogContext",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "reset_logging",
]

import json
import logging
import sys
import threading
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator
from uuid import UUID

from inventory_kernel.exceptions import InventoryError

LOGGER_NAMESPACE = "inventory_kernel"

CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "actor_id",
    "operation",
    "product_id",
    "batch_id",
)

# Immutable snapshot of the bound fields; each bind() pushes a new one.
_bound: ContextVar[tuple[tuple[str, str], ...]] = ContextVar(
    "inventory_log_context", default=()
)


class LogContext:
    """Inventory identifiers attached to every record logged in scope."""

    @staticmethod
    def get_all() -> dict[str, str]:
        return dict(_bound.get())

    @staticmethod
    def clear() -> None:
        _bound.set(())

    @staticmethod
    @contextmanager
    def bind(**fields: object) -> Iterator[None]:
        """
        Bind context fields for the duration of the block.

        None values leave the outer binding in place.  Names outside
        CONTEXT_FIELDS raise ValueError.
        """
        unknown = sorted(set(fields) - set(CONTEXT_FIELDS))
        if unknown:
            raise ValueError(f"unknown log context fields: {unknown}")
        merged = dict(_bound.get())
        merged.update((k, str(v)) for k, v in fields.items() if v is not None)
        token = _bound.set(tuple(merged.items()))
        try:
            yield
        finally:
            _bound.reset(token)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _to_json(value: Any) -> Any:
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return str(value)


def _error_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {"exc_type": type(exc).__name__, "exc_message": str(exc)}
    if isinstance(exc, InventoryError):
        fields["exc_code"] = exc.code
        fields["exc_retryable"] = exc.retryable
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        fields = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}
        fields.update(LogContext.get_all())
        if record.exc_info and record.exc_info[1] is not None:
            fields.update(_error_fields(record.exc_info[1]))
            fields["traceback"] = self.formatException(record.exc_info)

        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update((k, v) for k, v in fields.items() if k not in payload)
        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_handler: logging.Handler | None = None
_lock = threading.Lock()


def configure_logging(
    *,
    level: int | str = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
) -> None:
    """Attach the JSON handler to the inventory_kernel logger; later calls are no-ops."""
    global _handler
    with _lock:
        if _handler is not None:
            return
        _handler = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        _handler.setFormatter(StructuredFormatter())
        root = logging.getLogger(LOGGER_NAMESPACE)
        root.setLevel(level)
        root.propagate = False
        root.addHandler(_handler)


def reset_logging() -> None:
    """Detach the configured handler. FOR TESTING ONLY."""
    global _handler
    with _lock:
        root = logging.getLogger(LOGGER_NAMESPACE)
        if _handler is not None:
            root.removeHandler(_handler)
            _handler = None
        root.setLevel(logging.WARNING)
