"""
Structured JSON logging for the pricing engines.

Every engine logs through ``get_logger`` into the ``cpq_kernel`` logger
tree.  Records are rendered one JSON object per line by
StructuredFormatter, which adds:

    - the quotation and assembly currently being priced, taken from
      LogContext so engines deeper in the call chain need not pass them;
    - any ``extra`` fields, with Decimal amounts written as exact strings
      and enums as their values;
    - for CPQError exceptions, the error code and its structured fields.

Usage:
    from cpq_kernel.logging_config import LogContext, get_logger

    logger = get_logger("engines.assembly")
    with LogContext.bind(assembly_id=assembly.id):
        logger.info("assembly_pricing_started", extra={"reference_count": 3})
"""

__all__ = [
    "LOGGER_NAMESPACE",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TextIO

from cpq_kernel.exceptions import CPQError

LOGGER_NAMESPACE = "cpq_kernel"


# ---------------------------------------------------------------------------
# Pricing context
# ---------------------------------------------------------------------------

_CONTEXT_VARS: dict[str, ContextVar[str | None]] = {
    "quotation_id": ContextVar("cpq_quotation_id", default=None),
    "assembly_id": ContextVar("cpq_assembly_id", default=None),
}


class LogContext:
    """Identifiers of the quotation and assembly being priced right now."""

    FIELDS: tuple[str, ...] = tuple(_CONTEXT_VARS)

    @staticmethod
    def _var(name: str) -> ContextVar[str | None]:
        try:
            return _CONTEXT_VARS[name]
        except KeyError:
            raise TypeError(f"Unknown log context field: {name}") from None

    @classmethod
    def set(cls, **fields: str | None) -> None:
        """Set the given fields; None leaves a field unchanged."""
        for name, value in fields.items():
            var = cls._var(name)
            if value is not None:
                var.set(value)

    @classmethod
    def get_all(cls) -> dict[str, str]:
        return {
            name: value
            for name, var in _CONTEXT_VARS.items()
            if (value := var.get()) is not None
        }

    @classmethod
    def clear(cls) -> None:
        for var in _CONTEXT_VARS.values():
            var.set(None)

    @classmethod
    @contextmanager
    def bind(cls, **fields: str | None) -> Iterator[None]:
        """Set fields for the duration of a block, then restore them."""
        tokens = [
            (cls._var(name), cls._var(name).set(value))
            for name, value in fields.items()
            if value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

_RESERVED: frozenset[str] = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
}


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    # Decimal, UUID and anything else unknown: exact string form
    return str(value)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    if isinstance(exc, CPQError):
        fields["exc_code"] = exc.code
        for name, value in vars(exc).items():
            if not name.startswith("_"):
                fields[f"exc_{name}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: envelope, pricing context, extras, error."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())

        for key, value in vars(record).items():
            if key not in _RESERVED and key not in payload:
                payload[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name`` under the cpq_kernel tree."""
    return logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


_handler: logging.Handler | None = None
_lock = threading.Lock()


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: TextIO | None = None,
    handler: logging.Handler | None = None,
) -> None:
    """
    Attach a JSON handler to the cpq_kernel tree.

    Only the first call has an effect until reset_logging() is called.
    Records do not propagate to the root logger.
    """
    global _handler
    with _lock:
        if _handler is not None:
            return
        if handler is None:
            handler = logging.StreamHandler(sys.stderr if stream is None else stream)
        _handler = handler
        _handler.setFormatter(StructuredFormatter())

        tree = logging.getLogger(LOGGER_NAMESPACE)
        tree.setLevel(level)
        tree.propagate = False
        tree.addHandler(_handler)


def reset_logging() -> None:
    """Detach the handler installed by configure_logging(). Used by tests."""
    global _handler
    with _lock:
        tree = logging.getLogger(LOGGER_NAMESPACE)
        if _handler is not None:
            tree.removeHandler(_handler)
            _handler = None
        tree.setLevel(logging.WARNING)
