"""Structured logging helpers shared by readers and the layer registry.

Purpose
    Keep every diagnostic emitted while reading and merging layers predictable
    and contextual, without forcing host applications onto a logging backend.

Contents
    - ``TRACE_ID``: context variable holding the active trace identifier.
    - ``get_logger``: returns the package logger (silent by default).
    - ``bind_trace_id``: binds or clears the active trace identifier.
    - ``log_debug`` / ``log_info`` / ``log_error``: structured emitters.
    - ``make_event``: builds the payload describing one source.

System Integration
    Adapters and the layer registry call these helpers; the domain layer stays
    free of logging concerns.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, Final, Mapping

TRACE_ID: ContextVar[str | None] = ContextVar("lib_melt_config_trace_id", default=None)
"""Current trace identifier attached to every structured record."""

_LOGGER: Final[logging.Logger] = logging.getLogger("lib_melt_config")
_LOGGER.addHandler(logging.NullHandler())


def get_logger() -> logging.Logger:
    """Expose the package logger so applications may attach handlers."""

    return _LOGGER


def bind_trace_id(trace_id: str | None) -> None:
    """Bind or clear the active trace identifier.

    Examples
    --------
    >>> bind_trace_id('req-7')
    >>> TRACE_ID.get()
    'req-7'
    >>> bind_trace_id(None)
    >>> TRACE_ID.get() is None
    True
    """

    TRACE_ID.set(trace_id)


def log_debug(message: str, **fields: Any) -> None:
    """Emit a DEBUG record carrying *fields* and the bound trace id.

    Why
        Per-source events (file read, variables collected, layer added) are
        too chatty for INFO but useful when tracing why a key won.
    Inputs
        message: Stable event name such as ``"layer_loaded"``.
        fields: Structured context; usually built with :func:`make_event`.
    Outputs
        None. Nothing is formatted unless the logger is enabled for DEBUG.

    Examples
    --------
    >>> log_debug("layer_loaded", kind="literal", source="literal:defaults")
    """

    _emit(logging.DEBUG, message, fields)


def log_info(message: str, **fields: Any) -> None:
    """Emit an INFO record; used once per computed merge."""

    _emit(logging.INFO, message, fields)


def log_error(message: str, **fields: Any) -> None:
    """Emit an ERROR record for a source that could not be read or parsed.

    The matching exception is still raised by the caller; this only leaves a
    trace with the source attached.
    """

    _emit(logging.ERROR, message, fields)


def make_event(kind: str, source: str | None, payload: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Build a structured payload describing one configuration source.

    Examples
    --------
    >>> make_event('env', 'env:APP', {'keys': 3})
    {'kind': 'env', 'source': 'env:APP', 'keys': 3}
    """

    event: dict[str, Any] = {"kind": kind, "source": source}
    if payload:
        event |= dict(payload)
    return event


def _emit(level: int, message: str, fields: Mapping[str, Any]) -> None:
    """Send a record through the shared logger with the trace context attached."""

    if not _LOGGER.isEnabledFor(level):
        return
    context = {"trace_id": TRACE_ID.get()}
    context.update(fields)
    _LOGGER.log(level, message, extra={"context": context})
