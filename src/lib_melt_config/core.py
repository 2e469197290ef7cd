"""Composition root for ``lib_melt_config``.

Purpose
-------
Provide the single entry point that wires readers, the layer registry, the
merge engine, and the accessor layer, and export only stable, consumer-ready
APIs.

Contents
--------
* :func:`read_config` – ordered source entries → :class:`Config`.
* :func:`read_app_config` – conventional application stack → :class:`Config`.

System Role
-----------
Callers who need to add layers incrementally use
:class:`~lib_melt_config.application.registry.LayerRegistry` directly; these
helpers cover the common "declare everything up front" case.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from .application.declarative import declare, declare_app
from .application.registry import ReaderRegistry
from .domain.config import Config
from .observability import bind_trace_id


def read_config(
    sources: Iterable[Mapping[str, Any]],
    *,
    readers: ReaderRegistry | None = None,
    trace_id: str | None = None,
) -> Config:
    """Return the merged configuration for *sources* (lowest precedence first).

    Side Effects
    ------------
    Binds *trace_id* (or clears the previous one) for the structured log
    events emitted while reading.

    Examples
    --------
    >>> cfg = read_config([
    ...     {"kind": "literal", "value": {"db": {"host": "localhost", "port": 5432}}},
    ...     {"kind": "literal", "value": {"db": {"port": 5433}}},
    ... ])
    >>> cfg.as_dict()
    {'db': {'host': 'localhost', 'port': 5433}}
    """

    bind_trace_id(trace_id)
    return declare(sources, readers=readers).config()


def read_app_config(
    app_name: str,
    *,
    defaults: Mapping[str, Any] | str | None = None,
    options: Mapping[str, Any] | Sequence[str] | None = None,
    readers: ReaderRegistry | None = None,
    trace_id: str | None = None,
    **kwargs: Any,
) -> Config:
    """Return the merged conventional configuration for *app_name*.

    Extra keyword arguments are forwarded to
    :func:`~lib_melt_config.application.declarative.declare_app`.
    """

    bind_trace_id(trace_id)
    return declare_app(app_name, defaults=defaults, options=options, readers=readers, **kwargs).config()
