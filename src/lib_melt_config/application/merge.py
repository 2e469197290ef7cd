"""Application-layer merge policy.

Purpose
-------
Fold an ordered sequence of value trees into one effective configuration while
tracking which layer supplied each leaf. The module is free of I/O so it can be
reused by alternative composition roots.

Contents
    - ``merge_values``: combine one base with one overlay.
    - ``merge_all``: left fold over any number of values.
    - ``merge_layers``: fold registered layers and collect provenance.
    - ``_record_layer`` / ``_clear_branch``: helpers narrating how provenance
      changes when an overlay replaces or extends a branch.

Policy
------
Later values take precedence. Two mappings merge key by key, recursively.
Every other pairing (sequence over sequence, scalar over mapping, mapping over
scalar, ...) lets the overlay replace the base wholesale. There is no failure
mode: every pairing has a defined result.
"""

from __future__ import annotations

from typing import Iterable

from ..domain.config import SourceInfo
from ..domain.sources import Layer
from ..domain.value import EMPTY_MAPPING, Value


def merge_values(base: Value, overlay: Value) -> Value:
    """Return *overlay* merged on top of *base*.

    Examples
    --------
    >>> base = Value.from_python({"db": {"host": "localhost", "port": 5432}, "tags": ["a"]})
    >>> overlay = Value.from_python({"db": {"port": 5433}, "tags": ["b", "c"]})
    >>> merge_values(base, overlay).to_python()
    {'db': {'host': 'localhost', 'port': 5433}, 'tags': ['b', 'c']}
    >>> merge_values(Value.from_python({"a": {"b": 1}}), Value.from_python({"a": 5})).to_python()
    {'a': 5}

    The result is built from fresh nodes at every depth; no node of *base*
    or *overlay* is reused.

    >>> merged = merge_values(base, overlay)
    >>> merged.payload["tags"] is overlay.payload["tags"]
    False
    """

    if not (base.is_mapping and overlay.is_mapping):
        return _detach(overlay)

    merged: dict[str, Value] = {key: _detach(item) for key, item in base.payload.items()}
    for key, incoming in overlay.payload.items():
        existing = base.payload.get(key)
        merged[key] = _detach(incoming) if existing is None else merge_values(existing, incoming)
    return Value.mapping(merged)


def _detach(value: Value) -> Value:
    """Return a structurally equal copy of *value* sharing no nodes with it."""

    if value.is_mapping:
        return Value.mapping((key, _detach(item)) for key, item in value.payload.items())
    if value.is_sequence:
        return Value.sequence(_detach(item) for item in value.payload)
    return Value(value.kind, value.payload)


def merge_all(values: Iterable[Value]) -> Value:
    """Fold *values* (lowest precedence first) starting from an empty mapping.

    Examples
    --------
    >>> merge_all([]).to_python()
    {}
    >>> merge_all(Value.from_python(d) for d in ({"a": 1}, {}, {"b": 2})).to_python()
    {'a': 1, 'b': 2}
    """

    merged = EMPTY_MAPPING
    for value in values:
        merged = merge_values(merged, value)
    return merged


def merge_layers(layers: Iterable[Layer]) -> tuple[Value, dict[str, SourceInfo]]:
    """Merge *layers* honouring precedence and collect provenance.

    Returns
    -------
    tuple[Value, dict[str, SourceInfo]]
        ``(merged, provenance)`` where provenance maps dotted leaf keys to the
        layer that supplied them. Sequences are leaves.

    Examples
    --------
    >>> from lib_melt_config.domain.sources import EnvSource, LiteralSource
    >>> merged, meta = merge_layers([
    ...     Layer(LiteralSource({}, name="defaults"), Value.from_python({"service": {"timeout": 5}})),
    ...     Layer(EnvSource("APP"), Value.from_python({"service": {"timeout": "10"}})),
    ... ])
    >>> merged.to_python()["service"]["timeout"], meta["service.timeout"]["source"]
    ('10', 'env:APP')
    """

    merged = EMPTY_MAPPING
    meta: dict[str, SourceInfo] = {}
    for index, layer in enumerate(layers):
        merged = merge_values(merged, layer.value)
        if layer.value.is_mapping:
            _record_layer(meta, layer.value, index, layer, [])
    return merged, meta


def _record_layer(
    meta: dict[str, SourceInfo],
    incoming: Value,
    index: int,
    layer: Layer,
    segments: list[str],
) -> None:
    """Update *meta* for every leaf of the *incoming* mapping."""

    for key, value in incoming.payload.items():
        dotted = ".".join([*segments, key])
        if value.is_mapping:
            # a mapping replacing a scalar drops the scalar's entry only
            meta.pop(dotted, None)
            _record_layer(meta, value, index, layer, [*segments, key])
            continue
        _clear_branch(meta, dotted)
        meta[dotted] = SourceInfo(
            layer=index,
            kind=layer.descriptor.kind,
            source=layer.descriptor.describe(),
            key=dotted,
        )


def _clear_branch(meta: dict[str, SourceInfo], prefix: str) -> None:
    """Remove provenance entries that belong to *prefix* or its descendants."""

    for meta_key in list(meta.keys()):
        if meta_key == prefix or meta_key.startswith(prefix + "."):
            meta.pop(meta_key, None)
