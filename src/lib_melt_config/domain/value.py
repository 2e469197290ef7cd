"""Domain-level value tree.

Purpose
-------
Represent a parsed configuration document independently of the format it came
from. Every reader produces a :class:`Value`; the merge engine consumes and
produces them; the accessor layer reads them.

Contents
--------
* :class:`ValueKind` – exhaustive discriminator of the tagged union.
* :class:`Value` – immutable ``(kind, payload)`` node with constructors,
  normalisation from plain Python data, and conversion back.
* :data:`EMPTY_MAPPING` – shared empty mapping node used as the merge seed.

System Role
-----------
The value tree is the only structure that crosses the boundary between
readers, the merge engine, and the accessor layer. Nodes are never mutated
after construction, which is what makes cached merge results safe to share.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable


class ValueKind(str, Enum):
    """Discriminator for :class:`Value` nodes."""

    NULL = "null"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    SEQUENCE = "sequence"
    MAPPING = "mapping"


_SCALAR_KINDS = frozenset({ValueKind.NULL, ValueKind.BOOLEAN, ValueKind.NUMBER, ValueKind.STRING})


@dataclass(frozen=True, slots=True)
class Value:
    """Immutable node of the configuration value tree.

    Why
    ----
    Readers hand over data of many shapes (TOML datetimes, YAML integer keys,
    tuples from literals). Normalising into one closed union keeps the merge
    engine free of format-specific checks.

    What
    ----
    ``kind`` selects the payload type:

    ==========  ===================================
    kind        payload
    ==========  ===================================
    NULL        ``None``
    BOOLEAN     ``bool``
    NUMBER      ``int`` or ``float``
    STRING      ``str``
    SEQUENCE    ``tuple[Value, ...]``
    MAPPING     ``MappingProxyType[str, Value]``
    ==========  ===================================

    Examples
    --------
    >>> tree = Value.from_python({"db": {"port": 5432, "hosts": ["a", "b"]}})
    >>> tree.kind
    <ValueKind.MAPPING: 'mapping'>
    >>> tree.payload["db"].payload["port"]
    Value(kind=<ValueKind.NUMBER: 'number'>, payload=5432)
    >>> tree.to_python()
    {'db': {'port': 5432, 'hosts': ['a', 'b']}}
    """

    kind: ValueKind
    payload: Any

    @classmethod
    def null(cls) -> Value:
        """Return a NULL node (``null`` in JSON, ``null`` or ``~`` in YAML)."""

        return cls(ValueKind.NULL, None)

    @classmethod
    def boolean(cls, flag: bool) -> Value:
        """Return a BOOLEAN node.

        Examples
        --------
        >>> Value.boolean(True).kind
        <ValueKind.BOOLEAN: 'boolean'>
        """

        return cls(ValueKind.BOOLEAN, bool(flag))

    @classmethod
    def number(cls, number: int | float) -> Value:
        """Return a NUMBER node for an ``int`` or ``float``.

        Why
        ----
        ``bool`` is an ``int`` subclass in Python; rejecting it here keeps
        ``True`` from silently becoming the number ``1``.

        Raises
        ------
        TypeError
            *number* is a ``bool`` or not numeric.

        Examples
        --------
        >>> Value.number(5432).payload
        5432
        >>> Value.number(True)
        Traceback (most recent call last):
        ...
        TypeError: Expected int or float, got bool
        """

        if isinstance(number, bool) or not isinstance(number, (int, float)):
            raise TypeError(f"Expected int or float, got {type(number).__name__}")
        return cls(ValueKind.NUMBER, number)

    @classmethod
    def string(cls, text: str) -> Value:
        """Return a STRING node."""

        return cls(ValueKind.STRING, str(text))

    @classmethod
    def sequence(cls, items: Iterable[Value]) -> Value:
        """Return a SEQUENCE node; *items* are stored as an immutable tuple.

        Examples
        --------
        >>> Value.sequence([Value.number(1), Value.string("a")]).to_python()
        [1, 'a']
        """

        return cls(ValueKind.SEQUENCE, tuple(items))

    @classmethod
    def mapping(cls, entries: Mapping[str, Value] | Iterable[tuple[str, Value]]) -> Value:
        """Return a MAPPING node behind a read-only :class:`MappingProxyType`.

        *entries* must already hold string keys and :class:`Value` items; use
        :meth:`from_python` for plain data.

        Examples
        --------
        >>> node = Value.mapping({"port": Value.number(5432)})
        >>> node.to_python()
        {'port': 5432}
        """

        return cls(ValueKind.MAPPING, MappingProxyType(dict(entries)))

    @classmethod
    def from_python(cls, data: Any) -> Value:
        """Normalise plain Python data into a value tree.

        Mapping keys become strings (``True`` becomes ``"true"``, numbers use
        ``str``), dates and times become ISO-8601 strings, lists and tuples
        become sequences. Unsupported types raise :class:`TypeError`; two keys
        that convert to the same string (``1`` and ``"1"``) raise
        :class:`ValueError` instead of silently dropping one of them.

        Examples
        --------
        >>> Value.from_python({1: True}).to_python()
        {'1': True}
        >>> from datetime import date
        >>> Value.from_python(date(2024, 1, 31)).payload
        '2024-01-31'
        """

        if isinstance(data, Value):
            return data
        if data is None:
            return cls.null()
        if isinstance(data, bool):
            return cls.boolean(data)
        if isinstance(data, (int, float)):
            return cls.number(data)
        if isinstance(data, str):
            return cls.string(data)
        if isinstance(data, (datetime, date, time)):
            return cls.string(data.isoformat())
        if isinstance(data, Mapping):
            entries: dict[str, Value] = {}
            for key, item in data.items():
                name = normalise_key(key)
                if name in entries:
                    raise ValueError(f"Mapping keys collide after conversion to strings: {name!r}")
                entries[name] = cls.from_python(item)
            return cls(ValueKind.MAPPING, MappingProxyType(entries))
        if isinstance(data, (list, tuple)):
            return cls.sequence(cls.from_python(item) for item in data)
        raise TypeError(f"Unsupported configuration value of type {type(data).__name__}")

    @property
    def is_mapping(self) -> bool:
        """``True`` for MAPPING nodes, the only kind the merge engine descends into."""

        return self.kind is ValueKind.MAPPING

    @property
    def is_sequence(self) -> bool:
        """``True`` for SEQUENCE nodes."""

        return self.kind is ValueKind.SEQUENCE

    @property
    def is_scalar(self) -> bool:
        """``True`` for NULL, BOOLEAN, NUMBER and STRING nodes."""

        return self.kind in _SCALAR_KINDS

    def to_python(self) -> Any:
        """Return a fresh, mutable plain-Python copy of the tree."""

        if self.kind is ValueKind.MAPPING:
            return {key: item.to_python() for key, item in self.payload.items()}
        if self.kind is ValueKind.SEQUENCE:
            return [item.to_python() for item in self.payload]
        return self.payload

    def dumps(self, *, indent: int | None = None) -> str:
        """Render the tree as deterministic JSON (sorted keys).

        Examples
        --------
        >>> Value.from_python({"b": 1, "a": [None, "x"]}).dumps()
        '{"a":[null,"x"],"b":1}'
        """

        return json.dumps(
            self.to_python(), indent=indent, sort_keys=True, separators=(",", ":"), ensure_ascii=False
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        if self.kind is not other.kind:
            return False
        if self.kind is ValueKind.MAPPING:
            return dict(self.payload) == dict(other.payload)
        return self.payload == other.payload

    def __hash__(self) -> int:
        if self.kind is ValueKind.MAPPING:
            return hash((self.kind, frozenset(self.payload.items())))
        return hash((self.kind, self.payload))


def normalise_key(key: object) -> str:
    """Return the string form of a mapping key as readers must present it.

    Examples
    --------
    >>> normalise_key(True), normalise_key(None), normalise_key(7)
    ('true', 'null', '7')
    """

    if isinstance(key, str):
        return key
    if isinstance(key, bool):
        return "true" if key else "false"
    if key is None:
        return "null"
    if isinstance(key, (int, float)):
        return str(key)
    if isinstance(key, (datetime, date, time)):
        return key.isoformat()
    raise TypeError(f"Unsupported mapping key of type {type(key).__name__}")


#: Shared empty mapping; safe to reuse because values never change.
EMPTY_MAPPING = Value.mapping({})
