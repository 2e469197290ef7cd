"""Domain-level configuration accessor.

Purpose
-------
Anchor the immutable :class:`Config` object that exposes a merged value tree to
consumers: path lookups, type-assertive getters, default-fallback queries, and
provenance. The module contains no I/O.

Contents
--------
* :class:`SourceInfo` – typed metadata describing where a leaf came from.
* :class:`Config` – ``Mapping`` implementation over the merged tree.
* :func:`split_path` – turn a dotted/indexed path into segments.
* :data:`EMPTY_CONFIG` – canonical empty instance.

Path syntax
-----------
Dotted strings (``"db.host"``) with optional zero-based sequence indices
(``"servers[0].name"``), or any sequence of segments (``("db", "host")``,
``["servers", 0, "name"]``). Keys that themselves contain ``.`` or ``[`` are
only reachable with segment sequences; there is no escaping syntax.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Mapping as MappingABC
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterator, Mapping, Sequence, TypedDict, TypeVar, Union, overload

from .errors import NotFound, TypeMismatch
from .value import EMPTY_MAPPING, Value, ValueKind

Path = Union[str, Sequence[Union[str, int]]]

_INDEXED_PART = re.compile(r"^(?P<key>[^\[\]]*)(?P<indices>(?:\[\d+\])+)$")
_INDEX = re.compile(r"\[(\d+)\]")
_INT_LITERAL = re.compile(r"^[+-]?\d+$")


class SourceInfo(TypedDict):
    """Describe the origin of a merged leaf.

    Attributes
    ----------
    layer:
        Zero-based position of the winning layer in registration order.
    kind:
        Descriptor kind (``"literal"``, ``"file"``, ``"env"``, ``"options"``).
    source:
        Human readable descriptor summary (``"file:/etc/demo/config.toml"``).
    key:
        Fully qualified dotted key of the leaf.
    """

    layer: int
    kind: str
    source: str
    key: str


T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Config(MappingABC[str, Any]):
    """Immutable mapping returned to library consumers.

    Why
    ----
    Callers need a read-only structure that behaves like a dictionary while
    offering typed reads and provenance. Mutation happens only by registering
    another layer and merging again.

    Parameters
    ----------
    _value:
        Merged MAPPING value produced by the merge engine.
    _meta:
        Mapping from dotted keys to :class:`SourceInfo`.

    Examples
    --------
    >>> cfg = Config(Value.from_python({"db": {"host": "localhost", "port": 5432}}))
    >>> cfg.get("db.port")
    5432
    >>> cfg.get_string("db.host")
    'localhost'
    >>> cfg.get_or_default("missing.path", "fallback")
    'fallback'
    """

    _value: Value
    _meta: Mapping[str, SourceInfo] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self._value.is_mapping:
            raise TypeError("Config requires a mapping value at the top level")
        object.__setattr__(self, "_meta", MappingProxyType(dict(self._meta)))

    def __getitem__(self, key: str) -> Any:
        """Return the top-level value stored under *key* as plain Python data.

        Why
        ----
        Honour the mapping contract so :class:`Config` behaves like a standard
        dictionary for simple lookups. *key* is a literal top-level key, not a
        path.

        Raises
        ------
        NotFound
            *key* is absent; being a :class:`KeyError`, ``in`` and
            ``dict``-style handling keep working.

        Examples
        --------
        >>> cfg = Config(Value.from_python({"feature": True}))
        >>> cfg["feature"]
        True
        """

        try:
            return self._value.payload[key].to_python()
        except KeyError:
            raise NotFound(key) from None

    def __iter__(self) -> Iterator[str]:
        """Iterate over the top-level keys of the configuration.

        Examples
        --------
        >>> sorted(Config(Value.from_python({"service": {}, "logging": {}})))
        ['logging', 'service']
        """

        return iter(self._value.payload)

    def __len__(self) -> int:
        """Return the number of top-level keys available.

        Examples
        --------
        >>> len(Config(Value.from_python({"a": 1, "b": 2})))
        2
        """

        return len(self._value.payload)

    @property
    def value(self) -> Value:
        """The merged value tree backing this configuration."""

        return self._value

    def lookup(self, path: Path) -> Value:
        """Return the :class:`Value` at *path* or raise :class:`NotFound`.

        Why
        ----
        Every other accessor is built on this walk; callers that need the kind
        of a node rather than its Python form use it directly.

        Parameters
        ----------
        path:
            Dotted string with optional ``[n]`` indices, or a sequence of
            segments.

        Examples
        --------
        >>> Config(Value.from_python({"db": {"port": 5432}})).lookup("db.port").kind
        <ValueKind.NUMBER: 'number'>
        """

        segments = split_path(path)
        current = self._value
        for segment in segments:
            found = _step(current, segment)
            if found is None:
                raise NotFound(_render(path))
            current = found
        return current

    @overload
    def get(self, key: Path, *, default: T) -> Any | T:  # type: ignore[override]
        ...

    @overload
    def get(self, key: Path, *, default: None = ...) -> Any | None:  # type: ignore[override]
        ...

    def get(self, key: Path, *, default: Any = None) -> Any:
        """Resolve *key* as a path and return ``default`` when it is missing.

        Examples
        --------
        >>> cfg = Config(Value.from_python({"servers": [{"name": "a"}, {"name": "b"}]}))
        >>> cfg.get("servers[1].name")
        'b'
        >>> cfg.get("servers[5].name", default="none")
        'none'
        """

        try:
            return self.lookup(key).to_python()
        except NotFound:
            return default

    def get_string(self, path: Path) -> str:
        """Return the string at *path*.

        No conversion happens: numbers and booleans raise
        :class:`TypeMismatch` rather than being rendered as text.

        Examples
        --------
        >>> cfg = Config(Value.from_python({"db": {"host": "localhost", "port": 5432}}))
        >>> cfg.get_string("db.host")
        'localhost'
        >>> cfg.get_string("db.port")
        Traceback (most recent call last):
        ...
        lib_melt_config.domain.errors.TypeMismatch: Configuration path db.port holds number, expected string
        """

        value = self.lookup(path)
        if value.kind is ValueKind.STRING:
            return value.payload
        raise TypeMismatch(_render(path), ValueKind.STRING.value, value.kind.value)

    def get_number(self, path: Path) -> int | float:
        """Return a number, parsing numeric strings; raise :class:`TypeMismatch` otherwise.

        Examples
        --------
        >>> cfg = Config(Value.from_python({"port": "5433", "ratio": 0.5, "name": "db"}))
        >>> cfg.get_number("port"), cfg.get_number("ratio")
        (5433, 0.5)
        >>> cfg.get_number("name")
        Traceback (most recent call last):
        ...
        lib_melt_config.domain.errors.TypeMismatch: Configuration path name holds string, expected number
        """

        value = self.lookup(path)
        if value.kind is ValueKind.NUMBER:
            return value.payload
        if value.kind is ValueKind.STRING:
            parsed = parse_number(value.payload)
            if parsed is not None:
                return parsed
        raise TypeMismatch(_render(path), ValueKind.NUMBER.value, value.kind.value)

    def get_boolean(self, path: Path) -> bool:
        """Return a boolean, accepting ``"true"``/``"false"`` strings in any case."""

        value = self.lookup(path)
        if value.kind is ValueKind.BOOLEAN:
            return value.payload
        if value.kind is ValueKind.STRING:
            parsed = parse_boolean(value.payload)
            if parsed is not None:
                return parsed
        raise TypeMismatch(_render(path), ValueKind.BOOLEAN.value, value.kind.value)

    def get_mapping(self, path: Path) -> dict[str, Any]:
        """Return a fresh ``dict`` copy of the mapping at *path*.

        Examples
        --------
        >>> Config(Value.from_python({"db": {"port": 5432}})).get_mapping("db")
        {'port': 5432}
        """

        value = self.lookup(path)
        if value.kind is ValueKind.MAPPING:
            return value.to_python()
        raise TypeMismatch(_render(path), ValueKind.MAPPING.value, value.kind.value)

    def get_sequence(self, path: Path) -> list[Any]:
        """Return a fresh ``list`` copy of the sequence at *path*."""

        value = self.lookup(path)
        if value.kind is ValueKind.SEQUENCE:
            return value.to_python()
        raise TypeMismatch(_render(path), ValueKind.SEQUENCE.value, value.kind.value)

    def get_or_default(self, path: Path, fallback: T) -> Any | T:
        """Return the value at *path*, or *fallback* on any query failure.

        When *fallback* is not ``None`` its type selects the typed getter, so a
        value of a different kind also yields *fallback*.

        Examples
        --------
        >>> cfg = Config(Value.from_python({"db": {"port": 5432, "host": "localhost"}}))
        >>> cfg.get_or_default("db.port", 80)
        5432
        >>> cfg.get_or_default("db.host", 80)
        80
        >>> cfg.get_or_default("db.user", "admin")
        'admin'
        """

        getter = self._getter_for(fallback)
        try:
            return getter(path)
        except (NotFound, TypeMismatch):
            return fallback

    def origin(self, path: Path) -> SourceInfo | None:
        """Return provenance for the leaf at *path* or ``None`` when unknown."""

        try:
            segments = split_path(path)
        except NotFound:
            return None
        return self._meta.get(".".join(str(segment) for segment in segments))

    def provenance(self) -> Mapping[str, SourceInfo]:
        """Return the read-only dotted key → :class:`SourceInfo` mapping."""

        return self._meta

    def as_dict(self) -> dict[str, Any]:
        """Return a deep, mutable ``dict`` copy of the configuration tree."""

        return self._value.to_python()

    def to_json(self, *, indent: int | None = None) -> str:
        """Serialise the configuration to JSON.

        Examples
        --------
        >>> Config(Value.from_python({"service": {"timeout": 5}})).to_json()
        '{"service":{"timeout":5}}'
        """

        return json.dumps(self.as_dict(), indent=indent, separators=(",", ":"), ensure_ascii=False)

    def _getter_for(self, fallback: object) -> Callable[[Path], Any]:
        if isinstance(fallback, bool):
            return self.get_boolean
        if isinstance(fallback, (int, float)):
            return self.get_number
        if isinstance(fallback, str):
            return self.get_string
        if isinstance(fallback, MappingABC):
            return self.get_mapping
        if isinstance(fallback, (list, tuple)):
            return self.get_sequence
        return lambda path: self.lookup(path).to_python()


def split_path(path: Path) -> list[str | int]:
    """Split *path* into mapping keys and sequence indices.

    Examples
    --------
    >>> split_path("servers[0].ports[1]")
    ['servers', 0, 'ports', 1]
    >>> split_path(("db", "host.name"))
    ['db', 'host.name']
    """

    if isinstance(path, str):
        if not path:
            raise NotFound(path)
        segments: list[str | int] = []
        for part in path.split("."):
            match = _INDEXED_PART.match(part)
            if match is None:
                segments.append(part)
                continue
            if match.group("key"):
                segments.append(match.group("key"))
            segments.extend(int(index) for index in _INDEX.findall(match.group("indices")))
        return segments
    if isinstance(path, Sequence) and all(
        isinstance(segment, (str, int)) and not isinstance(segment, bool) for segment in path
    ):
        return list(path)
    raise NotFound(repr(path))


def parse_number(text: str) -> int | float | None:
    """Parse *text* as an int or finite float, returning ``None`` on failure.

    Examples
    --------
    >>> parse_number("42"), parse_number("-1.5e3"), parse_number("nan"), parse_number("4 2")
    (42, -1500.0, None, None)
    """

    stripped = text.strip()
    if _INT_LITERAL.match(stripped):
        return int(stripped)
    try:
        number = float(stripped)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_boolean(text: str) -> bool | None:
    """Parse ``true``/``false`` (any case), returning ``None`` otherwise."""

    lowered = text.strip().lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return None


def _step(current: Value, segment: str | int) -> Value | None:
    """Descend one segment, returning ``None`` when the path breaks."""

    if current.kind is ValueKind.MAPPING:
        return current.payload.get(str(segment))
    if current.kind is ValueKind.SEQUENCE:
        if isinstance(segment, str):
            if not segment.isdecimal():
                return None
            segment = int(segment)
        if 0 <= segment < len(current.payload):
            return current.payload[segment]
    return None


def _render(path: Path) -> str:
    if isinstance(path, str):
        return path
    return ".".join(str(segment) for segment in path)


#: Shared empty configuration; safe to reuse because :class:`Config` is immutable.
EMPTY_CONFIG = Config(EMPTY_MAPPING)
