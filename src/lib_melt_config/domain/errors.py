"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by readers, the layer registry, the
accessor layer, and consuming applications. The hierarchy lives in the domain
layer so adapters and application services may depend on it, never the other
way round.

Contents
--------
* :class:`ConfigError` – umbrella base class for all configuration issues.
* :class:`ReadError` – a source could not be read (permission denied, a
  required file is absent, ...).
* :class:`ParseError` – a present source holds malformed content.
* :class:`UnknownFormat` – no reader is registered for a format identifier.
* :class:`SourceSpecError` – a declarative source entry is incomplete.
* :class:`RegistryFrozen` – a reader registry was modified after use.
* :class:`NotFound` – a query path is absent from the merged tree.
* :class:`TypeMismatch` – a query path holds a value of the wrong kind.

System Role
-----------
Read-time failures (``ReadError`` and ``ParseError``) abort
:meth:`lib_melt_config.application.registry.LayerRegistry.add` so callers never
proceed on partial data. Query-time failures (``NotFound`` and
``TypeMismatch``) are recoverable and are absorbed by
:meth:`lib_melt_config.domain.config.Config.get_or_default`.
"""

from __future__ import annotations


class ConfigError(Exception):
    """Base type for all exceptions emitted by ``lib_melt_config``.

    Why
    ----
    Provide a single catch-all type for consumers that do not need fine-grained
    handling.
    """


class ReadError(ConfigError):
    """Raised when a source is unreachable outside the optional/absent case.

    Typical Sources
    ---------------
    Permission errors, directories passed as file paths, or a file source that
    was registered with ``optional=False`` and does not exist.
    """

    def __init__(self, message: str, *, source: str | None = None) -> None:
        super().__init__(message)
        self.source = source


class ParseError(ReadError):
    """Raised when a present source cannot be turned into a value tree.

    What
    -----
    Carries the descriptor summary (``source``) and the underlying parser
    diagnostic (``detail``) so the message alone is enough to fix the file.

    Examples
    --------
    >>> err = ParseError("file:/etc/demo.toml", "Expected '=' (line 1)")
    >>> str(err)
    "Failed to parse file:/etc/demo.toml: Expected '=' (line 1)"
    >>> err.detail
    "Expected '=' (line 1)"
    """

    def __init__(self, source: str, detail: str) -> None:
        super().__init__(f"Failed to parse {source}: {detail}", source=source)
        self.detail = detail


class UnknownFormat(ConfigError):
    """Raised when a descriptor names a format with no registered reader."""


class SourceSpecError(ConfigError):
    """Raised when a declarative source entry is malformed or misses fields."""


class RegistryFrozen(ConfigError):
    """Raised when readers are registered after a layer registry started reading."""


class NotFound(ConfigError, KeyError):
    """Represents a query path that is absent from the merged configuration.

    Why
    ----
    Absence is a normal query outcome. Subclassing :class:`KeyError` lets
    callers use the idiom they already know for mappings.
    """

    def __init__(self, path: str) -> None:
        super().__init__(path)
        self.path = path

    def __str__(self) -> str:
        return f"Configuration path not found: {self.path}"


class TypeMismatch(ConfigError, TypeError):
    """Signifies that a query path holds a value of an unexpected kind."""

    def __init__(self, path: str, expected: str, actual: str) -> None:
        super().__init__(f"Configuration path {path} holds {actual}, expected {expected}")
        self.path = path
        self.expected = expected
        self.actual = actual
