"""Application-layer ports describing adapter responsibilities.

Purpose
-------
Define the structural contracts that readers and discovery adapters satisfy so
the layer registry can orchestrate them without depending on concrete
implementations.

Contents
--------
* :class:`Descriptor` – what the registry needs to know about a source.
* :class:`Reader` – turns one descriptor into a value tree.
* :class:`PathResolver` – yields candidate files for application discovery.

System Role
-----------
New formats plug in by implementing :class:`Reader` and registering it under a
format identifier; neither the merge engine nor the layer registry changes.
"""

from __future__ import annotations

from typing import Iterable, Protocol, runtime_checkable

from ..domain.value import Value


class Descriptor(Protocol):
    """Structural view of a source descriptor.

    Built-in descriptors live in :mod:`lib_melt_config.domain.sources`; plugin
    formats may ship their own as long as they expose these members.
    """

    kind: str
    format: str

    def describe(self) -> str:
        """Return a short human readable identifier used in errors and logs."""


@runtime_checkable
class Reader(Protocol):
    """Read one configuration source into a value tree.

    Why
    ----
    Segregate parsing concerns (TOML/JSON/YAML/INI/env/...) from precedence and
    merge logic.

    Contract
    --------
    Return a MAPPING value. Raise :class:`~lib_melt_config.domain.errors.ReadError`
    when the source is unreachable (absent optional files are an empty mapping,
    not an error) and :class:`~lib_melt_config.domain.errors.ParseError` when
    the content is malformed.
    """

    def read(self, descriptor: Descriptor) -> Value:
        """Return the value tree produced by *descriptor*."""


@runtime_checkable
class PathResolver(Protocol):
    """Discover configuration files for each conventional location."""

    def system(self) -> Iterable[str]:
        """Yield machine-wide candidates (``/etc/<app>/config.toml``...)."""

    def user(self) -> Iterable[str]:
        """Yield per-user candidates (XDG config home, dotfiles)."""

    def project(self) -> Iterable[str]:
        """Yield candidates relative to the working directory."""
