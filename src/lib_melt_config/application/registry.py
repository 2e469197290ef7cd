"""Reader and layer registries.

Purpose
-------
Hold the two pieces of state the engine has: the table of known formats and
the ordered list of layers for one configuration object.

Contents
--------
* :class:`ReaderRegistry` – format identifier → :class:`~.ports.Reader`.
* :func:`default_readers` – registry pre-populated with the built-in readers.
* :class:`LayerRegistry` – ordered, append-only layers with a cached merge.

Concurrency
-----------
Neither registry is safe for concurrent mutation; serialise ``add`` and
``register`` calls externally. Once a merge is computed it is an immutable
value, so concurrent queries against a registry that is not being mutated are
safe.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from ..adapters.env.default import EnvReader
from ..adapters.file_loaders.structured import (
    DotEnvFileReader,
    INIFileReader,
    JSONFileReader,
    TOMLFileReader,
    YAMLFileReader,
)
from ..adapters.literal.default import LiteralReader
from ..adapters.options.default import OptionsReader
from ..domain.config import Config, SourceInfo
from ..domain.errors import ConfigError, RegistryFrozen, UnknownFormat
from ..domain.sources import EnvSource, FileSource, Layer, LiteralSource, OptionsSource, SourceDescriptor
from ..domain.value import Value
from ..observability import log_debug, log_info, make_event
from .merge import merge_layers
from .ports import Descriptor, Reader


class ReaderRegistry:
    """Map format identifiers to readers.

    Why
    ----
    New formats plug in from outside by registering a reader; descriptors are
    dispatched on ``descriptor.format`` and nothing else.

    What
    ----
    Registration is allowed until a :class:`LayerRegistry` first reads through
    the registry. After that the table is frozen so the meaning of a format
    cannot change under an existing configuration.

    Examples
    --------
    >>> readers = ReaderRegistry()
    >>> readers.register("literal", LiteralReader())
    >>> readers.formats()
    ('literal',)
    >>> readers.freeze()
    >>> readers.register("json", JSONFileReader())
    Traceback (most recent call last):
    ...
    lib_melt_config.domain.errors.RegistryFrozen: Reader registry is frozen; cannot register 'json'
    """

    def __init__(self, readers: Mapping[str, Reader] | None = None) -> None:
        self._readers: dict[str, Reader] = {}
        self._frozen = False
        for format_id, reader in (readers or {}).items():
            self.register(format_id, reader)

    def register(self, format_id: str, reader: Reader) -> None:
        """Register *reader* for *format_id* (case-insensitive), replacing any previous one."""

        if self._frozen:
            raise RegistryFrozen(f"Reader registry is frozen; cannot register {format_id!r}")
        if not isinstance(reader, Reader):
            raise TypeError(f"{type(reader).__name__} does not implement read(descriptor)")
        self._readers[format_id.lower()] = reader

    def resolve(self, descriptor: Descriptor) -> Reader:
        """Return the reader registered for ``descriptor.format``."""

        try:
            return self._readers[descriptor.format.lower()]
        except KeyError:
            raise UnknownFormat(
                f"No reader registered for format {descriptor.format!r} ({descriptor.describe()})"
            ) from None

    def supports(self, format_id: str) -> bool:
        """Return whether a reader is registered for *format_id* (case-insensitive).

        Examples
        --------
        >>> default_readers(environ={}).supports("YAML")
        True
        """

        return format_id.lower() in self._readers

    def formats(self) -> tuple[str, ...]:
        """Return the registered format identifiers in registration order."""

        return tuple(self._readers)

    def freeze(self) -> None:
        """Reject further :meth:`register` calls; idempotent."""

        self._frozen = True

    @property
    def frozen(self) -> bool:
        """Whether :meth:`freeze` has been called."""

        return self._frozen


def default_readers(*, environ: Mapping[str, str] | None = None) -> ReaderRegistry:
    """Return a fresh registry holding the built-in readers.

    Parameters
    ----------
    environ:
        Environment mapping handed to the env reader; ``None`` means
        :data:`os.environ` at read time.
    """

    yaml_reader = YAMLFileReader()
    return ReaderRegistry(
        {
            "literal": LiteralReader(),
            "env": EnvReader(environ=environ),
            "options": OptionsReader(),
            "toml": TOMLFileReader(),
            "json": JSONFileReader(),
            "yaml": yaml_reader,
            "yml": yaml_reader,
            "ini": INIFileReader(),
            "dotenv": DotEnvFileReader(),
        }
    )


class LayerRegistry:
    """Ordered, append-only configuration layers.

    Why
    ----
    Precedence is fixed by registration order: later layers win. Reading at
    ``add`` time surfaces broken sources immediately instead of at first
    query.

    Examples
    --------
    >>> registry = LayerRegistry(readers=default_readers(environ={"APP_DB_HOST": "prodhost"}))
    >>> _ = registry.add_literal({"db": {"host": "localhost", "port": 5432}})
    >>> _ = registry.add_literal({"db": {"port": 5433}})
    >>> _ = registry.add_env("APP")
    >>> registry.merged().to_python()
    {'db': {'host': 'prodhost', 'port': 5433}}
    >>> [d.describe() for d in registry.layers()]
    ['literal:literal', 'literal:literal', 'env:APP']
    """

    def __init__(self, *, readers: ReaderRegistry | None = None) -> None:
        self._readers = readers if readers is not None else default_readers()
        self._layers: list[Layer] = []
        self._cache: tuple[Value, dict[str, SourceInfo]] | None = None

    def add(self, descriptor: SourceDescriptor) -> Layer:
        """Read *descriptor* immediately and append the resulting layer.

        Raises
        ------
        UnknownFormat
            No reader handles ``descriptor.format``.
        ReadError / ParseError
            Propagated from the reader untouched; the registry is unchanged.
        """

        reader = self._readers.resolve(descriptor)
        self._readers.freeze()
        source = descriptor.describe()
        try:
            value = reader.read(descriptor)
        except ConfigError as exc:
            log_debug("layer_error", **make_event(descriptor.kind, source, {"error": str(exc)}))
            raise
        if not isinstance(value, Value) or not value.is_mapping:
            raise TypeError(f"Reader for {source} must return a mapping Value")
        layer = Layer(descriptor, value)
        self._layers.append(layer)
        self._cache = None
        log_debug(
            "layer_loaded",
            **make_event(descriptor.kind, source, {"index": len(self._layers) - 1, "keys": len(value.payload)}),
        )
        return layer

    def extend(self, descriptors: Iterable[SourceDescriptor]) -> LayerRegistry:
        """Add every descriptor in order; stops at the first failing source.

        Layers added before the failure stay registered.
        """

        for descriptor in descriptors:
            self.add(descriptor)
        return self

    def add_literal(self, data: Any, *, name: str = "literal") -> LayerRegistry:
        """Add an in-memory structure; it is deep-copied at registration.

        Examples
        --------
        >>> registry = LayerRegistry(readers=default_readers(environ={}))
        >>> registry.add_literal({"a": 1}).add_literal({"a": 2}).merged().to_python()
        {'a': 2}
        """

        self.add(LiteralSource(data, name=name))
        return self

    def add_file(self, path: str, *, format: str = "", optional: bool = True) -> LayerRegistry:
        """Add a file layer; *format* defaults to the one implied by the suffix.

        Parameters
        ----------
        path:
            Location of the document.
        format:
            Registered format identifier; empty means infer from the suffix.
        optional:
            ``True`` lets an absent file contribute an empty mapping; ``False``
            turns absence into :class:`~lib_melt_config.domain.errors.ReadError`.
        """

        self.add(FileSource(path, format=format, optional=optional))
        return self

    def add_env(self, prefix: str, *, separator: str = "_", coerce: bool = False) -> LayerRegistry:
        """Add a layer built from environment variables starting with ``PREFIX_``.

        The environment is scanned now, not when the merge is computed.

        Examples
        --------
        >>> registry = LayerRegistry(readers=default_readers(environ={"APP_LOG_LEVEL": "debug"}))
        >>> registry.add_env("APP").merged().to_python()
        {'log': {'level': 'debug'}}
        """

        self.add(EnvSource(prefix, separator=separator, coerce=coerce))
        return self

    def add_options(
        self,
        options: Mapping[str, Any] | None = None,
        *,
        argv: Sequence[str] | None = None,
        coerce: bool = False,
    ) -> LayerRegistry:
        """Add command-line options, pre-parsed (*options*) and/or raw (*argv*)."""

        self.add(OptionsSource(options, argv=argv, coerce=coerce))
        return self

    def layers(self) -> tuple[SourceDescriptor, ...]:
        """Return the registered descriptors in precedence order (lowest first)."""

        return tuple(layer.descriptor for layer in self._layers)

    def layer_values(self) -> tuple[Layer, ...]:
        """Return the registered layers with the values read at ``add`` time."""

        return tuple(self._layers)

    def merged(self) -> Value:
        """Return the merge of all layers, computed lazily and cached.

        Why
        ----
        Queries are far more frequent than additions; the cache is dropped on
        every :meth:`add`, so the result always reflects all layers.

        Returns
        -------
        Value
            MAPPING node; an empty registry yields an empty mapping.
        """

        return self._merged()[0]

    def provenance(self) -> Mapping[str, SourceInfo]:
        """Return a copy of the dotted key → :class:`SourceInfo` map of the merge."""

        return dict(self._merged()[1])

    def config(self) -> Config:
        """Return an accessor over the current merge."""

        merged, meta = self._merged()
        return Config(merged, meta)

    def __len__(self) -> int:
        """Return the number of registered layers."""

        return len(self._layers)

    def _merged(self) -> tuple[Value, dict[str, SourceInfo]]:
        if self._cache is None:
            self._cache = merge_layers(self._layers)
            log_info("configuration_merged", **make_event("merge", None, {"total_layers": len(self._layers)}))
        return self._cache
