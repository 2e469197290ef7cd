"""Declarative construction of layer registries.

Purpose
-------
Let callers state "use these sources in this order" in one call, and offer a
conventional application stack (defaults, system, user, project, environment,
command line) built on the same primitive.

Contents
--------
* :func:`declare` – ordered source entries → :class:`LayerRegistry`.
* :func:`declare_app` – conventional discovery for one application name.
* :func:`descriptor_from_spec` – translate one source entry.

Source entries
--------------
=========  ==========================  ===========================================
kind       required                    optional
=========  ==========================  ===========================================
literal    ``value``                   ``name`` (aliases: ``table``, ``defaults``)
file       ``path``                    ``format``, ``optional``
env        ``prefix``                  ``separator``, ``coerce``
options    ``options`` or ``argv``     ``coerce``, ``name``
=========  ==========================  ===========================================
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from ..adapters.env.default import default_env_prefix
from ..adapters.path_resolvers.default import DEFAULT_FORMATS, DefaultPathResolver
from ..domain.errors import SourceSpecError, UnknownFormat
from ..domain.sources import EnvSource, FileSource, LiteralSource, OptionsSource, SourceDescriptor
from ..observability import log_debug
from .ports import PathResolver
from .registry import LayerRegistry, ReaderRegistry, default_readers

_LITERAL_KINDS = frozenset({"literal", "table", "defaults"})
_KNOWN_KINDS = ("literal", "file", "env", "options")


def declare(sources: Iterable[Mapping[str, Any]], *, readers: ReaderRegistry | None = None) -> LayerRegistry:
    """Build a :class:`LayerRegistry` from ordered source entries.

    Every entry is validated before any source is read, so a typo in the last
    entry fails the call without touching the filesystem.

    Examples
    --------
    >>> registry = declare(
    ...     [
    ...         {"kind": "literal", "value": {"db": {"host": "localhost", "port": 5432}}},
    ...         {"kind": "literal", "value": {"db": {"port": 5433}}},
    ...     ]
    ... )
    >>> registry.config().get("db.port")
    5433
    >>> declare([{"kind": "file"}])
    Traceback (most recent call last):
    ...
    lib_melt_config.domain.errors.SourceSpecError: Source #0 (file) is missing required field 'path'
    """

    readers = readers if readers is not None else default_readers()
    descriptors = [descriptor_from_spec(spec, index=index) for index, spec in enumerate(sources)]
    for descriptor in descriptors:
        if not readers.supports(descriptor.format):
            raise UnknownFormat(f"No reader registered for format {descriptor.format!r} ({descriptor.describe()})")
    registry = LayerRegistry(readers=readers)
    return registry.extend(descriptors)


def descriptor_from_spec(spec: Mapping[str, Any], *, index: int = 0) -> SourceDescriptor:
    """Translate one source entry into a source descriptor."""

    if not isinstance(spec, Mapping):
        raise SourceSpecError(f"Source #{index} must be a mapping, got {type(spec).__name__}")
    kind = spec.get("kind", spec.get("type"))
    if not isinstance(kind, str):
        raise SourceSpecError(f"Source #{index} is missing required field 'kind'")
    kind = kind.lower()

    if kind in _LITERAL_KINDS:
        value = _require(spec, ("value", "source"), index=index, kind=kind)
        if not isinstance(value, Mapping):
            raise SourceSpecError(f"Source #{index} ({kind}) 'value' must be a mapping")
        return LiteralSource(value, name=str(spec.get("name", kind)))
    if kind == "file":
        path = _require(spec, ("path",), index=index, kind=kind)
        if not isinstance(path, (str, Path)):
            raise SourceSpecError(f"Source #{index} (file) 'path' must be a string")
        try:
            return FileSource(str(path), format=str(spec.get("format") or ""), optional=bool(spec.get("optional", True)))
        except UnknownFormat as exc:
            raise UnknownFormat(f"Source #{index}: {exc}") from exc
    if kind == "env":
        prefix = _require(spec, ("prefix",), index=index, kind=kind)
        if not isinstance(prefix, str):
            raise SourceSpecError(f"Source #{index} (env) 'prefix' must be a string")
        separator = spec.get("separator", "_")
        if not isinstance(separator, str) or not separator:
            raise SourceSpecError(f"Source #{index} (env) 'separator' must be a non-empty string")
        return EnvSource(prefix, separator=separator, coerce=bool(spec.get("coerce", False)))
    if kind == "options":
        if spec.get("options") is None and spec.get("argv") is None:
            raise SourceSpecError(f"Source #{index} (options) requires 'options' or 'argv'")
        return OptionsSource(
            spec.get("options"),
            argv=spec.get("argv"),
            coerce=bool(spec.get("coerce", False)),
            name=str(spec.get("name", "cmdline")),
        )
    raise SourceSpecError(f"Source #{index} has unknown kind {kind!r}; expected one of {', '.join(_KNOWN_KINDS)}")


def declare_app(
    app_name: str,
    *,
    defaults: Mapping[str, Any] | str | None = None,
    formats: Sequence[str] = DEFAULT_FORMATS,
    custom_paths: Sequence[str] = (),
    env: bool | str | Mapping[str, Any] = True,
    options: Mapping[str, Any] | Sequence[str] | None = None,
    readers: ReaderRegistry | None = None,
    resolver: PathResolver | None = None,
) -> LayerRegistry:
    """Build the conventional layer stack for *app_name*.

    Precedence, lowest first: ``defaults`` (mapping or file path), system
    files, user files, project files, ``custom_paths`` (files or directories),
    environment variables, command-line ``options`` (mapping or raw argv).

    Parameters
    ----------
    env:
        ``True`` uses :func:`default_env_prefix`; a string is the prefix; a
        mapping holds ``prefix``/``separator``/``coerce``; ``False`` disables.
    resolver:
        Discovery strategy; defaults to :class:`DefaultPathResolver`.

    Examples
    --------
    >>> registry = declare_app("melt-demo", defaults={"port": 80}, env=False, options=["--port=8080"],
    ...                        resolver=DefaultPathResolver(app_name="melt-demo", cwd="/nonexistent",
    ...                                                     home="/nonexistent", env={}))
    >>> registry.config().get("port")
    '8080'
    """

    if not app_name:
        raise SourceSpecError("declare_app() requires a non-empty app_name")
    resolver = resolver or DefaultPathResolver(app_name=app_name, formats=formats)
    descriptors: list[SourceDescriptor] = []

    if isinstance(defaults, (str, Path)):
        descriptors.append(FileSource(str(defaults), optional=False))
    elif defaults is not None:
        descriptors.append(LiteralSource(defaults, name="defaults"))

    for location in (resolver.system(), resolver.user(), resolver.project()):
        descriptors.extend(FileSource(path) for path in location)

    for custom in custom_paths:
        if Path(custom).is_dir() and isinstance(resolver, DefaultPathResolver):
            descriptors.extend(FileSource(path) for path in resolver.directory(custom))
        else:
            descriptors.append(FileSource(str(custom)))

    env_descriptor = _env_descriptor(app_name, env)
    if env_descriptor is not None:
        descriptors.append(env_descriptor)

    if isinstance(options, Mapping):
        descriptors.append(OptionsSource(options))
    elif options is not None:
        descriptors.append(OptionsSource(argv=options))

    log_debug("app_sources_resolved", kind="app", source=app_name, count=len(descriptors))
    registry = LayerRegistry(readers=readers if readers is not None else default_readers())
    return registry.extend(descriptors)


def _env_descriptor(app_name: str, env: bool | str | Mapping[str, Any]) -> EnvSource | None:
    if env is False:
        return None
    if env is True:
        return EnvSource(default_env_prefix(app_name))
    if isinstance(env, str):
        return EnvSource(env)
    return EnvSource(
        str(env.get("prefix") or default_env_prefix(app_name)),
        separator=str(env.get("separator") or "_"),
        coerce=bool(env.get("coerce", False)),
    )


def _require(spec: Mapping[str, Any], names: Sequence[str], *, index: int, kind: str) -> Any:
    """Return the first present field in *names* or raise :class:`SourceSpecError`."""

    for name in names:
        if spec.get(name) is not None:
            return spec[name]
    raise SourceSpecError(f"Source #{index} ({kind}) is missing required field {names[0]!r}")
