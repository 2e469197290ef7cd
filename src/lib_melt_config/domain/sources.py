"""Source descriptors identifying registered configuration layers.

Purpose
-------
Describe *where* a layer comes from with enough metadata to read it again,
without reading anything. Descriptors are immutable once created.

Contents
--------
* :class:`LiteralSource` – in-memory structure supplied by the caller.
* :class:`FileSource` – on-disk document in one of the registered formats.
* :class:`EnvSource` – process environment variables sharing a prefix.
* :class:`OptionsSource` – command-line options (pre-parsed or raw tokens).
* :data:`SourceDescriptor` – union of the above.
* :func:`format_for_path` – suffix → format identifier lookup.
* :class:`Layer` – a descriptor paired with the value it produced.

System Role
-----------
The layer registry hands descriptors to the reader registry, which resolves
``descriptor.format`` to a reader. Readers receive the descriptor itself, so a
new format only needs a new ``format`` value and a reader.
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Sequence, Union

from .errors import UnknownFormat
from .value import Value

#: File suffixes understood without an explicit ``format``.
SUFFIX_FORMATS: Mapping[str, str] = {
    ".toml": "toml",
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".ini": "ini",
    ".cfg": "ini",
    ".conf": "ini",
    ".config": "ini",
    ".env": "dotenv",
}


def format_for_path(path: str) -> str:
    """Return the format identifier implied by the suffix of *path*.

    Examples
    --------
    >>> format_for_path("/etc/demo/config.YML")
    'yaml'
    >>> format_for_path("/srv/app/.env")
    'dotenv'
    """

    candidate = Path(path)
    suffix = candidate.suffix.lower()
    if not suffix and candidate.name.startswith("."):
        suffix = candidate.name.lower()
    try:
        return SUFFIX_FORMATS[suffix]
    except KeyError:
        raise UnknownFormat(f"Cannot infer configuration format from {path!r}; pass format= explicitly") from None


@dataclass(frozen=True, eq=False)
class LiteralSource:
    """In-memory configuration structure (defaults, test fixtures, ...).

    The structure is deep-copied on construction so later mutations by the
    caller do not change what the layer reads.
    """

    data: Any
    name: str = "literal"

    kind = "literal"
    format = "literal"

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", deepcopy(self.data))

    def describe(self) -> str:
        return f"literal:{self.name}"


@dataclass(frozen=True)
class FileSource:
    """Configuration document on disk.

    ``format`` defaults to the suffix mapping in :data:`SUFFIX_FORMATS`.
    ``optional`` sources contribute an empty mapping when the file is absent.
    """

    path: str
    format: str = ""
    optional: bool = True

    kind = "file"

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", str(self.path))
        resolved = self.format.lower() if self.format else format_for_path(self.path)
        object.__setattr__(self, "format", resolved)

    def describe(self) -> str:
        return f"file:{self.path}"


@dataclass(frozen=True)
class EnvSource:
    """Environment variables starting with ``prefix``.

    ``separator`` splits the remainder of each name into nested keys;
    ``coerce`` enables best-effort boolean/number parsing of values.
    """

    prefix: str
    separator: str = "_"
    coerce: bool = False

    kind = "env"
    format = "env"

    def __post_init__(self) -> None:
        if not self.separator:
            raise ValueError("EnvSource separator must not be empty")

    def describe(self) -> str:
        return f"env:{self.prefix}"


@dataclass(frozen=True, eq=False)
class OptionsSource:
    """Command-line options, pre-parsed (``options``) and/or raw (``argv``)."""

    options: Mapping[str, Any] | None = None
    argv: Sequence[str] | None = None
    coerce: bool = False
    name: str = "cmdline"
    separator: str = "-"

    kind = "options"
    format = "options"

    def __post_init__(self) -> None:
        object.__setattr__(self, "options", deepcopy(dict(self.options)) if self.options is not None else None)
        object.__setattr__(self, "argv", tuple(self.argv) if self.argv is not None else None)

    def describe(self) -> str:
        return f"options:{self.name}"


SourceDescriptor = Union[LiteralSource, FileSource, EnvSource, OptionsSource]


@dataclass(frozen=True)
class Layer:
    """A registered descriptor paired with the value it produced at read time."""

    descriptor: SourceDescriptor
    value: Value
