"""Structured configuration file readers.

Purpose
-------
Convert on-disk artifacts into value trees the merge engine understands.
Readers are small wrappers around ``tomllib``/``json``/``yaml``/
``configparser`` plus a strict dotenv parser, so that absence handling, error
mapping, and observability live in one place.

Contents
--------
* :class:`BaseFileReader` – shared file access and mapping validation.
* :class:`TOMLFileReader` – canonical TOML reader.
* :class:`JSONFileReader` – JSON reader.
* :class:`YAMLFileReader` – YAML reader backed by PyYAML.
* :class:`INIFileReader` – INI reader; dotted section names nest.
* :class:`DotEnvFileReader` – ``KEY=value`` files; ``__`` nests keys.

Failure policy
--------------
Three distinct conditions: an absent optional file yields an empty mapping,
an absent required file or an unreadable path raises
:class:`~lib_melt_config.domain.errors.ReadError`, malformed content raises
:class:`~lib_melt_config.domain.errors.ParseError`.
"""

from __future__ import annotations

import configparser
import json
from pathlib import Path
from typing import Any, Mapping

try:  # Python >= 3.11
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore[no-redef]

import yaml

from ...domain.errors import ParseError, ReadError
from ...domain.sources import FileSource
from ...domain.value import EMPTY_MAPPING, Value, normalise_key
from ...observability import log_debug, log_error
from ..env.default import assign_nested


class BaseFileReader:
    """Common utilities shared by the structured file readers."""

    format_name = "file"
    parse_errors: tuple[type[Exception], ...] = (UnicodeDecodeError,)

    def read(self, descriptor: FileSource) -> Value:
        """Return the value tree stored at ``descriptor.path``.

        Subclasses implement :meth:`_parse`; this method handles absence,
        error mapping, and logging.
        """

        payload = self._read_bytes(descriptor)
        if payload is None:
            return EMPTY_MAPPING
        try:
            data = self._parse(payload, descriptor)
        except self.parse_errors as exc:
            log_error(
                "config_file_invalid", kind="file", source=descriptor.path, format=self.format_name, error=str(exc)
            )
            raise ParseError(descriptor.describe(), f"invalid {self.format_name.upper()}: {exc}") from exc
        value = self._to_value(data, descriptor)
        log_debug("config_file_loaded", kind="file", source=descriptor.path, format=self.format_name)
        return value

    def _parse(self, payload: bytes, descriptor: FileSource) -> Any:  # pragma: no cover - abstract
        raise NotImplementedError

    def _read_bytes(self, descriptor: FileSource) -> bytes | None:
        """Read the file, returning ``None`` for an absent optional source.

        Examples
        --------
        >>> from tempfile import TemporaryDirectory
        >>> tmp = TemporaryDirectory()
        >>> missing = FileSource(str(Path(tmp.name) / "absent.toml"))
        >>> BaseFileReader()._read_bytes(missing) is None
        True
        >>> tmp.cleanup()
        """

        file_path = Path(descriptor.path)
        try:
            payload = file_path.read_bytes()
        except (FileNotFoundError, NotADirectoryError) as exc:
            if descriptor.optional:
                log_debug("config_file_missing", kind="file", source=descriptor.path)
                return None
            raise ReadError(
                f"Required configuration file not found: {descriptor.path}", source=descriptor.describe()
            ) from exc
        except IsADirectoryError as exc:
            raise ReadError(f"Configuration path is not a file: {descriptor.path}", source=descriptor.describe()) from exc
        except OSError as exc:
            log_error("config_file_unreadable", kind="file", source=descriptor.path, error=str(exc))
            raise ReadError(f"Cannot read configuration file {descriptor.path}: {exc}", source=descriptor.describe()) from exc
        log_debug("config_file_read", kind="file", source=descriptor.path, size=len(payload))
        return payload

    def _to_value(self, data: object, descriptor: FileSource) -> Value:
        """Normalise parser output, insisting on a mapping at the top level."""

        if not isinstance(data, Mapping):
            raise ParseError(descriptor.describe(), f"document did not produce a mapping (got {type(data).__name__})")
        try:
            return Value.from_python(data)
        except (TypeError, ValueError) as exc:
            raise ParseError(descriptor.describe(), str(exc)) from exc


class TOMLFileReader(BaseFileReader):
    """Read TOML documents using the standard library parser.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> path = Path(tmp.name) / "config.toml"
    >>> _ = path.write_text('[db]\\nport = 5432', encoding='utf-8')
    >>> TOMLFileReader().read(FileSource(str(path))).to_python()
    {'db': {'port': 5432}}
    >>> tmp.cleanup()
    """

    format_name = "toml"
    parse_errors = (tomllib.TOMLDecodeError, UnicodeDecodeError)

    def _parse(self, payload: bytes, descriptor: FileSource) -> Any:
        return tomllib.loads(payload.decode("utf-8"))


class JSONFileReader(BaseFileReader):
    """Read JSON documents."""

    format_name = "json"
    parse_errors = (json.JSONDecodeError, UnicodeDecodeError)

    def _parse(self, payload: bytes, descriptor: FileSource) -> Any:
        return json.loads(payload)


class YAMLFileReader(BaseFileReader):
    """Read YAML documents with a safe loader; an empty document is ``{}``.

    Mapping keys are turned into strings while each mapping is built, so
    ``1:`` and ``true:`` stay distinct keys (``"1"`` and ``"true"``) instead of
    colliding in a Python ``dict`` first. Two keys that still convert to the
    same string (``1:`` and ``"1":``) are a parse error.
    """

    format_name = "yaml"
    parse_errors = (yaml.YAMLError, UnicodeDecodeError)

    def _parse(self, payload: bytes, descriptor: FileSource) -> Any:
        data = yaml.load(payload, Loader=StringKeySafeLoader)  # noqa: S506
        return {} if data is None else data


class StringKeySafeLoader(yaml.SafeLoader):
    """``yaml.SafeLoader`` whose mappings always have string keys."""


def _construct_string_keyed_mapping(loader: StringKeySafeLoader, node: yaml.MappingNode) -> dict[str, Any]:
    """Build a mapping from *node*, converting keys with :func:`normalise_key`.

    Repeating the very same key keeps the last value, as PyYAML does (this is
    also how ``<<`` merge keys are overridden). Distinct keys that convert to
    the same string raise :class:`yaml.constructor.ConstructorError`.
    """

    loader.flatten_mapping(node)
    mapping: dict[str, Any] = {}
    raw_keys: dict[str, tuple[type, object]] = {}
    for key_node, value_node in node.value:
        raw = loader.construct_object(key_node, deep=True)
        try:
            name = normalise_key(raw)
        except TypeError as exc:
            raise yaml.constructor.ConstructorError(
                "while constructing a mapping", node.start_mark, str(exc), key_node.start_mark
            ) from exc
        identity = (type(raw), raw)
        if name in raw_keys and raw_keys[name] != identity:
            raise yaml.constructor.ConstructorError(
                "while constructing a mapping",
                node.start_mark,
                f"keys collide after conversion to strings: {name!r}",
                key_node.start_mark,
            )
        raw_keys[name] = identity
        mapping[name] = loader.construct_object(value_node, deep=True)
    return mapping


StringKeySafeLoader.add_constructor(yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG, _construct_string_keyed_mapping)


class INIFileReader(BaseFileReader):
    """Read INI documents with :mod:`configparser`.

    Sections become mappings; dotted section names nest
    (``[db.replica]`` → ``{"db": {"replica": {...}}}``). Values remain strings
    and interpolation is disabled. Keys from ``[DEFAULT]`` are inherited by every
    section, as :mod:`configparser` does, and also appear at the top level.
    """

    format_name = "ini"
    parse_errors = (configparser.Error, UnicodeDecodeError)

    def _parse(self, payload: bytes, descriptor: FileSource) -> Any:
        parser = configparser.ConfigParser(interpolation=None)
        parser.read_string(payload.decode("utf-8"), source=descriptor.path)
        result: dict[str, object] = dict(parser.defaults())
        for section in parser.sections():
            parts = [part for part in section.split(".") if part]
            if not parts:
                continue
            try:
                for key, item in parser.items(section):
                    assign_nested(result, [*parts, key], item)
            except ValueError as exc:
                raise ParseError(descriptor.describe(), f"section [{section}]: {exc}") from exc
        return result


class DotEnvFileReader(BaseFileReader):
    """Read ``.env`` files into nested mappings.

    Blank lines and ``#`` comments are skipped, an ``export`` prefix is allowed,
    surrounding quotes and trailing `` #`` comments are stripped, and ``__``
    separates nested keys. Lines without ``=`` are malformed.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> path = Path(tmp.name) / ".env"
    >>> _ = path.write_text("DB__HOST=localhost\\nexport DB__PASSWORD='s3cret'\\n", encoding='utf-8')
    >>> DotEnvFileReader().read(FileSource(str(path))).to_python()
    {'db': {'host': 'localhost', 'password': 's3cret'}}
    >>> tmp.cleanup()
    """

    format_name = "dotenv"

    def _parse(self, payload: bytes, descriptor: FileSource) -> Any:
        result: dict[str, object] = {}
        for line_number, raw_line in enumerate(payload.decode("utf-8").splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export ") :].lstrip()
            if "=" not in line:
                raise ParseError(descriptor.describe(), f"malformed line {line_number}: expected KEY=value")
            key, value = line.split("=", 1)
            parts = [part.lower() for part in key.strip().split("__") if part]
            if not parts:
                raise ParseError(descriptor.describe(), f"malformed line {line_number}: empty key")
            try:
                assign_nested(result, parts, _strip_quotes(value.strip()))
            except ValueError as exc:
                raise ParseError(descriptor.describe(), f"line {line_number}: {exc}") from exc
        return result


def _strip_quotes(value: str) -> str:
    """Trim surrounding quotes and inline comments from ``value``.

    Examples
    --------
    >>> _strip_quotes('"token"')
    'token'
    >>> _strip_quotes("value # comment")
    'value'
    >>> _strip_quotes('"a # b" # comment')
    'a # b'
    """

    if value[:1] in {'"', "'"}:
        closing = value.find(value[0], 1)
        if closing != -1:
            # anything after the closing quote is a comment or padding
            return value[1:closing]
        return value
    if value.startswith("#"):
        return ""
    if " #" in value:
        return value.split(" #", 1)[0].strip()
    return value
