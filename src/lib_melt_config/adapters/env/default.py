"""Environment variable reader.

Purpose
-------
Translate process environment variables into nested value trees. The
environment is scanned at the moment the layer is registered and never again.

Key behaviours
--------------
* Only variables starting with ``PREFIX_`` are captured (``APP`` and ``APP_``
  select the same variables).
* The remainder of the name is split on the configured separator and
  lowercased (``APP_DB_HOST`` → ``{"db": {"host": ...}}`` with ``_``).
* Values stay strings unless coercion is enabled; coercion turns
  ``true``/``false`` into booleans and numeric literals into numbers and keeps
  the raw string whenever parsing fails.
* A name that is both a leaf and a branch (``APP_DB`` next to ``APP_DB_HOST``)
  is a :class:`~lib_melt_config.domain.errors.ParseError`.
"""

from __future__ import annotations

import os
from typing import Iterable, Mapping

from ...domain.config import parse_boolean, parse_number
from ...domain.errors import ParseError
from ...domain.sources import EnvSource
from ...domain.value import Value
from ...observability import log_debug, log_error


def default_env_prefix(app_name: str) -> str:
    """Return the canonical environment prefix for *app_name*.

    Examples
    --------
    >>> default_env_prefix('melt-demo')
    'MELT_DEMO'
    """

    return app_name.replace("-", "_").replace(".", "_").upper()


class EnvReader:
    """Read :class:`~lib_melt_config.domain.sources.EnvSource` descriptors."""

    def __init__(self, *, environ: Mapping[str, str] | None = None) -> None:
        """Initialise the reader with a specific ``environ`` mapping for testability.

        Parameters
        ----------
        environ:
            Mapping to read from. Defaults to :data:`os.environ`, looked up at
            read time.
        """

        self._environ = environ

    def read(self, descriptor: EnvSource) -> Value:
        """Return a nested mapping built from variables matching the descriptor.

        Examples
        --------
        >>> env = {"APP_DB_HOST": "prodhost", "APP_DB_PORT": "5433", "OTHER": "x"}
        >>> EnvReader(environ=env).read(EnvSource("APP")).to_python()
        {'db': {'host': 'prodhost', 'port': '5433'}}
        >>> EnvReader(environ=env).read(EnvSource("APP", coerce=True)).to_python()["db"]["port"]
        5433
        """

        environ = os.environ if self._environ is None else self._environ
        prefix = descriptor.prefix
        if prefix and not prefix.endswith("_"):
            prefix = f"{prefix}_"

        collected: dict[str, object] = {}
        for name in sorted(environ):
            if not name.startswith(prefix):
                continue
            parts = [part.lower() for part in name[len(prefix) :].split(descriptor.separator) if part]
            if not parts:
                continue
            raw = environ[name]
            try:
                assign_nested(collected, parts, coerce_scalar(raw) if descriptor.coerce else raw)
            except ValueError as exc:
                log_error("env_invalid", kind="env", source=descriptor.describe(), variable=name, error=str(exc))
                raise ParseError(descriptor.describe(), f"{name}: {exc}") from exc
        log_debug("env_variables_loaded", kind="env", source=descriptor.describe(), keys=sorted(collected))
        return Value.from_python(collected)


def assign_nested(target: dict[str, object], parts: Iterable[str], value: object) -> None:
    """Assign ``value`` inside ``target`` following the key ``parts``.

    Raises
    ------
    ValueError
        When a leaf and a branch would share one key.

    Examples
    --------
    >>> data: dict[str, object] = {}
    >>> assign_nested(data, ["service", "timeout"], "5")
    >>> data
    {'service': {'timeout': '5'}}
    >>> assign_nested(data, ["service", "timeout", "unit"], "s")
    Traceback (most recent call last):
    ...
    ValueError: Cannot nest keys under scalar value service.timeout
    """

    keys = list(parts)
    cursor = target
    for depth, part in enumerate(keys[:-1]):
        child = cursor.setdefault(part, {})
        if not isinstance(child, dict):
            raise ValueError(f"Cannot nest keys under scalar value {'.'.join(keys[: depth + 1])}")
        cursor = child
    final_key = keys[-1]
    if isinstance(cursor.get(final_key), dict):
        raise ValueError(f"Cannot replace nested keys with a scalar value at {'.'.join(keys)}")
    cursor[final_key] = value


def coerce_scalar(value: str) -> object:
    """Coerce textual values to booleans or numbers where possible.

    Examples
    --------
    >>> coerce_scalar('TRUE'), coerce_scalar('10'), coerce_scalar('3.5'), coerce_scalar('hello')
    (True, 10, 3.5, 'hello')
    >>> coerce_scalar('inf')
    'inf'
    """

    flag = parse_boolean(value)
    if flag is not None:
        return flag
    number = parse_number(value)
    if number is not None:
        return number
    return value
