"""Command-line options reader.

Purpose
-------
Turn command-line options into the highest-precedence layer of a typical
stack. The reader does not define options; it consumes either the mapping a
CLI parser already produced (``vars(argparse_namespace)``, a click ``params``
dict) or raw ``--key=value`` tokens.

Key behaviours
--------------
* Keys are lowercased and split on the separator (``-`` by default), so
  ``--db-port`` becomes ``{"db": {"port": ...}}``; leading dashes are ignored.
* ``None`` values are skipped, so parser defaults for options that were not
  given never shadow lower layers.
* In ``argv``, ``--key=value`` and ``--key value`` assign strings, a bare
  ``--flag`` assigns ``True``, ``--`` ends option parsing, and positional
  tokens are ignored.
* With ``coerce=True`` string values get the same best-effort boolean/number
  coercion as environment variables.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from ...domain.errors import ParseError
from ...domain.sources import OptionsSource
from ...domain.value import Value
from ...observability import log_debug
from ..env.default import assign_nested, coerce_scalar


class OptionsReader:
    """Read :class:`~lib_melt_config.domain.sources.OptionsSource` descriptors."""

    def read(self, descriptor: OptionsSource) -> Value:
        """Return options as a nested mapping.

        Examples
        --------
        >>> source = OptionsSource({"log_level": "debug", "db-port": 5433, "verbose": None})
        >>> OptionsReader().read(source).to_python()
        {'db': {'port': 5433}, 'log_level': 'debug'}
        >>> OptionsReader().read(OptionsSource(argv=["--db-host=prod", "--dry-run"])).to_python()
        {'db': {'host': 'prod'}, 'dry': {'run': True}}
        """

        pairs: list[tuple[str, Any]] = []
        if descriptor.options:
            pairs.extend((str(key), value) for key, value in descriptor.options.items())
        if descriptor.argv:
            pairs.extend(parse_argv(descriptor.argv))

        collected: dict[str, object] = {}
        for key, value in sorted(pairs, key=lambda pair: pair[0]):
            if value is None:
                continue
            parts = [part.lower() for part in key.lstrip("-").split(descriptor.separator) if part]
            if not parts:
                continue
            if descriptor.coerce and isinstance(value, str):
                value = coerce_scalar(value)
            try:
                assign_nested(collected, parts, value)
            except ValueError as exc:
                raise ParseError(descriptor.describe(), f"{key}: {exc}") from exc
        log_debug("options_loaded", kind="options", source=descriptor.describe(), keys=sorted(collected))
        try:
            return Value.from_python(collected)
        except (TypeError, ValueError) as exc:
            raise ParseError(descriptor.describe(), str(exc)) from exc


def parse_argv(argv: Sequence[str]) -> Iterable[tuple[str, Any]]:
    """Yield ``(key, value)`` pairs from raw option tokens.

    Examples
    --------
    >>> list(parse_argv(["--port", "80", "--debug", "--name=x", "file.txt", "--", "--ignored"]))
    [('port', '80'), ('debug', True), ('name', 'x')]
    """

    pending: str | None = None
    for token in argv:
        if token == "--":
            break
        if token.startswith("--"):
            if pending is not None:
                yield pending, True
                pending = None
            body = token[2:]
            if "=" in body:
                key, value = body.split("=", 1)
                yield key, value
            else:
                pending = body
        elif pending is not None:
            yield pending, token
            pending = None
    if pending is not None:
        yield pending, True
