"""In-memory literal reader.

Wraps a caller-supplied structure (defaults, fixtures) into a value tree. The
transform is the identity apart from the normalisation performed by
:meth:`lib_melt_config.domain.value.Value.from_python`.
"""

from __future__ import annotations

from ...domain.errors import ParseError
from ...domain.sources import LiteralSource
from ...domain.value import Value
from ...observability import log_debug, log_error


class LiteralReader:
    """Read :class:`~lib_melt_config.domain.sources.LiteralSource` descriptors."""

    def read(self, descriptor: LiteralSource) -> Value:
        """Return the normalised literal, which must be a mapping at the top level.

        Examples
        --------
        >>> LiteralReader().read(LiteralSource({"db": {"port": 5432}})).to_python()
        {'db': {'port': 5432}}
        >>> LiteralReader().read(LiteralSource(None)).to_python()
        {}
        """

        data = descriptor.data
        if data is None:
            data = {}
        try:
            value = Value.from_python(data)
        except (TypeError, ValueError) as exc:
            log_error("literal_invalid", kind="literal", source=descriptor.describe(), error=str(exc))
            raise ParseError(descriptor.describe(), str(exc)) from exc
        if not value.is_mapping:
            raise ParseError(descriptor.describe(), f"expected a mapping, got {value.kind.value}")
        log_debug("literal_loaded", kind="literal", source=descriptor.describe(), keys=len(value.payload))
        return value
