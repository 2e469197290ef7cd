"""Filesystem discovery of conventional configuration files.

Purpose
-------
Implement the :class:`lib_melt_config.application.ports.PathResolver` protocol
for :func:`lib_melt_config.application.declarative.declare_app`. The adapter is
the only component that knows where applications conventionally keep their
configuration.

Search order (lowest precedence first)
--------------------------------------
* ``system``: ``<etc>/<app>/{config,<app>}.<ext>`` then ``<etc>/<app>.<ext>``
  where ``<etc>`` is ``/etc`` (``%PROGRAMDATA%`` on Windows, overridable via
  ``LIB_MELT_CONFIG_ETC``).
* ``user``: ``<xdg>/<app>/{config,<app>}.<ext>`` then ``~/.<app>.<ext>``
  where ``<xdg>`` is ``$XDG_CONFIG_HOME`` or ``~/.config`` (``%APPDATA%`` on
  Windows).
* ``project``: ``<cwd>/<app>.<ext>`` then ``<cwd>/config.<ext>``.

Within each directory only the first existing candidate is used; extensions
are tried in the configured format order.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Iterable, Iterator, Mapping, Sequence

from ...observability import log_debug

#: Default format preference, highest first.
DEFAULT_FORMATS: tuple[str, ...] = ("toml", "json", "yaml", "ini")

#: File extensions tried for each format identifier.
FORMAT_EXTENSIONS: Mapping[str, tuple[str, ...]] = {
    "toml": (".toml",),
    "json": (".json",),
    "yaml": (".yaml", ".yml"),
    "ini": (".ini", ".cfg"),
}


class DefaultPathResolver:
    """Resolve candidate configuration files for one application.

    Parameters
    ----------
    app_name:
        Directory and file stem used throughout the search.
    formats:
        Format identifiers in preference order; unknown identifiers are ignored.
    cwd / home:
        Roots for the project and user searches (default: process values).
    env:
        Environment mapping consulted for root overrides. Defaults to
        :data:`os.environ`.
    platform:
        ``sys.platform`` clone; selects POSIX or Windows conventions.
    """

    def __init__(
        self,
        *,
        app_name: str,
        formats: Sequence[str] = DEFAULT_FORMATS,
        cwd: Path | str | None = None,
        home: Path | str | None = None,
        env: Mapping[str, str] | None = None,
        platform: str | None = None,
    ) -> None:
        self.app_name = app_name
        self.extensions = [ext for fmt in formats for ext in FORMAT_EXTENSIONS.get(fmt.lower(), ())]
        self.cwd = Path(cwd) if cwd else Path.cwd()
        self.home = Path(home) if home else Path.home()
        self.env = dict(os.environ if env is None else env)
        self.platform = platform or sys.platform

    def system(self) -> Iterable[str]:
        """Return machine-wide candidates.

        Examples
        --------
        >>> from tempfile import TemporaryDirectory
        >>> tmp = TemporaryDirectory()
        >>> root = Path(tmp.name)
        >>> (root / "demo").mkdir()
        >>> _ = (root / "demo" / "config.toml").write_text("[db]\\nport = 1", encoding="utf-8")
        >>> resolver = DefaultPathResolver(app_name="demo", env={"LIB_MELT_CONFIG_ETC": str(root)}, platform="linux")
        >>> [Path(p).name for p in resolver.system()]
        ['config.toml']
        >>> tmp.cleanup()
        """

        etc_root = self._system_root()
        return self._collect("system", [
            (etc_root / self.app_name, ("config", self.app_name)),
            (etc_root, (self.app_name,)),
        ])

    def user(self) -> Iterable[str]:
        """Return per-user candidates."""

        locations: list[tuple[Path, Sequence[str]]] = [(self._user_root() / self.app_name, ("config", self.app_name))]
        if not self._is_windows:
            locations.append((self.home, (f".{self.app_name}",)))
        return self._collect("user", locations)

    def project(self) -> Iterable[str]:
        """Return candidates next to the working directory."""

        return self._collect("project", [(self.cwd, (self.app_name, "config"))])

    def directory(self, base: Path | str) -> Iterable[str]:
        """Return the first candidate inside an explicit directory."""

        return self._collect("custom", [(Path(base), ("config", self.app_name))])

    @property
    def _is_windows(self) -> bool:
        return self.platform.startswith("win")

    def _system_root(self) -> Path:
        if "LIB_MELT_CONFIG_ETC" in self.env:
            return Path(self.env["LIB_MELT_CONFIG_ETC"])
        if self._is_windows:
            return Path(self.env.get("PROGRAMDATA", r"C:\ProgramData"))
        return Path("/etc")

    def _user_root(self) -> Path:
        if self._is_windows:
            return Path(self.env.get("APPDATA", self.home / "AppData" / "Roaming"))
        xdg = self.env.get("XDG_CONFIG_HOME")
        return Path(xdg) if xdg else self.home / ".config"

    def _collect(self, location: str, bases: Sequence[tuple[Path, Sequence[str]]]) -> list[str]:
        paths = [found for base, stems in bases for found in _first_existing(base, stems, self.extensions)]
        if paths:
            log_debug("path_candidates", kind="file", source=None, location=location, count=len(paths))
        return paths


def _first_existing(base: Path, stems: Sequence[str], extensions: Sequence[str]) -> Iterator[str]:
    """Yield the first ``base/<stem><ext>`` that exists as a file, if any."""

    if not base.is_dir():
        return
    for stem in stems:
        for extension in extensions:
            candidate = base / f"{stem}{extension}"
            if candidate.is_file():
                yield str(candidate)
                return
