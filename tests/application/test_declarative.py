"""Declarative builder tests.

Entries are translated into registry ``add`` calls in declared order; invalid
entries fail before any source is read.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from lib_melt_config.adapters.path_resolvers.default import DefaultPathResolver
from lib_melt_config.application.declarative import declare, declare_app, descriptor_from_spec
from lib_melt_config.application.registry import default_readers
from lib_melt_config.domain.errors import SourceSpecError, UnknownFormat
from lib_melt_config.domain.sources import EnvSource, FileSource, LiteralSource, OptionsSource


def test_declared_order_is_precedence_order(tmp_path: Path) -> None:
    path = tmp_path / "app.toml"
    path.write_text("[db]\nport = 6000\nname = 'from-file'\n", encoding="utf-8")
    registry = declare(
        [
            {"kind": "literal", "value": {"db": {"host": "localhost", "port": 5432}}},
            {"kind": "file", "path": str(path), "format": "toml"},
            {"kind": "env", "prefix": "APP"},
            {"kind": "options", "options": {"db-name": "from-cli"}},
        ],
        readers=default_readers(environ={"APP_DB_PORT": "7000"}),
    )
    assert [d.kind for d in registry.layers()] == ["literal", "file", "env", "options"]
    assert registry.merged().to_python() == {"db": {"host": "localhost", "port": "7000", "name": "from-cli"}}


def test_literal_aliases_from_table_sources() -> None:
    descriptor = descriptor_from_spec({"type": "defaults", "source": {"a": 1}})
    assert isinstance(descriptor, LiteralSource)
    assert descriptor.data == {"a": 1}


def test_env_entry_options_are_forwarded() -> None:
    descriptor = descriptor_from_spec({"kind": "env", "prefix": "APP", "separator": "__", "coerce": True})
    assert descriptor == EnvSource("APP", separator="__", coerce=True)


def test_file_entry_defaults_to_optional() -> None:
    descriptor = descriptor_from_spec({"kind": "file", "path": "/nowhere/config.yaml"})
    assert isinstance(descriptor, FileSource)
    assert descriptor.optional is True
    assert descriptor.format == "yaml"


@pytest.mark.parametrize(
    "spec, message",
    [
        ({"kind": "file"}, "'path'"),
        ({"kind": "env"}, "'prefix'"),
        ({"kind": "literal"}, "'value'"),
        ({"kind": "options"}, "'options' or 'argv'"),
        ({"kind": "ldap", "url": "ldap://"}, "unknown kind"),
        ({"path": "x.toml"}, "'kind'"),
        ({"kind": "literal", "value": [1, 2]}, "must be a mapping"),
    ],
)
def test_invalid_entries_are_rejected(spec, message) -> None:
    with pytest.raises(SourceSpecError, match=message):
        declare([spec])


def test_non_mapping_entry_is_rejected() -> None:
    with pytest.raises(SourceSpecError):
        declare(["config.toml"])  # type: ignore[list-item]


def test_unregistered_format_is_rejected_before_reading(tmp_path: Path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")
    with pytest.raises(UnknownFormat):
        declare(
            [
                {"kind": "file", "path": str(broken)},
                {"kind": "file", "path": str(tmp_path / "c.props"), "format": "properties"},
            ]
        )


def test_uninferable_suffix_is_unknown_format(tmp_path: Path) -> None:
    with pytest.raises(UnknownFormat):
        declare([{"kind": "file", "path": str(tmp_path / "settings.txt")}])


def _sandbox(tmp_path: Path) -> DefaultPathResolver:
    return DefaultPathResolver(
        app_name="demo",
        cwd=tmp_path / "project",
        home=tmp_path / "home",
        env={"LIB_MELT_CONFIG_ETC": str(tmp_path / "etc"), "XDG_CONFIG_HOME": str(tmp_path / "xdg")},
        platform="linux",
    )


def write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_declare_app_stack_precedence(tmp_path: Path) -> None:
    write(tmp_path / "etc" / "demo" / "config.toml", "[service]\ntimeout = 5\nretries = 1\nmode = 'system'\n")
    write(tmp_path / "xdg" / "demo" / "config.yaml", "service:\n  timeout: 10\n  mode: user\n")
    write(tmp_path / "project" / "demo.json", '{"service": {"mode": "project"}}')

    registry = declare_app(
        "demo",
        defaults={"service": {"timeout": 1, "endpoint": "https://default"}},
        env={"prefix": "DEMO", "coerce": True},
        options=["--service-retries=3"],
        readers=default_readers(environ={"DEMO_SERVICE_TIMEOUT": "20"}),
        resolver=_sandbox(tmp_path),
    )
    config = registry.config()
    assert config.get("service.timeout") == 20
    assert config.get("service.retries") == "3"
    assert config.get("service.mode") == "project"
    assert config.get("service.endpoint") == "https://default"
    assert [d.kind for d in registry.layers()] == ["literal", "file", "file", "file", "env", "options"]


def test_declare_app_without_env_or_files(tmp_path: Path) -> None:
    registry = declare_app("demo", env=False, readers=default_readers(environ={}), resolver=_sandbox(tmp_path))
    assert registry.layers() == ()
    assert registry.merged().to_python() == {}


def test_declare_app_custom_paths_and_options_mapping(tmp_path: Path) -> None:
    write(tmp_path / "extra" / "config.ini", "[service]\nmode = custom\n")
    write(tmp_path / "single.toml", "[service]\nname = 'single'\n")
    registry = declare_app(
        "demo",
        custom_paths=[str(tmp_path / "extra"), str(tmp_path / "single.toml")],
        env=False,
        options={"service_level": None, "verbose": True},
        readers=default_readers(environ={}),
        resolver=_sandbox(tmp_path),
    )
    assert registry.merged().to_python() == {"service": {"mode": "custom", "name": "single"}, "verbose": True}
    assert isinstance(registry.layers()[-1], OptionsSource)


def test_declare_app_requires_name() -> None:
    with pytest.raises(SourceSpecError):
        declare_app("")
