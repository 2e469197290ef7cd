from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest

from lib_melt_config.domain.errors import UnknownFormat
from lib_melt_config.domain.sources import EnvSource, FileSource, LiteralSource, OptionsSource, format_for_path


@pytest.mark.parametrize(
    "path, expected",
    [
        ("config.toml", "toml"),
        ("/etc/app/config.JSON", "json"),
        ("settings.yml", "yaml"),
        ("settings.yaml", "yaml"),
        ("setup.cfg", "ini"),
        ("app.ini", "ini"),
        (".env", "dotenv"),
        ("prod.env", "dotenv"),
    ],
)
def test_format_for_path(path: str, expected: str) -> None:
    assert format_for_path(path) == expected


def test_unknown_suffix_requires_explicit_format() -> None:
    with pytest.raises(UnknownFormat):
        FileSource("notes.txt")
    assert FileSource("notes.txt", format="TOML").format == "toml"


def test_descriptors_describe_themselves() -> None:
    assert LiteralSource({}, name="defaults").describe() == "literal:defaults"
    assert FileSource("/etc/app.toml").describe() == "file:/etc/app.toml"
    assert EnvSource("APP").describe() == "env:APP"
    assert OptionsSource({}).describe() == "options:cmdline"


def test_descriptors_are_frozen() -> None:
    source = FileSource("/etc/app.toml")
    with pytest.raises(FrozenInstanceError):
        source.path = "/tmp/other.toml"  # type: ignore[misc]


def test_literal_source_copies_data() -> None:
    data = {"db": {"port": 1}}
    source = LiteralSource(data)
    data["db"]["port"] = 2
    assert source.data == {"db": {"port": 1}}


def test_file_source_defaults() -> None:
    source = FileSource("/etc/app.yaml")
    assert (source.kind, source.format, source.optional) == ("file", "yaml", True)


def test_env_source_rejects_empty_separator() -> None:
    with pytest.raises(ValueError):
        EnvSource("APP", separator="")


def test_options_source_freezes_argv() -> None:
    argv = ["--a=1"]
    source = OptionsSource(argv=argv)
    argv.append("--b=2")
    assert source.argv == ("--a=1",)
    assert source.options is None
