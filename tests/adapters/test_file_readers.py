from __future__ import annotations

from pathlib import Path

import pytest

from lib_melt_config.adapters.file_loaders.structured import (
    DotEnvFileReader,
    INIFileReader,
    JSONFileReader,
    TOMLFileReader,
    YAMLFileReader,
)
from lib_melt_config.domain.errors import ParseError, ReadError
from lib_melt_config.domain.sources import FileSource


def write(tmp_path: Path, name: str, content: str) -> FileSource:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return FileSource(str(path))


def test_toml_reader_keeps_types(tmp_path: Path) -> None:
    source = write(tmp_path, "config.toml", "[db]\nport = 5432\nhosts = ['a', 'b']\nssl = true\n")
    assert TOMLFileReader().read(source).to_python() == {"db": {"port": 5432, "hosts": ["a", "b"], "ssl": True}}


def test_toml_datetimes_become_strings(tmp_path: Path) -> None:
    source = write(tmp_path, "config.toml", "released = 2024-05-01\n")
    assert TOMLFileReader().read(source).to_python() == {"released": "2024-05-01"}


def test_json_reader(tmp_path: Path) -> None:
    source = write(tmp_path, "config.json", '{"service": {"timeout": 5, "tags": [null, 1.5]}}')
    assert JSONFileReader().read(source).to_python() == {"service": {"timeout": 5, "tags": [None, 1.5]}}


def test_yaml_reader_normalises_keys(tmp_path: Path) -> None:
    source = write(tmp_path, "config.yaml", "service:\n  1: one\n  true: yes-string\n")
    assert YAMLFileReader().read(source).to_python() == {"service": {"1": "one", "true": "yes-string"}}


def test_empty_yaml_is_empty_mapping(tmp_path: Path) -> None:
    assert YAMLFileReader().read(write(tmp_path, "config.yaml", "")).to_python() == {}


def test_ini_sections_nest_on_dots(tmp_path: Path) -> None:
    source = write(
        tmp_path,
        "config.ini",
        "[DEFAULT]\nregion = eu\n\n[db]\nhost = localhost\n\n[db.replica]\nport = 5433\n",
    )
    assert INIFileReader().read(source).to_python() == {
        "region": "eu",
        "db": {"host": "localhost", "region": "eu", "replica": {"port": "5433", "region": "eu"}},
    }


def test_ini_does_not_interpolate(tmp_path: Path) -> None:
    source = write(tmp_path, "config.ini", "[paths]\nhome = %(root)s/home\n")
    assert INIFileReader().read(source).to_python() == {"paths": {"home": "%(root)s/home"}}


def test_dotenv_reader(tmp_path: Path) -> None:
    source = write(
        tmp_path,
        ".env",
        "# comment\n\nexport SERVICE__TOKEN=\"abc\"\nSERVICE__TIMEOUT=15 # seconds\nNAME='demo'\n",
    )
    assert DotEnvFileReader().read(source).to_python() == {
        "service": {"token": "abc", "timeout": "15"},
        "name": "demo",
    }


@pytest.mark.parametrize(
    "reader, name, content",
    [
        (TOMLFileReader(), "bad.toml", "[db\nport = 1"),
        (JSONFileReader(), "bad.json", "{not json"),
        (YAMLFileReader(), "bad.yaml", "a: [1, 2\n"),
        (INIFileReader(), "bad.ini", "no section header\n"),
        (DotEnvFileReader(), "bad.env", "JUST_A_WORD\n"),
        (JSONFileReader(), "list.json", "[1, 2]"),
        (YAMLFileReader(), "scalar.yaml", "just text\n"),
    ],
)
def test_malformed_documents_raise_parse_error(tmp_path: Path, reader, name: str, content: str) -> None:
    source = write(tmp_path, name, content)
    with pytest.raises(ParseError) as excinfo:
        reader.read(source)
    assert excinfo.value.source == source.describe()


def test_dotenv_leaf_branch_conflict_is_parse_error(tmp_path: Path) -> None:
    source = write(tmp_path, ".env", "DB=sqlite\nDB__HOST=localhost\n")
    with pytest.raises(ParseError, match="line 2"):
        DotEnvFileReader().read(source)


def test_invalid_utf8_is_parse_error(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_bytes(b'{"name": "\xff"}')
    with pytest.raises(ParseError):
        JSONFileReader().read(FileSource(str(path)))


def test_absent_optional_file_is_empty(tmp_path: Path) -> None:
    assert TOMLFileReader().read(FileSource(str(tmp_path / "missing.toml"))).to_python() == {}


def test_absent_required_file_is_read_error(tmp_path: Path) -> None:
    with pytest.raises(ReadError) as excinfo:
        TOMLFileReader().read(FileSource(str(tmp_path / "missing.toml"), optional=False))
    assert not isinstance(excinfo.value, ParseError)


def test_directory_is_read_error(tmp_path: Path) -> None:
    folder = tmp_path / "config.toml"
    folder.mkdir()
    with pytest.raises(ReadError):
        TOMLFileReader().read(FileSource(str(folder)))


def test_path_through_a_file_is_treated_as_absent(tmp_path: Path) -> None:
    plain = tmp_path / "plain.txt"
    plain.write_text("x", encoding="utf-8")
    nested = str(plain / "config.toml")
    assert TOMLFileReader().read(FileSource(nested)).to_python() == {}
    with pytest.raises(ReadError):
        TOMLFileReader().read(FileSource(nested, optional=False))


def test_unreadable_path_is_read_error(tmp_path: Path) -> None:
    too_long = tmp_path / ("a" * 5000 + ".toml")
    with pytest.raises(ReadError) as excinfo:
        TOMLFileReader().read(FileSource(str(too_long)))
    assert not isinstance(excinfo.value, ParseError)


def test_dotenv_quoted_value_with_trailing_comment(tmp_path: Path) -> None:
    source = write(tmp_path, ".env", "TOKEN=\"abc\" # secret\nHASH='a # b' # note\nPLAIN=x # y\n")
    assert DotEnvFileReader().read(source).to_python() == {"token": "abc", "hash": "a # b", "plain": "x"}


def test_yaml_keys_colliding_after_conversion_are_parse_errors(tmp_path: Path) -> None:
    source = write(tmp_path, "config.yaml", '1: a\n"1": b\n')
    with pytest.raises(ParseError):
        YAMLFileReader().read(source)


def test_yaml_merge_keys_can_be_overridden(tmp_path: Path) -> None:
    source = write(tmp_path, "config.yaml", "base: &base\n  port: 1\n  host: h\nprod:\n  <<: *base\n  port: 2\n")
    assert YAMLFileReader().read(source).to_python()["prod"] == {"port": 2, "host": "h"}
