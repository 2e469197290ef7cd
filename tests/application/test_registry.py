"""Layer and reader registry tests.

The scenarios cover precedence by registration order, read-time failures, the
merge cache, and plugging in a new format without touching the engine.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from lib_melt_config.application.registry import LayerRegistry, ReaderRegistry, default_readers
from lib_melt_config.domain.errors import ParseError, ReadError, RegistryFrozen, UnknownFormat
from lib_melt_config.domain.sources import FileSource, LiteralSource
from lib_melt_config.domain.value import Value


class UpperKeysReader:
    """Toy plugin reading ``key: value`` lines and upper-casing keys."""

    def read(self, descriptor: FileSource) -> Value:
        text = Path(descriptor.path).read_text(encoding="utf-8")
        pairs = [line.split(":", 1) for line in text.splitlines() if line.strip()]
        return Value.from_python({key.strip().upper(): value.strip() for key, value in pairs})


def make_registry(environ: dict[str, str] | None = None) -> LayerRegistry:
    return LayerRegistry(readers=default_readers(environ=environ or {}))


def test_scenario_literal_literal_env() -> None:
    registry = make_registry({"APP_DB_HOST": "prodhost", "UNRELATED": "x"})
    registry.add_literal({"db": {"host": "localhost", "port": 5432}})
    registry.add_literal({"db": {"port": 5433}})
    registry.add_env("APP")
    assert registry.merged().to_python() == {"db": {"host": "prodhost", "port": 5433}}


def test_first_registered_layer_has_lowest_precedence() -> None:
    registry = make_registry()
    registry.add_literal({"key": "first"}).add_literal({"key": "second"})
    assert registry.config().get("key") == "second"


def test_layers_exposes_descriptors_in_order() -> None:
    registry = make_registry()
    first = LiteralSource({"a": 1}, name="one")
    second = LiteralSource({"b": 2}, name="two")
    registry.add(first)
    registry.add(second)
    assert registry.layers() == (first, second)
    assert len(registry) == 2


def test_merged_is_cached_until_next_add() -> None:
    registry = make_registry()
    registry.add_literal({"a": 1})
    first = registry.merged()
    assert registry.merged() is first
    registry.add_literal({"b": 2})
    second = registry.merged()
    assert second is not first
    assert second.to_python() == {"a": 1, "b": 2}


def test_empty_registry_merges_to_empty_mapping() -> None:
    assert make_registry().merged().to_python() == {}


def test_absent_file_contributes_empty_mapping(tmp_path: Path) -> None:
    registry = make_registry()
    registry.add_literal({"a": 1})
    layer = registry.add(FileSource(str(tmp_path / "missing.toml")))
    assert layer.value.to_python() == {}
    assert registry.merged().to_python() == {"a": 1}


def test_required_absent_file_is_read_error(tmp_path: Path) -> None:
    registry = make_registry()
    with pytest.raises(ReadError):
        registry.add_file(str(tmp_path / "missing.toml"), optional=False)
    assert registry.layers() == ()


def test_parse_error_aborts_add(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    registry = make_registry()
    registry.add_literal({"a": 1})
    with pytest.raises(ParseError) as excinfo:
        registry.add_file(str(path))
    assert str(path) in str(excinfo.value)
    assert len(registry) == 1


def test_unknown_format_is_rejected(tmp_path: Path) -> None:
    registry = make_registry()
    with pytest.raises(UnknownFormat):
        registry.add(FileSource(str(tmp_path / "config.txt"), format="properties"))


def test_plugin_reader_for_new_format(tmp_path: Path) -> None:
    path = tmp_path / "settings.kv"
    path.write_text("name: demo\nmode: fast\n", encoding="utf-8")
    readers = default_readers(environ={})
    readers.register("kv", UpperKeysReader())
    registry = LayerRegistry(readers=readers)
    registry.add_literal({"NAME": "default", "LEVEL": 1})
    registry.add(FileSource(str(path), format="kv"))
    assert registry.merged().to_python() == {"NAME": "demo", "LEVEL": 1, "MODE": "fast"}


def test_reader_registry_freezes_after_first_read() -> None:
    readers = default_readers(environ={})
    registry = LayerRegistry(readers=readers)
    registry.add_literal({})
    assert readers.frozen
    with pytest.raises(RegistryFrozen):
        readers.register("kv", UpperKeysReader())


def test_reader_registry_rejects_non_readers() -> None:
    with pytest.raises(TypeError):
        ReaderRegistry().register("bad", object())  # type: ignore[arg-type]


def test_config_carries_provenance() -> None:
    registry = make_registry({"APP_DB_HOST": "prodhost"})
    registry.add_literal({"db": {"host": "localhost", "port": 5432}}, name="defaults")
    registry.add_env("APP")
    config = registry.config()
    assert config.origin("db.host")["source"] == "env:APP"
    assert config.origin("db.port")["source"] == "literal:defaults"
    assert registry.provenance()["db.port"]["layer"] == 0


def test_literal_source_is_copied_at_registration() -> None:
    data = {"db": {"host": "localhost"}}
    registry = make_registry()
    registry.add_literal(data)
    data["db"]["host"] = "mutated"
    assert registry.config().get("db.host") == "localhost"
