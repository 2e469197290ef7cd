from __future__ import annotations

from lib_melt_config.domain.errors import (
    ConfigError,
    NotFound,
    ParseError,
    ReadError,
    RegistryFrozen,
    SourceSpecError,
    TypeMismatch,
    UnknownFormat,
)


def test_error_hierarchy() -> None:
    for error in (ReadError, ParseError, UnknownFormat, SourceSpecError, RegistryFrozen, NotFound, TypeMismatch):
        assert issubclass(error, ConfigError)
    assert issubclass(ParseError, ReadError)


def test_query_errors_follow_builtin_idioms() -> None:
    assert isinstance(NotFound("a.b"), KeyError)
    assert isinstance(TypeMismatch("a", "string", "number"), TypeError)


def test_parse_error_names_source_and_detail() -> None:
    error = ParseError("file:/etc/app.json", "Expecting value: line 1 column 1")
    assert error.source == "file:/etc/app.json"
    assert error.detail == "Expecting value: line 1 column 1"
    assert str(error) == "Failed to parse file:/etc/app.json: Expecting value: line 1 column 1"


def test_not_found_message_is_readable() -> None:
    assert str(NotFound("db.user")) == "Configuration path not found: db.user"


def test_type_mismatch_message() -> None:
    error = TypeMismatch("db.port", "string", "number")
    assert str(error) == "Configuration path db.port holds number, expected string"
