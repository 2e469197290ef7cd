"""Public package surface for ``lib_melt_config``.

Hierarchical configuration merging: literal defaults, TOML/JSON/YAML/INI/dotenv
files, environment variables, and command-line options are read into value
trees and deep-merged with later layers taking precedence.
"""

from __future__ import annotations

from .adapters.env.default import EnvReader, default_env_prefix
from .adapters.file_loaders.structured import (
    DotEnvFileReader,
    INIFileReader,
    JSONFileReader,
    TOMLFileReader,
    YAMLFileReader,
)
from .adapters.literal.default import LiteralReader
from .adapters.options.default import OptionsReader
from .adapters.path_resolvers.default import DefaultPathResolver
from .application.declarative import declare, declare_app
from .application.merge import merge_all, merge_layers, merge_values
from .application.ports import Reader
from .application.registry import LayerRegistry, ReaderRegistry, default_readers
from .core import read_app_config, read_config
from .domain.config import EMPTY_CONFIG, Config, SourceInfo
from .domain.errors import (
    ConfigError,
    NotFound,
    ParseError,
    ReadError,
    RegistryFrozen,
    SourceSpecError,
    TypeMismatch,
    UnknownFormat,
)
from .domain.sources import EnvSource, FileSource, Layer, LiteralSource, OptionsSource, SourceDescriptor
from .domain.value import EMPTY_MAPPING, Value, ValueKind
from .observability import bind_trace_id, get_logger

__all__ = [
    "Config",
    "ConfigError",
    "DefaultPathResolver",
    "DotEnvFileReader",
    "EMPTY_CONFIG",
    "EMPTY_MAPPING",
    "EnvReader",
    "EnvSource",
    "FileSource",
    "INIFileReader",
    "JSONFileReader",
    "Layer",
    "LayerRegistry",
    "LiteralReader",
    "LiteralSource",
    "NotFound",
    "OptionsReader",
    "OptionsSource",
    "ParseError",
    "ReadError",
    "Reader",
    "ReaderRegistry",
    "RegistryFrozen",
    "SourceDescriptor",
    "SourceInfo",
    "SourceSpecError",
    "TOMLFileReader",
    "TypeMismatch",
    "UnknownFormat",
    "Value",
    "ValueKind",
    "YAMLFileReader",
    "bind_trace_id",
    "declare",
    "declare_app",
    "default_env_prefix",
    "default_readers",
    "get_logger",
    "merge_all",
    "merge_layers",
    "merge_values",
    "read_app_config",
    "read_config",
]
