"""Book configuration: an in-memory form of ``book.toml``."""

from __future__ import annotations

import copy
import json
import logging
import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from pathlib import Path
from typing import Any

import tomli_w

from bookpress.html_config import (
    HtmlConfig,
    _Table,
    _expect_bool,
    _expect_path,
    _expect_str,
    _optional,
    _setting,
)

logger = logging.getLogger(__name__)

_ENV_PREFIX = "MDBOOK_"
_LEGACY_ITEMS = ("title", "authors", "source", "description", "output.html.destination")


class ConfigError(Exception):
    """Raised when configuration cannot be loaded, represented or converted."""


class RustEdition(Enum):
    """Rust edition used for code in the book."""

    E2018 = "2018"
    E2015 = "2015"


def _str_list(value: Any, key: str) -> list[str]:
    if not isinstance(value, list):
        raise ValueError(f"invalid type for `{key}`: expected a sequence, got {value!r}")
    return [_expect_str(item, key) for item in value]


def _edition(value: Any, key: str) -> RustEdition:
    if isinstance(value, str):
        for edition in RustEdition:
            if edition.value == value:
                return edition
    raise ValueError(f"unknown variant {value!r} for `{key}`, expected `2018` or `2015`")


@dataclass
class BookConfig(_Table):
    """Metadata about the book, needed to load it from disk."""

    title: str | None = _setting(_optional(_expect_str))
    authors: list[str] = _setting(_str_list, factory=list)
    description: str | None = _setting(_optional(_expect_str))
    src: Path = _setting(_expect_path, factory=lambda: Path("src"))
    multilingual: bool = _setting(_expect_bool, False)
    language: str | None = _setting(_optional(_expect_str), "en")

    @classmethod
    def from_dict(cls, data):
        """Build from a ``[book]`` table, using defaults for missing keys."""
        return cls._from_table(data)

    def to_dict(self):
        """Return the table form, leaving out unset optional values."""
        return self._to_table()


@dataclass
class BuildConfig(_Table):
    """Settings of the build procedure."""

    build_dir: Path = _setting(_expect_path, factory=lambda: Path("book"))
    create_missing: bool = _setting(_expect_bool, True)
    use_default_preprocessors: bool = _setting(_expect_bool, True)

    @classmethod
    def from_dict(cls, data):
        """Build from a ``[build]`` table, using defaults for missing keys."""
        return cls._from_table(data)

    def to_dict(self):
        """Return the table form."""
        return self._to_table()


@dataclass
class RustConfig(_Table):
    """Settings for Rust language support."""

    edition: RustEdition | None = _setting(_optional(_edition))

    @classmethod
    def from_dict(cls, data):
        """Build from a ``[rust]`` table, using defaults for missing keys."""
        return cls._from_table(data)

    def to_dict(self):
        """Return the table form, leaving out an unset edition."""
        return {} if self.edition is None else {"edition": self.edition.value}


def _to_value(value: Any) -> Any:
    """Convert ``value`` into something a TOML document can hold."""
    if isinstance(value, Enum):
        return _to_value(value.value)
    if isinstance(value, (bool, int, float, str, datetime, date, time)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, _Table):
        return _to_value(value.to_dict())
    if isinstance(value, Mapping):
        result = {}
        for k, v in value.items():
            if isinstance(k, Path):
                k = str(k)
            if not isinstance(k, str):
                raise ConfigError(f"Unable to represent the item as a TOML value: key {k!r}")
            result[k] = _to_value(v)
        return result
    if isinstance(value, (list, tuple)):
        return [_to_value(item) for item in value]
    raise ConfigError(f"Unable to represent the item as a TOML value: {value!r}")


def _read(table: Any, key: str) -> Any:
    head, dot, tail = key.partition(".")
    if not isinstance(table, dict) or head not in table:
        return None
    return _read(table[head], tail) if dot else table[head]


def _insert(table: dict, key: str, value: Any) -> None:
    head, dot, tail = key.partition(".")
    if not dot:
        table[key] = value
        return
    child = table.get(head)
    if not isinstance(child, dict):
        child = table[head] = {}
    _insert(child, tail, value)


def _delete(table: dict, key: str) -> Any:
    parent, _, name = key.rpartition(".")
    container = _read(table, parent) if parent else table
    if isinstance(container, dict):
        return container.pop(name, None)
    return None


def _update_table(obj: _Table, key: str, value: Any) -> _Table:
    """Return ``obj`` with ``key`` set by round-tripping through its table form."""
    raw = obj.to_dict()
    _insert(raw, key, value)
    try:
        return type(obj).from_dict(raw)
    except ValueError:
        return obj


def _sorted(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: _sorted(value[k]) for k in sorted(value)}
    if isinstance(value, list):
        return [_sorted(item) for item in value]
    return value


def _deserialize(value: Any, kind: Any) -> Any:
    if kind is None:
        return copy.deepcopy(value)
    if isinstance(kind, type) and hasattr(kind, "from_dict"):
        return kind.from_dict(value)
    if kind is Path:
        return Path(_expect_str(value, "value"))
    if kind is bool:
        return _expect_bool(value, "value")
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"expected an integer, got {value!r}")
        return value
    if kind is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"expected a float, got {value!r}")
        return float(value)
    if kind in (str, list, dict):
        if not isinstance(value, kind):
            raise ValueError(f"expected {kind.__name__}, got {value!r}")
        return copy.deepcopy(value)
    return kind(copy.deepcopy(value))


def parse_env(key):
    """Turn an ``MDBOOK_`` environment variable name into a dotted config key."""
    if not key.startswith(_ENV_PREFIX):
        return None
    return key[len(_ENV_PREFIX):].lower().replace("__", ".").replace("_", "-")


def is_legacy_format(table):
    """Tell whether a raw table uses the old top-level layout."""
    return any(_read(table, item) is not None for item in _LEGACY_ITEMS)


@dataclass
class Config:
    """The whole book configuration, with free-form tables kept alongside."""

    book: BookConfig = field(default_factory=BookConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    rust: RustConfig = field(default_factory=RustConfig)
    _rest: dict = field(default_factory=dict, init=False, repr=False)

    @classmethod
    def from_str(cls, src):
        """Load a configuration from TOML text."""
        try:
            return cls.from_dict(tomllib.loads(src))
        except (tomllib.TOMLDecodeError, ConfigError) as err:
            raise ConfigError(f"Invalid configuration file: {err}") from err

    @classmethod
    def from_disk(cls, config_file):
        """Load a configuration file from disk."""
        try:
            with open(config_file, "rb") as handle:
                data = handle.read()
        except OSError as err:
            raise ConfigError(f"Unable to open the configuration file: {err}") from err
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as err:
            raise ConfigError(f"Couldn't read the file: {err}") from err
        return cls.from_str(text)

    @classmethod
    def from_dict(cls, data):
        """Build a configuration from a parsed table, accepting the legacy layout."""
        if not isinstance(data, Mapping):
            raise ConfigError("A config file should always be a toml table")
        table = copy.deepcopy(dict(data))
        if is_legacy_format(table):
            logger.warning("It looks like you are using the legacy book.toml format.")
            logger.warning(
                "Move top level entries like `title`, `authors` and `description` under "
                "`[book]`, and `destination` from `[output.html]` to `build-dir` under `[build]`."
            )
            return cls._from_legacy(table)
        try:
            book = BookConfig.from_dict(table.pop("book")) if "book" in table else BookConfig()
            build = BuildConfig.from_dict(table.pop("build")) if "build" in table else BuildConfig()
            rust = RustConfig.from_dict(table.pop("rust")) if "rust" in table else RustConfig()
        except ValueError as err:
            raise ConfigError(str(err)) from err
        cfg = cls(book=book, build=build, rust=rust)
        cfg._rest = table
        return cfg

    @classmethod
    def _from_legacy(cls, table: dict) -> Config:
        cfg = cls()
        legacy = (
            ("title", "title", _optional(_expect_str)),
            ("authors", "authors", _str_list),
            ("source", "src", _expect_path),
            ("description", "description", _optional(_expect_str)),
        )
        for key, attr, parse in legacy:
            if key in table:
                raw = table.pop(key)
                try:
                    setattr(cfg.book, attr, parse(raw, key))
                except ValueError:
                    pass
        destination = _delete(table, "output.html.destination")
        if isinstance(destination, str):
            cfg.build.build_dir = Path(destination)
        cfg._rest = table
        return cfg

    def to_dict(self):
        """Return the table form written to ``book.toml``."""
        table = copy.deepcopy(self._rest)
        table["book"] = _to_value(self.book)
        if self.build != BuildConfig():
            table["build"] = _to_value(self.build)
        if self.rust != RustConfig():
            table["rust"] = _to_value(self.rust)
        return table

    def to_toml(self):
        """Serialize to TOML text with keys in sorted order."""
        return tomli_w.dumps(_sorted(self.to_dict()))

    def update_from_env(self, environ=None):
        """Apply overrides from ``MDBOOK_`` environment variables.

        Values are parsed as JSON where possible and used as strings otherwise.
        """
        environ = os.environ if environ is None else environ
        logger.debug("Updating the config from environment variables")
        for name, raw in list(environ.items()):
            key = parse_env(name)
            if key is None:
                continue
            logger.debug("%s => %s", key, raw)
            try:
                value = json.loads(raw)
            except ValueError:
                value = raw
            if key in ("book", "build") and isinstance(value, dict):
                for k, v in value.items():
                    self.set(f"{key}.{k}", v)
                return
            self.set(key, value)

    def get(self, key):
        """Fetch an item from the free-form tables by dotted key, or None."""
        return _read(self._rest, key)

    def get_deserialized_opt(self, name, kind=None):
        """Fetch an item and convert it to ``kind``; None when it is absent."""
        value = self.get(name)
        if value is None:
            return None
        try:
            return _deserialize(value, kind)
        except (ValueError, TypeError) as err:
            raise ConfigError(f"Couldn't deserialize the value: {err}") from err

    def get_deserialized(self, name, kind=None):
        """Like ``get_deserialized_opt`` but raise when the key is missing."""
        value = self.get_deserialized_opt(name, kind)
        if value is None:
            raise ConfigError(f'Key not found, "{name}"')
        return value

    def set(self, index, value):
        """Set a dotted key, replacing whatever lies along the way."""
        value = _to_value(value)
        if index.startswith("book."):
            self.book = _update_table(self.book, index[len("book."):], value)
        elif index.startswith("build."):
            self.build = _update_table(self.build, index[len("build."):], value)
        else:
            _insert(self._rest, index, value)

    def get_renderer(self, index):
        """Return the ``[output.<index>]`` table, if there is one."""
        value = self.get(f"output.{index}")
        return value if isinstance(value, dict) else None

    def get_preprocessor(self, index):
        """Return the ``[preprocessor.<index>]`` table, if there is one."""
        value = self.get(f"preprocessor.{index}")
        return value if isinstance(value, dict) else None

    def html_config(self):
        """Return the HTML renderer's settings, or None if absent or invalid."""
        try:
            return self.get_deserialized_opt("output.html", HtmlConfig)
        except ConfigError as err:
            logger.error("Parsing configuration [output.html]: %s", err)
            return None