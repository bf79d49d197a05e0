"""Configuration tables for the HTML renderer (``[output.html]``)."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, ClassVar

_Parser = Callable[[Any, str], Any]


def _key(name: str) -> str:
    return name.replace("_", "-")


def _expect_bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"invalid type for `{key}`: expected a boolean, got {value!r}")
    return value


def _unsigned(bits: int) -> _Parser:
    limit = 1 << bits

    def parse(value: Any, key: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"invalid type for `{key}`: expected an integer, got {value!r}")
        if not 0 <= value < limit:
            raise ValueError(f"invalid value for `{key}`: {value} is out of range for u{bits}")
        return value

    return parse


def _expect_str(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"invalid type for `{key}`: expected a string, got {value!r}")
    return value


def _expect_path(value: Any, key: str) -> Path:
    return Path(_expect_str(value, key))


def _path_list(value: Any, key: str) -> list[Path]:
    if not isinstance(value, list):
        raise ValueError(f"invalid type for `{key}`: expected a sequence, got {value!r}")
    return [_expect_path(item, key) for item in value]


def _str_map(value: Any, key: str) -> dict[str, str]:
    if not isinstance(value, Mapping):
        raise ValueError(f"invalid type for `{key}`: expected a map, got {value!r}")
    return {_expect_str(k, key): _expect_str(v, key) for k, v in value.items()}


def _optional(parse: _Parser) -> _Parser:
    def parse_optional(value: Any, key: str) -> Any:
        return None if value is None else parse(value, key)

    return parse_optional


def _table(cls: type) -> _Parser:
    return lambda value, key: cls.from_dict(value)


def _dump(value: Any) -> Any:
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, list):
        return [_dump(item) for item in value]
    if isinstance(value, dict):
        return {k: _dump(v) for k, v in value.items()}
    if isinstance(value, _Table):
        return value.to_dict()
    return value


def _setting(parse: _Parser, default: Any = None, *, factory: Callable[[], Any] | None = None) -> Any:
    if factory is not None:
        return field(default_factory=factory, metadata={"parse": parse})
    return field(default=default, metadata={"parse": parse})


class _Table:
    """Mapping between a dataclass and a kebab-case configuration table."""

    _required: ClassVar[frozenset[str]] = frozenset()

    @classmethod
    def _from_table(cls, data):
        if not isinstance(data, Mapping):
            raise ValueError(f"invalid type for {cls.__name__}: expected a table, got {data!r}")
        values = {}
        for f in fields(cls):
            key = _key(f.name)
            if key in data:
                values[f.name] = f.metadata["parse"](data[key], key)
            elif f.name in cls._required:
                raise ValueError(f"missing field `{key}` in {cls.__name__}")
        return cls(**values)

    def _to_table(self):
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                result[_key(f.name)] = _dump(value)
        return result


@dataclass
class Print(_Table):
    """How to render the print icon, print.html and print.css."""

    _required: ClassVar[frozenset[str]] = frozenset({"enable"})

    enable: bool = _setting(_expect_bool, True)

    @classmethod
    def from_dict(cls, data):
        """Build from a table; ``enable`` must be given."""
        return cls._from_table(data)

    def to_dict(self):
        """Return the table form."""
        return self._to_table()


@dataclass
class Fold(_Table):
    """How chapters of the sidebar are folded."""

    enable: bool = _setting(_expect_bool, False)
    level: int = _setting(_unsigned(8), 0)

    @classmethod
    def from_dict(cls, data):
        """Build from a table, using defaults for missing keys."""
        return cls._from_table(data)

    def to_dict(self):
        """Return the table form."""
        return self._to_table()


@dataclass
class Playground(_Table):
    """How the HTML renderer handles playground snippets."""

    editable: bool = _setting(_expect_bool, False)
    copyable: bool = _setting(_expect_bool, True)
    copy_js: bool = _setting(_expect_bool, True)
    line_numbers: bool = _setting(_expect_bool, False)

    @classmethod
    def from_dict(cls, data):
        """Build from a table, using defaults for missing keys."""
        return cls._from_table(data)

    def to_dict(self):
        """Return the table form."""
        return self._to_table()


@dataclass
class Search(_Table):
    """Settings of the search feature of the HTML renderer."""

    enable: bool = _setting(_expect_bool, True)
    limit_results: int = _setting(_unsigned(32), 30)
    teaser_word_count: int = _setting(_unsigned(32), 30)
    use_boolean_and: bool = _setting(_expect_bool, False)
    boost_title: int = _setting(_unsigned(8), 2)
    boost_hierarchy: int = _setting(_unsigned(8), 1)
    boost_paragraph: int = _setting(_unsigned(8), 1)
    expand: bool = _setting(_expect_bool, True)
    heading_split_level: int = _setting(_unsigned(8), 3)
    copy_js: bool = _setting(_expect_bool, True)

    @classmethod
    def from_dict(cls, data):
        """Build from a table, using defaults for missing keys."""
        return cls._from_table(data)

    def to_dict(self):
        """Return the table form."""
        return self._to_table()


@dataclass
class HtmlConfig(_Table):
    """Configuration of the HTML renderer."""

    theme: Path | None = _setting(_optional(_expect_path))
    default_theme: str | None = _setting(_optional(_expect_str))
    preferred_dark_theme: str | None = _setting(_optional(_expect_str))
    curly_quotes: bool = _setting(_expect_bool, False)
    mathjax_support: bool = _setting(_expect_bool, False)
    copy_fonts: bool = _setting(_expect_bool, True)
    google_analytics: str | None = _setting(_optional(_expect_str))
    additional_css: list[Path] = _setting(_path_list, factory=list)
    additional_js: list[Path] = _setting(_path_list, factory=list)
    fold: Fold = _setting(_table(Fold), factory=Fold)
    playground: Playground = _setting(_table(Playground), factory=Playground)
    print: Print = _setting(_table(Print), factory=Print)
    no_section_label: bool = _setting(_expect_bool, False)
    search: Search | None = _setting(_optional(_table(Search)))
    git_repository_url: str | None = _setting(_optional(_expect_str))
    git_repository_icon: str | None = _setting(_optional(_expect_str))
    input_404: str | None = _setting(_optional(_expect_str))
    site_url: str | None = _setting(_optional(_expect_str))
    cname: str | None = _setting(_optional(_expect_str))
    edit_url_template: str | None = _setting(_optional(_expect_str))
    livereload_url: str | None = _setting(_optional(_expect_str))
    redirect: dict[str, str] = _setting(_str_map, factory=dict)

    @classmethod
    def from_dict(cls, data):
        """Build from an ``[output.html]`` table; ``playpen`` is accepted for ``playground``."""
        if isinstance(data, Mapping) and "playpen" in data:
            if "playground" in data:
                raise ValueError("duplicate field `playground` (also given as `playpen`)")
            data = {("playground" if k == "playpen" else k): v for k, v in data.items()}
        return cls._from_table(data)

    def to_dict(self):
        """Return the table form, leaving out unset optional values."""
        return self._to_table()

    def theme_dir(self, root):
        """Return the theme directory under ``root``, ``theme`` when unset."""
        return Path(root) / (self.theme if self.theme is not None else "theme")