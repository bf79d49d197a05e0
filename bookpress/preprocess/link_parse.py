"""Find and parse ``{{#...}}`` helper links in chapter text."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar, Union

logger = logging.getLogger(__name__)

ESCAPE_CHAR = "\\"

_USIZE_LIMIT = 1 << 64
_USIZE = re.compile(r"\+?[0-9]+")

_LINK = re.compile(
    r"""
    \\\{\{\#.*\}\}      # escaped link
    |
    \{\{\s*             # opening braces and whitespace
    \#([a-zA-Z0-9_]+)   # link type
    \s+                 # separating whitespace
    ([^}]+)             # target path and space separated properties
    \}\}                # closing braces
    """,
    re.VERBOSE,
)

T = TypeVar("T")


@dataclass(frozen=True)
class LineRange:
    """A zero-based, half-open range of lines; ``None`` leaves a side open."""

    start: int | None = None
    end: int | None = None

    def slice(self, items: Sequence[T]) -> Sequence[T]:
        """Return the part of ``items`` covered by this range."""
        return items[self.start:self.end]


RangeOrAnchor = Union[LineRange, str]
"""Either a line range or the name of an anchor."""


@dataclass(frozen=True)
class Escaped:
    """A ``\\{{#...}}`` link, rendered as the text without the backslash."""


@dataclass(frozen=True)
class Include:
    """``{{#include path[:range-or-anchor]}}``."""

    path: Path
    range_or_anchor: RangeOrAnchor


@dataclass(frozen=True)
class RustdocInclude:
    """``{{#rustdoc_include path[:range-or-anchor]}}``."""

    path: Path
    range_or_anchor: RangeOrAnchor


@dataclass(frozen=True)
class Playground:
    """``{{#playground path attr...}}``."""

    path: Path
    attrs: tuple[str, ...] = ()


@dataclass(frozen=True)
class Title:
    """``{{#title text}}``, which overrides the chapter title."""

    title: str


LinkType = Union[Escaped, Include, RustdocInclude, Playground, Title]


@dataclass(frozen=True)
class Link:
    """A helper link found in a piece of text."""

    start_index: int
    end_index: int
    link_type: LinkType
    link_text: str


def _parse_usize(text: str) -> int | None:
    if _USIZE.fullmatch(text) is None:
        return None
    value = int(text)
    return value if value < _USIZE_LIMIT else None


def parse_range_or_anchor(parts):
    """Parse the ``start:end`` or ``anchor`` part after an include path.

    Line numbers are one-based in the text and zero-based in the result.
    """
    pieces = iter((parts or "").split(":", 2))
    first = next(pieces, None)

    start: int | None
    number = _parse_usize(first) if first is not None else None
    if number is not None:
        start = max(number - 1, 0)
    elif first is None or first == "":
        start = None
    else:
        return first

    end_text = next(pieces, None)
    end = _parse_usize(end_text) if end_text is not None else None

    if start is not None:
        if end_text is None:
            return LineRange(start, start + 1)
        return LineRange(start, end)
    return LineRange(None, end)


def _split_path(path: str) -> tuple[Path, RangeOrAnchor]:
    target, sep, rest = path.partition(":")
    return Path(target), parse_range_or_anchor(rest if sep else None)


def parse_include_path(path):
    """Parse the argument of an ``include`` link."""
    target, range_or_anchor = _split_path(path)
    return Include(target, range_or_anchor)


def parse_rustdoc_include_path(path):
    """Parse the argument of a ``rustdoc_include`` link."""
    target, range_or_anchor = _split_path(path)
    return RustdocInclude(target, range_or_anchor)


def _link_type(match: re.Match[str]) -> LinkType | None:
    typ, rest = match.group(1), match.group(2)
    if typ is not None and rest is not None:
        if typ == "title":
            return Title(rest)
        words = rest.split()
        if not words:
            return None
        file_arg, props = words[0], tuple(words[1:])
        if typ == "include":
            return parse_include_path(file_arg)
        if typ == "playground":
            return Playground(Path(file_arg), props)
        if typ == "playpen":
            logger.warning(
                "the {{#playpen}} expression has been renamed to {{#playground}}, "
                "please update your book to use the new name"
            )
            return Playground(Path(file_arg), props)
        if typ == "rustdoc_include":
            return parse_rustdoc_include_path(file_arg)
        return None
    if typ is None and rest is None and match.group(0).startswith(ESCAPE_CHAR):
        return Escaped()
    return None


def find_links(contents):
    """Yield every recognised helper link in ``contents``, in order."""
    for match in _LINK.finditer(contents):
        link_type = _link_type(match)
        if link_type is not None:
            yield Link(match.start(), match.end(), link_type, match.group(0))


def _iter_links(contents: str) -> Iterator[Link]:
    return find_links(contents)