"""Expand ``{{#include}}``, ``{{#playground}}`` and related helpers in chapters."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from bookpress.preprocess.base import Preprocessor
from bookpress.preprocess.link_parse import (
    Escaped,
    Include,
    LineRange,
    Playground,
    RustdocInclude,
    Title,
    find_links,
)

logger = logging.getLogger(__name__)

MAX_LINK_NESTED_DEPTH = 10

_ANCHOR_START = re.compile(r"ANCHOR:\s*(?P<anchor_name>[\w_-]+)")
_ANCHOR_END = re.compile(r"ANCHOR_END:\s*(?P<anchor_name>[\w_-]+)")


def _lines(text: str) -> list[str]:
    """Split into lines on ``\\n``, dropping a trailing ``\\r`` and a final empty line."""
    if not text:
        return []
    parts = text.split("\n")
    if parts[-1] == "":
        parts.pop()
    return [part[:-1] if part.endswith("\r") else part for part in parts]


def _contains(line_range: LineRange, index: int) -> bool:
    if line_range.start is not None and index < line_range.start:
        return False
    return line_range.end is None or index < line_range.end


def _anchor_name(pattern: re.Pattern[str], line: str) -> str | None:
    match = pattern.search(line)
    return match.group("anchor_name") if match else None


def _take_lines(text: str, line_range: LineRange) -> str:
    return "\n".join(line_range.slice(_lines(text)))


def _take_anchored_lines(text: str, anchor: str) -> str:
    retained = []
    found = False
    for line in _lines(text):
        if found:
            end_name = _anchor_name(_ANCHOR_END, line)
            if end_name is not None:
                if end_name == anchor:
                    break
            elif _ANCHOR_START.search(line) is None:
                retained.append(line)
        elif _anchor_name(_ANCHOR_START, line) == anchor:
            found = True
    return "\n".join(retained)


def _take_rustdoc_include_lines(text: str, line_range: LineRange) -> str:
    return "\n".join(
        line if _contains(line_range, index) else f"# {line}"
        for index, line in enumerate(_lines(text))
    )


def _take_rustdoc_include_anchored_lines(text: str, anchor: str) -> str:
    output = []
    within = False
    for line in _lines(text):
        if within:
            end_name = _anchor_name(_ANCHOR_END, line)
            if end_name is not None:
                if end_name == anchor:
                    within = False
            elif _ANCHOR_START.search(line) is None:
                output.append(line)
        else:
            start_name = _anchor_name(_ANCHOR_START, line)
            if start_name is not None:
                if start_name == anchor:
                    within = True
            elif _ANCHOR_END.search(line) is None:
                output.append(f"# {line}")
    return "\n".join(output)


def _read(link, target: Path) -> str:
    try:
        return target.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as err:
        raise OSError(f"Could not read file for link {link.link_text} ({target})") from err


def render_link(link, base):
    """Return the text that replaces ``link``, reading files relative to ``base``.

    A title link renders as nothing; the caller picks up the new title.
    Raises OSError when a referenced file cannot be read.
    """
    base = Path(base)
    kind = link.link_type
    if isinstance(kind, Escaped):
        return link.link_text[1:]
    if isinstance(kind, Include):
        text = _read(link, base / kind.path)
        if isinstance(kind.range_or_anchor, LineRange):
            return _take_lines(text, kind.range_or_anchor)
        return _take_anchored_lines(text, kind.range_or_anchor)
    if isinstance(kind, RustdocInclude):
        text = _read(link, base / kind.path)
        if isinstance(kind.range_or_anchor, LineRange):
            return _take_rustdoc_include_lines(text, kind.range_or_anchor)
        return _take_rustdoc_include_anchored_lines(text, kind.range_or_anchor)
    if isinstance(kind, Playground):
        contents = _read(link, base / kind.path)
        ftype = "rust," if kind.attrs else "rust"
        if not contents.endswith("\n"):
            contents += "\n"
        return f"```{ftype}{','.join(kind.attrs)}\n{contents}```\n"
    if isinstance(kind, Title):
        return ""
    raise TypeError(f"unknown link type {kind!r}")


def _relative_path(kind, base: Path) -> Path | None:
    if isinstance(kind, (Include, Playground, RustdocInclude)):
        return (base / kind.path).parent
    return None


def replace_all(s, path, source, depth, chapter_title):
    """Expand every helper link in ``s``, recursing into included files.

    Returns the expanded text and the (possibly overridden) chapter title.
    Links that fail to render are left in place as written.
    """
    path = Path(path)
    source = Path(source)
    pieces = []
    previous_end = 0

    for link in find_links(s):
        pieces.append(s[previous_end:link.start_index])
        try:
            new_content = render_link(link, path)
        except OSError as err:
            logger.error('Error updating "%s", %s', link.link_text, err)
            cause = err.__cause__
            while cause is not None:
                logger.warning("Caused By: %s", cause)
                cause = cause.__cause__
            previous_end = link.start_index
            continue

        if isinstance(link.link_type, Title):
            chapter_title = link.link_type.title

        if depth < MAX_LINK_NESTED_DEPTH:
            rel_path = _relative_path(link.link_type, path)
            if rel_path is not None:
                nested, chapter_title = replace_all(
                    new_content, rel_path, source, depth + 1, chapter_title
                )
                pieces.append(nested)
            else:
                pieces.append(new_content)
        else:
            logger.error("Stack depth exceeded in %s. Check for cyclic includes", source)
        previous_end = link.end_index

    pieces.append(s[previous_end:])
    return "".join(pieces), chapter_title


class LinkPreprocessor(Preprocessor):
    """Expands ``include``, ``rustdoc_include``, ``playground`` and ``title`` helpers."""

    NAME = "links"

    def name(self):
        """Return ``links``."""
        return self.NAME

    def expand_chapter(self, ctx, content, chapter_path, chapter_name):
        """Return ``content`` with its links expanded.

        A ``{{#title}}`` override is recorded in ``ctx.chapter_titles``.
        """
        chapter_path = Path(chapter_path)
        src_dir = ctx.root / ctx.config.book.src
        base = src_dir / chapter_path.parent
        expanded, title = replace_all(content, base, chapter_path, 0, chapter_name)
        if title != chapter_name:
            ctx.chapter_titles[chapter_path] = title
        return expanded

    def run(self, ctx, book):
        """Expand the links of every chapter of ``book`` in place and return it."""

        def visit(item):
            path = getattr(item, "path", None)
            if path is not None and hasattr(item, "content"):
                item.content = self.expand_chapter(ctx, item.content, path, item.name)

        book.for_each_mut(visit)
        return book