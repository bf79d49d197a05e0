import logging
from pathlib import Path

import pytest

from bookpress.config import Config
from bookpress.preprocess.base import PreprocessorContext
from bookpress.preprocess.index import IndexPreprocessor, is_readme_file


class _Chapter:
    def __init__(self, path):
        self.path = path


class _Separator:
    pass


class _Book:
    def __init__(self, items):
        self.items = items

    def for_each_mut(self, func):
        for item in self.items:
            func(item)


@pytest.mark.parametrize(
    "path",
    [
        "path/to/Readme.md",
        "path/to/README.md",
        "path/to/rEaDmE.md",
        "path/to/README.markdown",
        "path/to/README",
    ],
)
def test_file_stem_exactly_matches_readme_case_insensitively(path):
    assert is_readme_file(path) is True


def test_readme_prefix_is_not_readme():
    assert is_readme_file("path/to/README-README.md") is False


def test_name():
    assert IndexPreprocessor().name() == "index"


def test_readme_path_is_renamed(tmp_path):
    ctx = PreprocessorContext(tmp_path, Config(), "html")
    got = IndexPreprocessor().index_path_for(ctx, Path("first/README.md"))
    assert got == Path("first/index.md")


def test_other_paths_are_unchanged(tmp_path):
    ctx = PreprocessorContext(tmp_path, Config(), "html")
    got = IndexPreprocessor().index_path_for(ctx, Path("first/nested.md"))
    assert got == Path("first/nested.md")


def test_conflict_logs_warning(tmp_path, caplog):
    (tmp_path / "src" / "first").mkdir(parents=True)
    (tmp_path / "src" / "first" / "index.md").write_text("# Index\n")
    ctx = PreprocessorContext(tmp_path, Config(), "html")
    with caplog.at_level(logging.WARNING, logger="bookpress.preprocess.index"):
        got = IndexPreprocessor().index_path_for(ctx, Path("first/README.md"))
    assert got == Path("first/index.md")
    assert any("index.md" in record.getMessage() for record in caplog.records)


def test_no_warning_without_conflict(tmp_path, caplog):
    ctx = PreprocessorContext(tmp_path, Config(), "html")
    with caplog.at_level(logging.WARNING, logger="bookpress.preprocess.index"):
        IndexPreprocessor().index_path_for(ctx, Path("README.md"))
    assert caplog.records == []


def test_run_rewrites_chapters(tmp_path):
    ctx = PreprocessorContext(tmp_path, Config(), "html")
    readme = _Chapter(Path("first/README.md"))
    other = _Chapter(Path("second.md"))
    draft = _Chapter(None)
    book = _Book([readme, _Separator(), other, draft])
    got = IndexPreprocessor().run(ctx, book)
    assert got is book
    assert readme.path == Path("first/index.md")
    assert other.path == Path("second.md")
    assert draft.path is None