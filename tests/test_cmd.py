import io
import shlex
import sys
from pathlib import Path

import pytest

from bookpress.config import Config
from bookpress.preprocess.base import PreprocessorContext
from bookpress.preprocess.cmd import CmdPreprocessor

MISSING = "trduyvbhijnorgevfuhn"


def _python(script):
    return f"{shlex.quote(sys.executable)} -c {shlex.quote(script)}"


SUPPORTS_SCRIPT = "import sys; sys.exit(1 if sys.argv[2] == 'not-supported' else 0)"

ECHO_BOOK_SCRIPT = (
    "import json, sys\n"
    "ctx, book = json.load(sys.stdin)\n"
    "book['renderer'] = ctx['renderer']\n"
    "json.dump(book, sys.stdout)\n"
)

FAIL_SCRIPT = "import sys; sys.stdin.read(); sys.exit(1)"

GARBAGE_SCRIPT = "import sys; sys.stdin.read(); print('not json')"


def _ctx():
    cfg = Config.from_str('[book]\ntitle = "Some Book"\n')
    return PreprocessorContext(Path("/books/one"), cfg, "some-renderer")


def _book():
    return {"sections": [{"name": "Intro", "content": "# Intro\n"}]}


def test_name_and_cmd():
    pre = CmdPreprocessor("test", "test --flag")
    assert pre.name() == "test"
    assert pre.cmd == "test --flag"


def test_command_splits_words():
    pre = CmdPreprocessor("test", "echo 'Hello World!' again")
    assert pre.command() == ["echo", "Hello World!", "again"]


def test_empty_command_is_an_error():
    with pytest.raises(ValueError, match="Command string was empty"):
        CmdPreprocessor("test", "   ").command()


def test_round_trip_write_and_parse_input_text():
    pre = CmdPreprocessor("test", "test")
    ctx, book = _ctx(), _book()
    buffer = io.StringIO()
    pre.write_input(buffer, book, ctx)
    buffer.seek(0)
    got_ctx, got_book = CmdPreprocessor.parse_input(buffer)
    assert got_book == book
    assert got_ctx == ctx


def test_round_trip_write_and_parse_input_bytes():
    pre = CmdPreprocessor("test", "test")
    ctx, book = _ctx(), _book()
    buffer = io.BytesIO()
    pre.write_input(buffer, book, ctx)
    buffer.seek(0)
    got_ctx, got_book = CmdPreprocessor.parse_input(buffer)
    assert got_book == book
    assert got_ctx.config.book.title == "Some Book"


def test_parse_input_rejects_garbage():
    with pytest.raises(ValueError, match="Unable to parse the input"):
        CmdPreprocessor.parse_input(io.StringIO("{not json"))


def test_parse_input_rejects_wrong_shape():
    with pytest.raises(ValueError, match="Unable to parse the input"):
        CmdPreprocessor.parse_input(io.StringIO("[1, 2, 3]"))


def test_supports_whatever():
    assert CmdPreprocessor("p", _python(SUPPORTS_SCRIPT)).supports_renderer("whatever") is True


def test_does_not_support_not_supported():
    pre = CmdPreprocessor("p", _python(SUPPORTS_SCRIPT))
    assert pre.supports_renderer("not-supported") is False


def test_missing_command_does_not_support_anything():
    assert CmdPreprocessor("missing", MISSING).supports_renderer("html") is False


def test_empty_command_does_not_support_anything():
    assert CmdPreprocessor("empty", "").supports_renderer("html") is False


def test_run_returns_processed_book():
    pre = CmdPreprocessor("echo", _python(ECHO_BOOK_SCRIPT))
    got = pre.run(_ctx(), _book())
    expected = _book()
    expected["renderer"] = "some-renderer"
    assert got == expected


def test_run_failing_command_raises():
    pre = CmdPreprocessor("failing", _python(FAIL_SCRIPT))
    with pytest.raises(RuntimeError, match="exited unsuccessfully"):
        pre.run(_ctx(), _book())


def test_run_missing_command_raises():
    pre = CmdPreprocessor("missing", MISSING)
    with pytest.raises(RuntimeError, match="Is it installed"):
        pre.run(_ctx(), _book())


def test_run_unparseable_output_raises():
    pre = CmdPreprocessor("garbage", _python(GARBAGE_SCRIPT))
    with pytest.raises(ValueError, match="Unable to parse the preprocessed book"):
        pre.run(_ctx(), _book())


def test_equality():
    assert CmdPreprocessor("a", "b") == CmdPreprocessor("a", "b")
    assert not (CmdPreprocessor("a", "b") == CmdPreprocessor("a", "c"))