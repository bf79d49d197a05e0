from pathlib import Path

import pytest

from bookpress.config import Config
from bookpress.preprocess.base import MDBOOK_VERSION, Preprocessor, PreprocessorContext


class _Upper(Preprocessor):
    def name(self):
        return "upper"

    def run(self, ctx, book):
        return book.upper()


def _ctx():
    cfg = Config.from_str('[book]\ntitle = "Some Book"\n\n[output.html]\ntheme = "./themedir"\n')
    return PreprocessorContext(Path("/books/one"), cfg, "html")


def test_new_context_uses_current_version():
    ctx = _ctx()
    assert ctx.mdbook_version == MDBOOK_VERSION
    assert ctx.chapter_titles == {}


def test_root_is_converted_to_path():
    ctx = PreprocessorContext("some/dir", Config(), "html")
    assert ctx.root == Path("some/dir")


def test_to_dict_has_expected_keys():
    data = _ctx().to_dict()
    assert set(data) == {"root", "config", "renderer", "mdbook_version"}
    assert data["renderer"] == "html"
    assert data["config"]["book"]["title"] == "Some Book"


def test_round_trip_through_dict():
    ctx = _ctx()
    assert PreprocessorContext.from_dict(ctx.to_dict()) == ctx


def test_round_trip_keeps_free_form_tables():
    got = PreprocessorContext.from_dict(_ctx().to_dict())
    assert got.config.get("output.html.theme") == "./themedir"


def test_from_dict_missing_field():
    data = _ctx().to_dict()
    del data["mdbook_version"]
    with pytest.raises(ValueError, match="mdbook_version"):
        PreprocessorContext.from_dict(data)


def test_from_dict_rejects_non_mapping():
    with pytest.raises(ValueError):
        PreprocessorContext.from_dict([1, 2])


def test_from_dict_rejects_bad_config():
    data = _ctx().to_dict()
    data["config"] = {"book": {"title": 20}}
    with pytest.raises(ValueError):
        PreprocessorContext.from_dict(data)


def test_supports_renderer_defaults_to_true():
    assert Preprocessor.supports_renderer(_Upper(), "anything") is True
    assert Preprocessor.supports_renderer(_Upper(), "html") is True


def test_subclass_runs():
    pre = _Upper()
    assert pre.name() == "upper"
    assert pre.run(_ctx(), "abc") == "ABC"


def test_abstract_base_cannot_be_instantiated():
    with pytest.raises(TypeError):
        Preprocessor()