# bookpress

Configuration handling and chapter preprocessing for books written as a
collection of markdown files.

The package reads a book's `book.toml`, gives typed access to the well-known
tables (`[book]`, `[build]`, `[rust]`, `[output.html]`), and keeps every other
table available for renderers and preprocessors. It also provides the
preprocessors that run over chapters before rendering:

- `LinkPreprocessor` (`bookpress.preprocess.links`) expands
  `{{#include ...}}`, `{{#rustdoc_include ...}}`, `{{#playground ...}}` and
  `{{#title ...}}` helpers in chapter text.
- `IndexPreprocessor` (`bookpress.preprocess.index`) turns `README.md`
  chapters into `index.md`.
- `CmdPreprocessor` (`bookpress.preprocess.cmd`) hands the book to an external
  program as JSON on its standard input and reads the processed book back from
  its standard output.

Python 3.11 or later is required. The only runtime dependency is `tomli-w`.

## Loading a configuration

```python
from bookpress.config import Config

cfg = Config.from_str('''
[book]
title = "My Book"
authors = ["Jane Doe"]

[build]
build-dir = "out"

[other-table.foo]
bar = 123
''')

cfg.book.title                  # "My Book"
cfg.build.build_dir             # Path("out")
cfg.get("other-table.foo.bar")  # 123

cfg.set("output.html.theme", "./themes")
cfg.html_config().theme         # Path("themes")
```

`Config.from_disk(path)` reads a `book.toml` file, and `Config.to_toml()`
writes the configuration back out with keys in sorted order. Files in the
older layout, with `title`, `authors`, `source` and `description` at the top
level and `destination` under `[output.html]`, are still accepted and
converted, with a logged warning.

`Config.get_deserialized_opt(name, kind)` fetches a value and converts it,
for example to `Path`, `int` or `HtmlConfig`; it returns `None` when the key
is absent. `Config.get_deserialized` does the same but raises when the key is
missing. `get_renderer(name)` and `get_preprocessor(name)` return the
`[output.<name>]` and `[preprocessor.<name>]` tables.

Invalid files and values that cannot be converted raise `ConfigError`.

## Overriding settings from the environment

`Config.update_from_env()` applies variables that start with `MDBOOK_`.
Double underscores separate nested keys and single underscores become dashes,
so `MDBOOK_BOOK__TITLE` sets `book.title` and `MDBOOK_FOO_BAR__BAZ` sets
`foo-bar.baz`. Values are read as JSON when they parse, and as plain strings
otherwise. A mapping of variables can be passed instead of the process
environment:

```python
cfg.update_from_env({"MDBOOK_BOOK__TITLE": "Another Title"})
```

## Include helpers

```python
from bookpress.preprocess.link_parse import find_links, parse_include_path

for link in find_links("Text with {{#include file.rs:10:20}} inside"):
    print(link)

parse_include_path("file.rs:5")       # only line 5
parse_include_path("file.rs:5:")      # line 5 to the end
parse_include_path("file.rs::5")      # the first five lines
parse_include_path("file.rs:anchor")  # the lines between ANCHOR markers
```

`bookpress.preprocess.links.replace_all` expands every helper in a piece of
text and returns the new text together with the chapter title, which a
`{{#title ...}}` helper overrides. An escaped helper such as
`\{{#include file.rs}}` is left in the text without its backslash. A helper
whose file cannot be read is left as written. Nested includes are followed up
to ten levels deep.

## Writing a preprocessor

Subclass `bookpress.preprocess.base.Preprocessor` and implement `name()` and
`run(ctx, book)`; `supports_renderer(renderer)` returns `True` unless
overridden. The `PreprocessorContext` carries the book root, the `Config`, the
renderer name and the reported version, and converts to and from the JSON form
that `CmdPreprocessor` sends.

## What this package does not do

There is no book model, no `SUMMARY.md` parser, no renderer and no
command-line program. `LinkPreprocessor.run` and `IndexPreprocessor.run`
work on any book object that offers `for_each_mut(callback)` and whose
chapters have `path`, `name` and `content` attributes; `CmdPreprocessor.run`
expects a book that can be written as JSON.

## Running the tests

Install the `test` extra and run `pytest` from the project directory.