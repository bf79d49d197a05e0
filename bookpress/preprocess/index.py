"""Turn ``README.md`` chapters into ``index.md``."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from bookpress.preprocess.base import Preprocessor

logger = logging.getLogger(__name__)

_README = re.compile(r"readme", re.IGNORECASE)


def is_readme_file(path):
    """Tell whether the file stem of ``path`` is ``readme``, in any case."""
    return _README.fullmatch(Path(path).stem) is not None


def _warn_readme_name_conflict(readme_path: Path, index_path: Path) -> None:
    file_name = readme_path.name
    parent_dir = index_path.parent
    logger.warning(
        'It seems that there are both %r and index.md under "%s".', file_name, parent_dir
    )
    logger.warning("mdbook converts %r into index.html by default. It may cause", file_name)
    logger.warning("unexpected behavior if putting both files under the same directory.")
    logger.warning("To solve the warning, try to rearrange the book structure or disable")
    logger.warning('"index" preprocessor to stop the conversion.')


class IndexPreprocessor(Preprocessor):
    """Renames README chapters to index, the usual index file of markdown docs."""

    NAME = "index"

    def name(self):
        """Return ``index``."""
        return self.NAME

    def index_path_for(self, ctx, path):
        """Return the chapter path to use for ``path``, renaming a README to index.md."""
        path = Path(path)
        if not is_readme_file(path):
            return path
        source_dir = ctx.root / ctx.config.book.src
        renamed = path.with_name("index.md")
        index_md = source_dir / renamed
        if index_md.exists():
            _warn_readme_name_conflict(path, index_md)
        return renamed

    def run(self, ctx, book):
        """Rename every README chapter of ``book`` in place and return it."""

        def visit(item):
            path = getattr(item, "path", None)
            if path is not None:
                item.path = self.index_path_for(ctx, path)

        book.for_each_mut(visit)
        return book