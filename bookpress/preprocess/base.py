"""The preprocessor interface and the context handed to preprocessors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from bookpress.config import Config, ConfigError

MDBOOK_VERSION = "0.1.0"
"""Version reported to preprocessors so they can check compatibility."""

_REQUIRED_KEYS = ("root", "config", "renderer", "mdbook_version")


@dataclass
class PreprocessorContext:
    """Extra information a preprocessor gets while processing a book."""

    root: Path
    config: Config
    renderer: str
    mdbook_version: str = MDBOOK_VERSION
    chapter_titles: dict[Path, str] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        self.root = Path(self.root)

    def to_dict(self):
        """Return the JSON-ready form sent to external preprocessors."""
        return {
            "root": str(self.root),
            "config": self.config.to_dict(),
            "renderer": self.renderer,
            "mdbook_version": self.mdbook_version,
        }

    @classmethod
    def from_dict(cls, data):
        """Build a context from its JSON form."""
        if not isinstance(data, Mapping):
            raise ValueError(f"expected a map for the preprocessor context, got {data!r}")
        missing = [key for key in _REQUIRED_KEYS if key not in data]
        if missing:
            raise ValueError(f"missing field `{missing[0]}` in the preprocessor context")
        for key in ("root", "renderer", "mdbook_version"):
            if not isinstance(data[key], str):
                raise ValueError(f"invalid type for `{key}`: expected a string, got {data[key]!r}")
        try:
            config = Config.from_dict(data["config"])
        except ConfigError as err:
            raise ValueError(f"invalid `config`: {err}") from err
        return cls(
            root=Path(data["root"]),
            config=config,
            renderer=data["renderer"],
            mdbook_version=data["mdbook_version"],
        )


class Preprocessor(ABC):
    """An operation run on a book after loading and before rendering."""

    @abstractmethod
    def name(self):
        """Return the preprocessor's name."""

    @abstractmethod
    def run(self, ctx, book):
        """Process ``book`` and return the updated book."""

    def supports_renderer(self, renderer):
        """Tell whether this preprocessor works with ``renderer``; True by default."""
        return True