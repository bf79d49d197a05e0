"""Preprocessors that update a book's chapters before rendering."""

__all__ = ["base", "cmd", "index", "link_parse", "links"]