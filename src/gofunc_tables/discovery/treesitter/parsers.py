"""Tree-sitter parser setup for Go.

Uses tree-sitter-languages for the pre-built Go grammar.
"""
from __future__ import annotations
from tree_sitter import Parser, Tree
import tree_sitter_languages

from gofunc_tables.errors import ParseError


# Cached parser, created on first use
_PARSERS: dict[str, Parser] = {}


def get_go_parser() -> Parser:
    """Get or create the tree-sitter parser for Go."""
    if "go" not in _PARSERS:
        _PARSERS["go"] = tree_sitter_languages.get_parser("go")
    return _PARSERS["go"]


def parse_source(source: bytes, path: str = "<memory>") -> Tree:
    """Parse Go source bytes, rejecting trees that contain syntax errors.

    Raises:
        ParseError: If the source has any ERROR or MISSING node
    """
    tree = get_go_parser().parse(source)
    if tree.root_node.has_error:
        node = _first_error(tree.root_node)
        line = node.start_point[0] + 1 if node is not None else None
        raise ParseError(path, "syntax error", line)
    return tree


def parse_file(file_path: str) -> tuple[bytes, Tree]:
    """Read and parse a Go file.

    Returns:
        Tuple of (source_bytes, tree)

    Raises:
        ParseError: If the file cannot be read or is malformed
    """
    try:
        with open(file_path, "rb") as f:
            source = f.read()
    except OSError as e:
        raise ParseError(file_path, f"cannot read file: {e}") from e

    return source, parse_source(source, file_path)


def _first_error(node):
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = _first_error(child)
            if found is not None:
                return found
    return None
