"""Extract exported top-level functions from parsed Go trees.

Methods (declarations with a receiver) and unexported names are skipped.
Functions with parameters are still returned; eligibility is decided at
execution time.
"""
from __future__ import annotations
from pathlib import Path
from typing import Iterator
from tree_sitter import Node, Tree

from gofunc_tables.errors import ParseError
from gofunc_tables.models import FunctionDescriptor, Parameter
from .parsers import parse_file


def extract_functions(file_path: Path | str, repo_root: Path | str) -> list[FunctionDescriptor]:
    """Parse a Go file and extract descriptors for its exported functions.

    Args:
        file_path: Path to the .go file
        repo_root: Repository root, used for the package path

    Returns:
        Descriptors in declaration order

    Raises:
        ParseError: If the file cannot be read or parsed
    """
    file_path = Path(file_path)
    source, tree = parse_file(str(file_path))
    package_path = package_path_for(file_path, repo_root)
    return list(_iter_functions(source, tree, str(file_path), package_path))


def package_path_for(file_path: Path, repo_root: Path | str) -> str:
    """Repository-relative POSIX directory of a file, "." for the root.

    The path is taken as scanned, without resolving symlinks.

    Raises:
        ParseError: If the file lies outside the repository
    """
    directory = file_path.absolute().parent
    repo_root = Path(repo_root)
    for root in (repo_root.absolute(), repo_root.resolve()):
        try:
            rel = directory.relative_to(root)
        except ValueError:
            continue
        return rel.as_posix() if rel.parts else "."

    raise ParseError(str(file_path), "file is outside the repository")


def is_exported(name: str) -> bool:
    return bool(name) and name[0].isupper()


def _iter_functions(
    source: bytes,
    tree: Tree,
    file_path: str,
    package_path: str
) -> Iterator[FunctionDescriptor]:
    root = tree.root_node
    package_name = _package_name(source, root)

    for node in root.children:
        # method_declaration nodes carry a receiver and are never yielded
        if node.type != "function_declaration":
            continue

        name = _get_text(source, node.child_by_field_name("name"))
        if not is_exported(name):
            continue

        yield FunctionDescriptor(
            name=name,
            source_file=file_path,
            package_path=package_path,
            package_name=package_name,
            line_number=node.start_point[0] + 1,
            parameters=tuple(_parameters(source, node.child_by_field_name("parameters"))),
            return_types=tuple(_return_types(source, node.child_by_field_name("result"))),
            doc_comment=_doc_comment(source, node),
        )


def _package_name(source: bytes, root: Node) -> str:
    clause = _find_child(root, "package_clause")
    if clause is None:
        return ""
    return _get_text(source, _find_child(clause, "package_identifier"))


def _parameters(source: bytes, params_node: Node | None) -> Iterator[Parameter]:
    if params_node is None:
        return

    for decl in params_node.named_children:
        if decl.type == "parameter_declaration":
            type_text = format_type(source, decl.child_by_field_name("type"))
            names = decl.children_by_field_name("name")
            if names:
                for name_node in names:
                    yield Parameter(_get_text(source, name_node), type_text)
            else:
                yield Parameter("", type_text)

        elif decl.type == "variadic_parameter_declaration":
            type_text = "..." + format_type(source, decl.child_by_field_name("type"))
            yield Parameter(_get_text(source, decl.child_by_field_name("name")), type_text)


def _return_types(source: bytes, result_node: Node | None) -> Iterator[str]:
    if result_node is None:
        return

    if result_node.type != "parameter_list":
        yield format_type(source, result_node)
        return

    # One descriptor per result declaration, named or not
    for decl in result_node.named_children:
        if decl.type in ("parameter_declaration", "variadic_parameter_declaration"):
            yield format_type(source, decl.child_by_field_name("type"))


def format_type(source: bytes, node: Node | None) -> str:
    """Render a type expression as a short descriptive string."""
    if node is None:
        return "unknown"

    kind = node.type
    if kind == "type_identifier":
        return _get_text(source, node)
    if kind == "pointer_type":
        inner = node.named_children[0] if node.named_children else None
        return "*" + format_type(source, inner)
    if kind in ("slice_type", "array_type"):
        return "[]" + format_type(source, node.child_by_field_name("element"))
    if kind == "map_type":
        key = format_type(source, node.child_by_field_name("key"))
        value = format_type(source, node.child_by_field_name("value"))
        return f"map[{key}]{value}"
    if kind == "qualified_type":
        package = _get_text(source, node.child_by_field_name("package"))
        name = _get_text(source, node.child_by_field_name("name"))
        return f"{package}.{name}"
    if kind == "interface_type":
        return "interface{}"
    if kind == "parenthesized_type" and node.named_children:
        return format_type(source, node.named_children[0])
    return "unknown"


def _doc_comment(source: bytes, node: Node) -> str | None:
    """Collect the comment block directly above a declaration."""
    lines: list[str] = []
    expected_end_row = node.start_point[0] - 1
    sibling = node.prev_sibling

    while sibling is not None and sibling.type == "comment" and sibling.end_point[0] == expected_end_row:
        lines[:0] = _comment_lines(_get_text(source, sibling))
        expected_end_row = sibling.start_point[0] - 1
        sibling = sibling.prev_sibling

    text = "\n".join(lines).strip()
    return text or None


def _comment_lines(text: str) -> list[str]:
    if text.startswith("//"):
        body = text[2:]
        return [body[1:] if body.startswith(" ") else body]
    body = text[2:-2] if text.startswith("/*") else text
    return [line.strip() for line in body.splitlines()]


# Helper functions

def _find_child(node: Node, child_type: str) -> Node | None:
    """Find first child of given type."""
    for child in node.children:
        if child.type == child_type:
            return child
    return None


def _get_text(source: bytes, node: Node | None) -> str:
    """Get text for a node."""
    if not node:
        return ""
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")
