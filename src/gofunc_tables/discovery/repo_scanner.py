"""Repository scanner for Go sources.

Walks the directory tree in sorted order and collects .go files, skipping
vendored, hidden and test files. Symlinked directories are not followed.
Optionally honors the root .gitignore.
"""
from __future__ import annotations
from pathlib import Path
from typing import Iterator
import logging
import pathspec

from gofunc_tables.errors import TraversalError

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".go"
TEST_SUFFIX = "_test.go"
RESERVED_DIRS = frozenset({"vendor", ".git"})


def scan_go_files(
    repo_root: Path | str,
    respect_gitignore: bool = False,
    ignore_file: str = ".gitignore"
) -> list[Path]:
    """Scan repository for Go source files.

    Args:
        repo_root: Root directory of the repository
        respect_gitignore: Also skip paths matched by the root ignore file
        ignore_file: Name of ignore file (default: .gitignore)

    Returns:
        Sorted list of absolute file paths

    Raises:
        TraversalError: If the tree cannot be walked completely
    """
    repo_root = Path(repo_root).resolve()

    if not repo_root.exists():
        raise TraversalError(f"Repository path not found: {repo_root}")

    if not repo_root.is_dir():
        raise TraversalError(f"Repository path is not a directory: {repo_root}")

    spec = None
    gitignore_path = repo_root / ignore_file
    if respect_gitignore and gitignore_path.is_file():
        with open(gitignore_path, "r", encoding="utf-8") as f:
            spec = pathspec.PathSpec.from_lines("gitwildmatch", f.read().splitlines())

    files = list(_walk_directory(repo_root, spec, repo_root))
    logger.info(f"Found {len(files)} Go files under {repo_root}")
    return files


def is_test_file(path: Path) -> bool:
    return path.name.endswith(TEST_SUFFIX)


def _is_skipped(entry: Path) -> bool:
    return entry.name in RESERVED_DIRS or entry.name.startswith(".")


def _walk_directory(
    directory: Path,
    spec: pathspec.PathSpec | None,
    repo_root: Path
) -> Iterator[Path]:
    """Recursively walk directory, applying the skip rules.

    Args:
        directory: Directory to walk
        spec: PathSpec for gitignore patterns
        repo_root: Repository root for relative path calculation

    Yields:
        Go source file paths
    """
    try:
        entries = sorted(directory.iterdir())
    except OSError as e:
        raise TraversalError(f"Cannot list {directory}: {e}") from e

    for entry in entries:
        if _is_skipped(entry):
            continue

        if entry.is_symlink() and not entry.exists():
            raise TraversalError(f"Broken symlink: {entry}")

        # Symlinked directories are not followed
        if entry.is_symlink() and entry.is_dir():
            continue

        if spec is not None:
            rel_path = entry.relative_to(repo_root).as_posix()
            if entry.is_dir():
                rel_path += "/"
            if spec.match_file(rel_path):
                continue

        if entry.is_dir():
            yield from _walk_directory(entry, spec, repo_root)
        elif entry.is_file() and entry.name.endswith(SOURCE_SUFFIX) and not is_test_file(entry):
            yield entry
