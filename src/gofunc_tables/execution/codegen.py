"""Generate the throwaway Go program that invokes one function."""
from __future__ import annotations
from pathlib import Path
import re

from gofunc_tables.models import FunctionDescriptor

_MODULE_RE = re.compile(r"^\s*module\s+(\"[^\"]+\"|\S+)", re.MULTILINE)

PROGRAM_TEMPLATE = """package main

import (
    "encoding/json"
    "fmt"
    "os"

    target "{import_path}"
)

func main() {{
    defer func() {{
        if r := recover(); r != nil {{
            fmt.Fprintf(os.Stderr, "panic in {name}: %v\\n", r)
            os.Exit(2)
        }}
    }}()

    result := target.{name}()

    jsonResult, err := json.Marshal(result)
    if err != nil {{
        fmt.Print(result)
        return
    }}
    os.Stdout.Write(jsonResult)
}}
"""


def read_module_path(repo_root: Path | str) -> str | None:
    """Return the module path declared in the root go.mod, if any."""
    go_mod = Path(repo_root) / "go.mod"
    if not go_mod.is_file():
        return None

    match = _MODULE_RE.search(go_mod.read_text(encoding="utf-8", errors="replace"))
    if not match:
        return None
    return match.group(1).strip('"')


def resolve_import_path(repo_root: Path | str, package_path: str) -> str:
    """Import path of a repository package.

    Module-mode repositories import through their module path; anything
    else falls back to a relative import.
    """
    module = read_module_path(repo_root)
    if module:
        return module if package_path == "." else f"{module}/{package_path}"
    return "." if package_path == "." else f"./{package_path}"


def render_program(descriptor: FunctionDescriptor, import_path: str) -> str:
    return PROGRAM_TEMPLATE.format(import_path=import_path, name=descriptor.name)
