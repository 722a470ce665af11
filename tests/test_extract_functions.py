"""Tests for Go function discovery with tree-sitter."""
import os

import pytest

from gofunc_tables.discovery.treesitter.extract_functions import (
    extract_functions,
    is_exported,
    package_path_for,
)
from gofunc_tables.errors import ParseError
from gofunc_tables.models import Parameter


@pytest.fixture
def data_functions(go_repo):
    return extract_functions(go_repo / "data" / "data.go", go_repo)


def _by_name(functions):
    return {f.name: f for f in functions}


def test_exported_free_functions_in_declaration_order(data_functions):
    assert [f.name for f in data_functions] == [
        "GetConfig", "ListNames", "Numbers", "Lookup", "Index",
        "Printer", "Add", "Join", "Boom",
    ]


def test_methods_and_unexported_skipped(data_functions):
    names = {f.name for f in data_functions}
    assert "Count" not in names
    assert "helper" not in names


def test_package_metadata(go_repo, data_functions):
    fn = _by_name(data_functions)["GetConfig"]
    assert fn.package_path == "data"
    assert fn.package_name == "data"
    assert fn.source_file == str(go_repo / "data" / "data.go")
    assert fn.line_number == 17


def test_root_package_path(go_repo):
    functions = extract_functions(go_repo / "fixture.go", go_repo)

    assert len(functions) == 1
    assert functions[0].name == "Version"
    assert functions[0].package_path == "."
    assert functions[0].doc_comment == "Version reports the fixture version."


def test_doc_comment_spans_lines(data_functions):
    fns = _by_name(data_functions)
    assert fns["GetConfig"].doc_comment == (
        "GetConfig returns a flat configuration object.\n"
        "It is used by the smoke tests."
    )
    assert fns["ListNames"].doc_comment is None


def test_parameters_recorded_even_when_not_eligible(data_functions):
    fns = _by_name(data_functions)

    assert fns["Add"].parameters == (Parameter("a", "int"), Parameter("b", "int"))
    assert not fns["Add"].is_eligible
    assert fns["Join"].parameters == (Parameter("sep", "string"), Parameter("parts", "...string"))
    assert fns["GetConfig"].parameters == ()
    assert fns["GetConfig"].is_eligible


def test_return_type_formatting(data_functions):
    fns = _by_name(data_functions)

    assert fns["GetConfig"].return_types == ("map[string]interface{}",)
    assert fns["ListNames"].return_types == ("[]Item",)
    assert fns["Numbers"].return_types == ("[]int",)
    assert fns["Lookup"].return_types == ("*Item", "error")
    assert fns["Index"].return_types == ("map[string][]Item",)
    assert fns["Printer"].return_types == ("fmt.Stringer",)


def test_unknown_type_fallback(tmp_path):
    src = tmp_path / "chans.go"
    src.write_text("package chans\n\nfunc Stream() chan int {\n\treturn nil\n}\n")

    (fn,) = extract_functions(src, tmp_path)
    assert fn.return_types == ("unknown",)


def test_named_results_one_descriptor_per_declaration(tmp_path):
    src = tmp_path / "named.go"
    src.write_text("package named\n\nfunc Pair() (x, y int, err error) {\n\treturn\n}\n")

    (fn,) = extract_functions(src, tmp_path)
    assert fn.return_types == ("int", "error")


def test_malformed_file_raises_parse_error(go_repo):
    with pytest.raises(ParseError) as exc:
        extract_functions(go_repo / "broken" / "broken.go", go_repo)
    assert "broken.go" in str(exc.value)


def test_unreadable_file_raises_parse_error(tmp_path):
    with pytest.raises(ParseError):
        extract_functions(tmp_path / "missing.go", tmp_path)


def test_file_without_exported_functions(go_repo):
    assert extract_functions(go_repo / "cmd" / "tool" / "main.go", go_repo) == []


@pytest.mark.parametrize("name,expected", [
    ("GetUsers", True),
    ("getUsers", False),
    ("_Hidden", False),
    ("Ünïcode", True),
])
def test_is_exported(name, expected):
    assert is_exported(name) is expected


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
def test_symlinked_file_keeps_scanned_package_path(tmp_path):
    repo = tmp_path / "repo"
    (repo / "pkg").mkdir(parents=True)
    target = tmp_path / "outside.go"
    target.write_text("package pkg\n\nfunc Name() string {\n\treturn \"x\"\n}\n")
    os.symlink(target, repo / "pkg" / "linked.go")

    (fn,) = extract_functions(repo / "pkg" / "linked.go", repo)
    assert fn.package_path == "pkg"


def test_file_outside_repository_is_parse_error(tmp_path):
    (tmp_path / "repo").mkdir()
    with pytest.raises(ParseError, match="outside the repository"):
        package_path_for(tmp_path / "elsewhere" / "a.go", tmp_path / "repo")
